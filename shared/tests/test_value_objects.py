"""Tests for the Money value object."""

from __future__ import annotations

from decimal import Decimal

import pytest

from shared.domain.value_objects import Money


def test_amount_is_quantized_to_two_places():
    money = Money(Decimal("10.005"), "ghs")

    assert money.amount == Decimal("10.01")
    assert money.currency == "GHS"


def test_minor_units_use_fixed_point_arithmetic():
    assert Money(Decimal("150.50"), "GHS").to_minor_units() == 15050
    assert Money(Decimal("0.29"), "GHS").to_minor_units() == 29
    assert Money(Decimal("1234567.89"), "NGN").to_minor_units() == 123456789


def test_from_minor_units():
    assert Money.from_minor_units(15050, "GHS") == Money(Decimal("150.50"), "GHS")


def test_float_amounts_are_rejected():
    with pytest.raises(TypeError):
        Money(150.5, "GHS")


@pytest.mark.parametrize("amount,currency", [(Decimal("-1"), "GHS"), (Decimal("1"), "XYZ"), (Decimal("1"), "")])
def test_invalid_money(amount, currency):
    with pytest.raises(ValueError):
        Money(amount, currency)


def test_addition_requires_same_currency():
    total = Money(Decimal("1.10"), "GHS") + Money(Decimal("2.20"), "GHS")

    assert total == Money(Decimal("3.30"), "GHS")
    with pytest.raises(ValueError):
        Money(Decimal("1"), "GHS") + Money(Decimal("1"), "NGN")


def test_str():
    assert str(Money(Decimal("1500"), "GHS")) == "1,500.00 GHS"
