"""
Common Value Objects

- Money: monetary amount with currency, fixed-point only
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from shared.domain.base import ValueObject

# Currencies accepted by the payment gateway, with the number of minor
# units per major unit (pesewas, kobo, cents...).
MINOR_UNITS = {
    'GHS': 100,
    'NGN': 100,
    'KES': 100,
    'ZAR': 100,
    'USD': 100,
}

TWO_PLACES = Decimal('0.01')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a monetary amount with currency.
    Amounts are always Decimals quantized to two places; floats are rejected
    so that no binary rounding ever reaches the payment gateway.
    """
    amount: Decimal
    currency: str = 'GHS'

    def __post_init__(self):
        if isinstance(self.amount, float):
            raise TypeError("Money amount must be a Decimal, not float")
        amount = Decimal(self.amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        object.__setattr__(self, 'amount', amount)
        object.__setattr__(self, 'currency', (self.currency or '').upper())

        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in MINOR_UNITS:
            raise ValueError(f"Unsupported currency: {self.currency}")

    def to_minor_units(self) -> int:
        """Amount in the smallest currency unit (e.g. 150.50 GHS -> 15050)."""
        return int(self.amount * MINOR_UNITS[self.currency])

    @classmethod
    def from_minor_units(cls, value: int, currency: str = 'GHS') -> 'Money':
        currency = (currency or '').upper()
        if currency not in MINOR_UNITS:
            raise ValueError(f"Unsupported currency: {currency}")
        return cls(Decimal(int(value)) / MINOR_UNITS[currency], currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"
