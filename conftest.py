"""Shared pytest configuration and fixtures."""

import pytest
from rest_framework.test import APIClient


@pytest.fixture
def api_client():
    """DRF API client for request/response helpers."""
    return APIClient()


@pytest.fixture
def student(db):
    from apps.bookings.tests.factories import make_student

    return make_student()


@pytest.fixture
def owner(db):
    from apps.bookings.tests.factories import make_owner

    return make_owner()


@pytest.fixture
def platform_admin(db):
    from apps.bookings.tests.factories import make_admin

    return make_admin()


@pytest.fixture
def listing(owner):
    from apps.bookings.tests.factories import make_listing

    return make_listing(owner=owner)
