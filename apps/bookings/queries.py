"""
Read side of the booking ledger

Students see their own bookings, owners see bookings on the listings
they own, administrators see everything.
"""

from __future__ import annotations

from django.db.models import QuerySet  # type: ignore

from .domain.access import ADMIN, OWNER, can_access
from .domain.exceptions import AuthorizationError, NotFoundError
from .models import Booking


def visible_bookings(user_id: int, role: str) -> QuerySet:
    queryset = Booking.objects.select_related("listing", "student").order_by("-created_at", "-id")
    if role == ADMIN:
        return queryset
    if role == OWNER:
        return queryset.filter(listing__owner_id=user_id)
    return queryset.filter(student_id=user_id)


def get_booking(booking_id: int, user_id: int, role: str) -> Booking:
    try:
        booking = Booking.objects.select_related("listing", "student").get(pk=booking_id)
    except (Booking.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Booking not found")

    if not can_access(booking, user_id, role):
        raise AuthorizationError("Not authorized to view this booking")
    return booking
