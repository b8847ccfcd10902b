"""FilterSet for the booking list."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    payment_status = django_filters.ChoiceFilter(choices=Booking.PaymentStatus.choices)
    listing = django_filters.NumberFilter(field_name="listing_id", lookup_expr="exact")
    reference = django_filters.CharFilter(field_name="reference", lookup_expr="exact")
    requires_reconciliation = django_filters.BooleanFilter()
    created_after = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lt")

    class Meta:
        model = Booking
        fields = ["payment_status", "listing", "reference", "requires_reconciliation"]
