"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "reference",
        "listing",
        "student",
        "payment_status",
        "amount",
        "currency",
        "requires_reconciliation",
        "created_at",
    )
    list_filter = ("payment_status", "requires_reconciliation", "currency", "duration")
    search_fields = ("reference", "gateway_reference", "listing__name", "student__email")
    readonly_fields = (
        "reference",
        "listing",
        "student",
        "amount",
        "currency",
        "payment_status",
        "gateway_reference",
        "authorization_url",
        "access_code",
        "payment_meta",
        "settled_at",
        "cancelled_at",
        "cancelled_by",
        "created_at",
        "updated_at",
    )

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
