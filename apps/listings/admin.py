"""Admin registrations for listings."""

from __future__ import annotations

from django.contrib import admin

from .models import Listing


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "owner",
        "status",
        "is_active",
        "price",
        "currency",
        "rent_duration",
        "available_rooms",
        "total_rooms",
    )
    list_filter = ("status", "is_active", "rent_duration")
    search_fields = ("name", "owner__email")
    readonly_fields = ("available_rooms", "created_at", "updated_at")
