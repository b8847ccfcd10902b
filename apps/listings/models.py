"""Listing model for the hostel marketplace."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


def default_currency() -> str:
    return getattr(settings, "CURRENCY_CODE", "GHS")


class Listing(models.Model):
    """A hostel offering a fixed number of rooms at a single price."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Awaiting moderation")
        APPROVED = "approved", _("Approved")
        REJECTED = "rejected", _("Rejected")

    class RentDuration(models.TextChoices):
        MONTHLY = "monthly", _("Monthly")
        SEMESTER = "semester", _("Semester")
        YEARLY = "yearly", _("Yearly")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
    )
    name = models.CharField(max_length=100)
    description = models.TextField(max_length=1000, blank=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    currency = models.CharField(max_length=3, default=default_currency)
    rent_duration = models.CharField(
        max_length=20,
        choices=RentDuration.choices,
        default=RentDuration.MONTHLY,
    )
    total_rooms = models.PositiveIntegerField(
        help_text=_("Room capacity, fixed when the listing is approved."),
    )
    available_rooms = models.PositiveIntegerField(
        blank=True,
        help_text=_("Only changed through the inventory store."),
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Listing")
        verbose_name_plural = _("Listings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_rooms__gte=0),
                name="listing_available_rooms_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(available_rooms__lte=models.F("total_rooms")),
                name="listing_available_rooms_within_capacity",
            ),
        ]
        indexes = [
            models.Index(fields=["owner", "status"], name="listing_owner_status_idx"),
            models.Index(fields=["status", "price"], name="listing_status_price_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.available_rooms}/{self.total_rooms} rooms)"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and self.available_rooms is None:
            self.available_rooms = self.total_rooms
        super().save(*args, **kwargs)

    @property
    def is_bookable(self) -> bool:
        return self.status == self.Status.APPROVED and self.is_active

    @property
    def occupancy_rate(self) -> int:
        if not self.total_rooms:
            return 0
        occupied = self.total_rooms - self.available_rooms
        return round(occupied * 100 / self.total_rooms)
