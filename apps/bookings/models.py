"""Booking ledger model for HostelHub."""

from __future__ import annotations

import secrets
import string

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.listings.models import Listing, default_currency

from .domain.exceptions import InvalidStateError
from .domain.states import PaymentState, UNSETTLED_STATES

REFERENCE_PREFIX = "HHL"
REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
SETTLED_IMMUTABLE_FIELDS = ("amount", "currency", "listing_id", "student_id")


class Booking(models.Model):
    """One attempt by a student to pay for a room in a listing."""

    PaymentStatus = PaymentState

    reference = models.CharField(max_length=40, unique=True, editable=False)
    listing = models.ForeignKey(
        "listings.Listing",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text=_("Listing price at the moment the booking was created."),
    )
    currency = models.CharField(max_length=3, default=default_currency)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentState.choices,
        default=PaymentState.PENDING,
    )
    gateway_reference = models.CharField(max_length=100, blank=True, db_index=True)
    authorization_url = models.URLField(max_length=500, blank=True)
    access_code = models.CharField(max_length=100, blank=True)
    payment_meta = models.JSONField(default=dict, blank=True)
    requires_reconciliation = models.BooleanField(
        default=False,
        help_text=_("Payment captured by the gateway but no room could be consumed."),
    )
    duration = models.CharField(
        max_length=20,
        choices=Listing.RentDuration.choices,
        default=Listing.RentDuration.MONTHLY,
    )
    check_in_date = models.DateField(default=timezone.localdate)
    check_out_date = models.DateField(null=True, blank=True)
    settled_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cancelled_bookings",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="booking_amount_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["student", "-created_at"], name="booking_student_created_idx"),
            models.Index(fields=["listing", "-created_at"], name="booking_listing_created_idx"),
            models.Index(fields=["payment_status", "-created_at"], name="booking_status_created_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.reference} ({self.payment_status})"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding:
            if not self.reference:
                self.reference = self.generate_reference()
        else:
            self._guard_immutable_fields()
        super().save(*args, **kwargs)

    def _guard_immutable_fields(self) -> None:
        stored = (
            type(self).objects.filter(pk=self.pk)
            .values("reference", "payment_status", *SETTLED_IMMUTABLE_FIELDS)
            .first()
        )
        if stored is None:
            return
        if stored["reference"] != self.reference:
            raise InvalidStateError("Booking reference cannot be changed.")
        if stored["payment_status"] != PaymentState.SUCCESS:
            return
        changed = [name for name in SETTLED_IMMUTABLE_FIELDS if stored[name] != getattr(self, name)]
        if changed:
            raise InvalidStateError(f"Settled booking fields cannot be changed: {', '.join(changed)}")

    @staticmethod
    def generate_reference() -> str:
        """``HHL-<epoch millis>-<6 random upper alphanumerics>``"""
        millis = int(timezone.now().timestamp() * 1000)
        suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _position in range(6))
        return f"{REFERENCE_PREFIX}-{millis}-{suffix}"

    @property
    def is_settled(self) -> bool:
        return self.payment_status == PaymentState.SUCCESS

    @property
    def is_unsettled(self) -> bool:
        return self.payment_status in UNSETTLED_STATES
