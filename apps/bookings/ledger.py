"""
Booking Ledger

Persistence of bookings and their payment state. State changes are
compare-and-set UPDATEs: a row moves to ``target`` only if its current
state is one of the allowed sources, so two concurrent writers can never
both win and a terminal row is never overwritten.
"""

from __future__ import annotations

import logging
from typing import Any

from django.utils import timezone  # type: ignore

from apps.listings.inventory import ListingSnapshot

from .domain.exceptions import NotFoundError
from .domain.states import PaymentState, sources_for
from .models import Booking

logger = logging.getLogger(__name__)

TRANSITION_FIELDS = frozenset({
    "gateway_reference",
    "payment_meta",
    "requires_reconciliation",
    "settled_at",
    "cancelled_at",
    "cancelled_by_id",
})


class BookingLedger:
    def create(self, listing: ListingSnapshot, student_id: int) -> Booking:
        """Record a new pending booking priced from the listing snapshot."""
        booking = Booking.objects.create(
            listing_id=listing.id,
            student_id=student_id,
            amount=listing.price,
            currency=listing.currency,
            duration=listing.rent_duration,
        )
        logger.info(f"Booking {booking.reference} created for listing {listing.id}")
        return booking

    def get(self, reference: str) -> Booking:
        try:
            return Booking.objects.select_related("listing", "student").get(reference=reference)
        except Booking.DoesNotExist:
            raise NotFoundError(f"Booking {reference} not found")

    def get_by_id(self, booking_id: int) -> Booking:
        try:
            return Booking.objects.select_related("listing", "student").get(pk=booking_id)
        except (Booking.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Booking {booking_id} not found")

    def attach_authorization(self, reference: str, *, authorization_url: str, access_code: str) -> None:
        Booking.objects.filter(reference=reference).update(
            authorization_url=authorization_url,
            access_code=access_code,
            updated_at=timezone.now(),
        )

    def transition(self, reference: str, target: str, **fields: Any) -> bool:
        """
        Move the booking to ``target`` if its current state allows it.

        Returns False when another writer got there first (or the row is
        terminal); the caller should re-read the row.
        """
        unknown = set(fields) - TRANSITION_FIELDS
        if unknown:
            raise TypeError(f"Cannot set {', '.join(sorted(unknown))} during a transition")

        updated = Booking.objects.filter(
            reference=reference,
            payment_status__in=sources_for(target),
        ).update(payment_status=target, updated_at=timezone.now(), **fields)

        if updated:
            logger.info(f"Booking {reference} moved to {target}")
        else:
            logger.info(f"Booking {reference} could not move to {target}")
        return bool(updated)

    def unsettled_before(self, cutoff) -> list[str]:
        """References of pending/processing bookings created before ``cutoff``."""
        return list(
            Booking.objects.filter(
                payment_status__in=[PaymentState.PENDING, PaymentState.PROCESSING],
                created_at__lt=cutoff,
            )
            .order_by("created_at")
            .values_list("reference", flat=True)
        )

    def flag_for_reconciliation(self, reference: str, meta: dict[str, Any]) -> bool:
        """
        Mark a booking whose money and inventory disagree, whatever its state.

        Returns False when the booking was already flagged.
        """
        booking = self.get(reference)
        updated = Booking.objects.filter(pk=booking.pk, requires_reconciliation=False).update(
            requires_reconciliation=True,
            payment_meta={**(booking.payment_meta or {}), **meta},
            updated_at=timezone.now(),
        )
        if updated:
            logger.warning(f"Booking {reference} flagged for reconciliation")
        return bool(updated)
