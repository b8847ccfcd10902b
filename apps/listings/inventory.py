"""
Inventory Store

The only code allowed to change ``Listing.available_rooms``.

Every change is a single conditional UPDATE evaluated by the database:

    UPDATE listings_listing
       SET available_rooms = available_rooms - 1
     WHERE id = %s AND status = 'approved' AND is_active AND available_rooms >= 1

Concurrent callers therefore never observe a read-then-write window: the
row lock taken by the UPDATE serializes them, each one sees the count left
by the previous one, and a caller whose precondition no longer holds
simply updates zero rows. Callers that need the change to commit together
with other writes (the booking settlement) run it inside their own
transaction; here it is wrapped in a savepoint only.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging

from django.db import transaction  # type: ignore
from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.exceptions import NotFoundError

from .models import Listing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingSnapshot:
    """Read-only view of a listing as the booking core needs it."""

    id: int
    owner_id: int
    name: str
    status: str
    is_active: bool
    price: Decimal
    currency: str
    rent_duration: str
    available_rooms: int
    total_rooms: int

    @property
    def is_bookable(self) -> bool:
        return self.status == Listing.Status.APPROVED and self.is_active

    @property
    def has_capacity(self) -> bool:
        return self.available_rooms >= 1


class InventoryStore:
    """Atomic room-counter operations on listings."""

    def get_listing(self, listing_id: int) -> ListingSnapshot:
        try:
            listing = Listing.objects.get(pk=listing_id)
        except (Listing.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Listing {listing_id} not found")

        return ListingSnapshot(
            id=listing.pk,
            owner_id=listing.owner_id,
            name=listing.name,
            status=listing.status,
            is_active=listing.is_active,
            price=listing.price,
            currency=listing.currency,
            rent_duration=listing.rent_duration,
            available_rooms=listing.available_rooms,
            total_rooms=listing.total_rooms,
        )

    def decrement_if_available(
        self,
        listing_id: int,
        min_status: str = Listing.Status.APPROVED,
    ) -> int | None:
        """
        Take one room from the listing

        Returns the new available count, or None when the decrement is
        denied: no room left, the listing is no longer in ``min_status``
        or it was deactivated.
        """
        with transaction.atomic():
            updated = Listing.objects.filter(
                pk=listing_id,
                status=min_status,
                is_active=True,
                available_rooms__gte=1,
            ).update(
                available_rooms=F("available_rooms") - 1,
                updated_at=timezone.now(),
            )

            if not updated:
                logger.warning(f"Inventory decrement denied for listing {listing_id}")
                return None

            remaining = self._available_rooms(listing_id)

        logger.info(f"Listing {listing_id} rooms decremented, {remaining} left")
        return remaining

    def increment(self, listing_id: int) -> int | None:
        """
        Give one room back to the listing

        Returns the new available count, or None when the listing is
        already at full capacity (or does not exist).
        """
        with transaction.atomic():
            updated = Listing.objects.filter(
                pk=listing_id,
                available_rooms__lt=F("total_rooms"),
            ).update(
                available_rooms=F("available_rooms") + 1,
                updated_at=timezone.now(),
            )

            if not updated:
                logger.warning(f"Inventory increment denied for listing {listing_id}")
                return None

            remaining = self._available_rooms(listing_id)

        logger.info(f"Listing {listing_id} rooms incremented, {remaining} available")
        return remaining

    @staticmethod
    def _available_rooms(listing_id: int) -> int:
        return Listing.objects.filter(pk=listing_id).values_list("available_rooms", flat=True).get()
