"""
Booking Command Handlers

These are the use cases of the booking payment flow. They coordinate the
ledger, the listing inventory and the payment gateway inside units of
work, and are dispatched through the message bus by views, the webhook
ingestor and Celery tasks.

Commands:
- CreateBookingCommand: Record a booking and obtain a checkout handle
- VerifyBookingCommand: Reconcile a booking with the gateway (idempotent)
- CancelBookingCommand: Cancel an unsettled booking
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from django.contrib.auth import get_user_model  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import Money
from apps.listings.inventory import InventoryStore
from apps.payments.gateway import GatewayStatus, PaystackClient
from apps.bookings.domain.access import can_access
from apps.bookings.domain.events import (
    BookingCancelled,
    BookingCreated,
    BookingFailed,
    BookingSettled,
    SettlementInconsistencyDetected,
)
from apps.bookings.domain.exceptions import (
    AuthorizationError,
    CapacityError,
    InconsistentSettlementError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from apps.bookings.domain.states import PaymentState, is_terminal
from apps.bookings.ledger import BookingLedger
from apps.bookings.models import Booking

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """Command to book a room; the caller must be a student"""
    student_id: int
    listing_id: int


@dataclass
class VerifyBookingCommand:
    """
    Command to reconcile a booking with the gateway

    Sent by the client after checkout, by the webhook ingestor and by
    the re-verification tasks. Safe to send any number of times.
    """
    reference: str


@dataclass
class CancelBookingCommand:
    """Command to cancel a booking"""
    booking_id: int
    user_id: int
    role: str


@dataclass(frozen=True)
class VerificationResult:
    booking: Booking
    verified: bool
    message: str
    error: str | None = None


def _positive_int(value, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}")
    if number < 1 or str(number) != str(value).strip():
        raise ValidationError(f"Invalid {name}")
    return number


# ===== Command Handlers =====

class CreateBookingHandler:
    """
    Handler for CreateBooking command

    The availability check here is advisory: no room is held. Inventory
    is consumed only when the payment is verified, by the conditional
    decrement in VerifyBookingHandler.

    The gateway call happens inside the unit of work, so a refused or
    unanswered authorization leaves no booking behind.
    """

    def __init__(self, ledger: BookingLedger, inventory: InventoryStore, gateway: PaystackClient):
        self.ledger = ledger
        self.inventory = inventory
        self.gateway = gateway

    def handle(self, command: CreateBookingCommand) -> Booking:
        student_id = _positive_int(command.student_id, "student id")
        listing_id = _positive_int(command.listing_id, "listing id")

        logger.info(f"Creating booking for listing {listing_id}, student {student_id}")

        with DjangoUnitOfWork() as uow:
            student = get_user_model().objects.filter(pk=student_id).first()
            if student is None or not student.is_student():
                raise AuthorizationError("Only students can book rooms")

            listing = self.inventory.get_listing(listing_id)
            if not listing.is_bookable:
                raise NotFoundError("Listing not found or not approved")
            if not listing.has_capacity:
                raise CapacityError("No rooms available in this listing")

            try:
                amount = Money(listing.price, listing.currency)
            except ValueError as exc:
                raise ValidationError(str(exc))

            booking = self.ledger.create(listing, student.pk)

            handle = self.gateway.authorize(
                amount,
                booking.reference,
                student.email,
                metadata={
                    "booking_id": booking.pk,
                    "student_id": student.pk,
                    "listing_id": listing.id,
                    "listing_name": listing.name,
                },
            )
            self.ledger.attach_authorization(
                booking.reference,
                authorization_url=handle.authorization_url,
                access_code=handle.access_code,
            )
            booking.authorization_url = handle.authorization_url
            booking.access_code = handle.access_code

            uow.add_event(BookingCreated(
                aggregate_id=booking.reference,
                booking_id=booking.pk,
                listing_id=listing.id,
                student_id=student.pk,
                amount=amount.amount,
                currency=amount.currency,
            ))

        logger.info(f"Booking {booking.reference} created, awaiting payment")
        return booking


class VerifyBookingHandler:
    """
    Handler for VerifyBooking command

    Strategy:
    1. Settled bookings return immediately (no gateway call)
    2. Failed and cancelled bookings never settle. The gateway is still
       asked, and a captured payment flags them for reconciliation
    3. Ask the gateway; an unknown outcome propagates and leaves the row as is
    4. Definite non-success: pending/processing -> failed
    5. Success: pending -> processing (committed on its own), then in one
       transaction processing -> success and the conditional decrement.
       A denied decrement rolls that transaction back and the booking is
       failed and flagged for reconciliation instead.

    Every state change is a compare-and-set, so concurrent verifies of the
    same reference consume at most one room between them.
    """

    def __init__(self, ledger: BookingLedger, inventory: InventoryStore, gateway: PaystackClient):
        self.ledger = ledger
        self.inventory = inventory
        self.gateway = gateway

    def handle(self, command: VerifyBookingCommand) -> VerificationResult:
        reference = (command.reference or "").strip()
        if not reference:
            raise ValidationError("Payment reference is required")

        booking = self.ledger.get(reference)

        if booking.payment_status == PaymentState.SUCCESS:
            return VerificationResult(booking, True, "Booking already verified")
        if is_terminal(booking.payment_status) and booking.requires_reconciliation:
            return VerificationResult(booking, False, f"Booking is {booking.payment_status}")

        status = self.gateway.check_status(reference)

        if is_terminal(booking.payment_status):
            return self._closed(booking, status)
        if not status.success:
            return self._fail(booking, status)
        return self._settle(booking, status)

    def _fail(self, booking: Booking, status: GatewayStatus) -> VerificationResult:
        message = status.message or "Payment verification failed"

        with DjangoUnitOfWork() as uow:
            moved = self.ledger.transition(
                booking.reference,
                PaymentState.FAILED,
                payment_meta=status.raw or {"message": message},
            )
            if moved:
                uow.add_event(BookingFailed(
                    aggregate_id=booking.reference,
                    booking_id=booking.pk,
                    reason=message,
                ))

        if not moved:
            return self._current(booking.reference)

        logger.info(f"Booking {booking.reference} failed verification: {message}")
        return VerificationResult(self.ledger.get(booking.reference), False, message)

    def _settle(self, booking: Booking, status: GatewayStatus) -> VerificationResult:
        reference = booking.reference
        gateway_reference = status.reference or reference

        if not self.ledger.transition(
            reference,
            PaymentState.PROCESSING,
            gateway_reference=gateway_reference,
            payment_meta=status.raw,
        ):
            return self._lost_race(reference, status)

        try:
            with DjangoUnitOfWork() as uow:
                if not self.ledger.transition(reference, PaymentState.SUCCESS, settled_at=timezone.now()):
                    settled = False
                else:
                    remaining = self.inventory.decrement_if_available(booking.listing_id)
                    if remaining is None:
                        raise CapacityError(f"Listing {booking.listing_id} has no room left")
                    settled = True
                    uow.add_event(BookingSettled(
                        aggregate_id=reference,
                        booking_id=booking.pk,
                        listing_id=booking.listing_id,
                        student_id=booking.student_id,
                        gateway_reference=gateway_reference,
                        rooms_left=remaining,
                    ))
        except CapacityError as exc:
            return self._flag_inconsistent(booking, status, gateway_reference, exc)

        if not settled:
            return self._lost_race(reference, status)

        logger.info(f"Booking {reference} verified, listing {booking.listing_id} has {remaining} rooms left")
        return VerificationResult(self.ledger.get(reference), True, "Booking verified successfully")

    def _flag_inconsistent(
        self,
        booking: Booking,
        status: GatewayStatus,
        gateway_reference: str,
        cause: CapacityError,
    ) -> VerificationResult:
        error = InconsistentSettlementError(booking.reference, booking.listing_id, gateway_reference)
        error.__cause__ = cause
        meta = {**status.raw, "error": str(error), "failure_code": "capacity"}

        with DjangoUnitOfWork() as uow:
            moved = self.ledger.transition(
                booking.reference,
                PaymentState.FAILED,
                requires_reconciliation=True,
                payment_meta=meta,
            )
            if not moved:
                self.ledger.flag_for_reconciliation(booking.reference, meta)
            uow.add_event(SettlementInconsistencyDetected(
                aggregate_id=booking.reference,
                booking_id=booking.pk,
                listing_id=booking.listing_id,
                gateway_reference=gateway_reference,
                amount=booking.amount,
                currency=booking.currency,
            ))

        logger.critical(
            f"Settlement inconsistency: booking {booking.reference}, listing {booking.listing_id}, "
            f"gateway reference {gateway_reference}",
            exc_info=error,
        )
        return VerificationResult(
            self.ledger.get(booking.reference),
            False,
            "Payment received but no rooms are available; the booking was flagged for a refund",
            error=error.code,
        )

    def _closed(self, booking: Booking, status: GatewayStatus) -> VerificationResult:
        """A failed or cancelled booking; only a captured payment changes anything."""
        if not status.success:
            return VerificationResult(booking, False, f"Booking is {booking.payment_status}")
        return self._flag_paid_after_close(booking, status)

    def _flag_paid_after_close(self, booking: Booking, status: GatewayStatus) -> VerificationResult:
        """Money was captured for a booking that can no longer consume a room."""
        gateway_reference = status.reference or booking.reference
        error = InconsistentSettlementError(booking.reference, booking.listing_id, gateway_reference)
        meta = {
            **status.raw,
            "error": f"Payment captured after the booking was {booking.payment_status}",
            "failure_code": f"paid_after_{booking.payment_status}",
        }

        with DjangoUnitOfWork() as uow:
            if self.ledger.flag_for_reconciliation(booking.reference, meta):
                uow.add_event(SettlementInconsistencyDetected(
                    aggregate_id=booking.reference,
                    booking_id=booking.pk,
                    listing_id=booking.listing_id,
                    gateway_reference=gateway_reference,
                    amount=booking.amount,
                    currency=booking.currency,
                ))

        logger.critical(
            f"Payment captured for {booking.payment_status} booking {booking.reference}, "
            f"listing {booking.listing_id}, gateway reference {gateway_reference}",
            exc_info=error,
        )
        return VerificationResult(
            self.ledger.get(booking.reference),
            False,
            f"Payment received for a {booking.payment_status} booking; the booking was flagged for a refund",
            error=error.code,
        )

    def _lost_race(self, reference: str, status: GatewayStatus) -> VerificationResult:
        current = self.ledger.get(reference)
        if is_terminal(current.payment_status) and current.payment_status != PaymentState.SUCCESS:
            # Paid, but a concurrent cancel or failure closed the booking first.
            return self._flag_paid_after_close(current, status)
        return self._current(reference)

    def _current(self, reference: str) -> VerificationResult:
        booking = self.ledger.get(reference)
        if booking.payment_status == PaymentState.SUCCESS:
            return VerificationResult(booking, True, "Booking already verified")
        return VerificationResult(booking, False, f"Booking is {booking.payment_status}")


class CancelBookingHandler:
    """
    Handler for CancelBooking command

    Only pending and processing bookings can be cancelled. No room is
    returned to the listing: unsettled bookings never consumed one.
    """

    def __init__(self, ledger: BookingLedger):
        self.ledger = ledger

    def handle(self, command: CancelBookingCommand) -> Booking:
        booking = self.ledger.get_by_id(command.booking_id)

        if not can_access(booking, command.user_id, command.role):
            raise AuthorizationError("Not authorized to cancel this booking")

        logger.info(f"Cancelling booking {booking.reference} by user {command.user_id}")

        with DjangoUnitOfWork() as uow:
            moved = self.ledger.transition(
                booking.reference,
                PaymentState.CANCELLED,
                cancelled_at=timezone.now(),
                cancelled_by_id=command.user_id,
            )
            if not moved:
                current = self.ledger.get(booking.reference)
                raise InvalidStateError(f"Cannot cancel booking with status: {current.payment_status}")

            uow.add_event(BookingCancelled(
                aggregate_id=booking.reference,
                booking_id=booking.pk,
                cancelled_by_id=command.user_id,
                previous_state=booking.payment_status,
            ))

        logger.info(f"Booking {booking.reference} cancelled")
        return self.ledger.get(booking.reference)
