"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.message_bus import message_bus
from shared.domain.exceptions import DomainError
from apps.payments.exceptions import GatewayUnavailableError

from .application.command_handlers import VerifyBookingCommand
from .ledger import BookingLedger
from .models import Booking
from .notifications import alert_settlement_inconsistency, send_booking_settled_email

logger = logging.getLogger(__name__)


# ============================================================================
# VERIFICATION
# ============================================================================

@shared_task(
    name="bookings.reverify_booking",
    autoretry_for=(GatewayUnavailableError,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
    max_retries=getattr(settings, "BOOKING_REVERIFY_MAX_RETRIES", 5),
)
def reverify_booking(reference: str) -> dict[str, object]:
    """
    Verify a booking again after the gateway failed to answer.

    Retried with exponential backoff while the gateway stays unavailable.
    """
    result = message_bus.handle_command(VerifyBookingCommand(reference=reference))
    logger.info(f"Re-verified booking {reference}: {result.booking.payment_status}")
    return {
        "reference": reference,
        "payment_status": result.booking.payment_status,
        "verified": result.verified,
    }


# ============================================================================
# PERIODIC TASKS (scheduled by Celery Beat)
# ============================================================================

@shared_task(name="bookings.sweep_unsettled_bookings")
def sweep_unsettled_bookings() -> dict[str, int]:
    """
    Re-drive bookings stuck in pending or processing.

    A booking stays unsettled when the student never came back from
    checkout, the webhook was lost or the gateway timed out. Each one
    older than BOOKING_SWEEP_AGE_MINUTES is verified again.
    """
    age = getattr(settings, "BOOKING_SWEEP_AGE_MINUTES", 30)
    cutoff = timezone.now() - timedelta(minutes=age)
    references = BookingLedger().unsettled_before(cutoff)

    verified = failed = deferred = 0
    for reference in references:
        try:
            result = message_bus.handle_command(VerifyBookingCommand(reference=reference))
        except GatewayUnavailableError:
            deferred += 1
            logger.warning(f"Gateway unavailable while sweeping booking {reference}")
            continue
        except DomainError as e:
            logger.error(f"Error sweeping booking {reference}: {e}", exc_info=True)
            continue

        if result.verified:
            verified += 1
        elif result.booking.payment_status == Booking.PaymentStatus.FAILED:
            failed += 1

    if references:
        logger.info(
            f"Swept {len(references)} unsettled bookings: "
            f"{verified} verified, {failed} failed, {deferred} deferred"
        )

    return {"checked": len(references), "verified": verified, "failed": failed, "deferred": deferred}


# ============================================================================
# NOTIFICATION TASKS
# ============================================================================

@shared_task(name="bookings.notify_booking_settled")
def notify_booking_settled(booking_id: int) -> bool:
    """Email the student that the booking is paid."""
    try:
        booking = Booking.objects.select_related("student", "listing").get(id=booking_id)
    except Booking.DoesNotExist:
        logger.error(f"Booking {booking_id} not found for settlement notification")
        return False

    return send_booking_settled_email(booking)


@shared_task(name="bookings.alert_booking_reconciliation")
def alert_booking_reconciliation(booking_id: int) -> bool:
    try:
        booking = Booking.objects.select_related("student", "listing").get(id=booking_id)
    except Booking.DoesNotExist:
        logger.error(f"Booking {booking_id} not found for reconciliation alert")
        return False

    return alert_settlement_inconsistency(booking)
