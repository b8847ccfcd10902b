"""Booking emails and the event handlers that schedule them."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings  # type: ignore
from django.core.mail import mail_admins, send_mail  # type: ignore
from django.utils.html import strip_tags  # type: ignore

from .domain.events import BookingSettled, SettlementInconsistencyDetected

if TYPE_CHECKING:  # pragma: no cover
    from .models import Booking

logger = logging.getLogger(__name__)


# ============================================================================
# EMAILS
# ============================================================================

def send_booking_settled_email(booking: "Booking") -> bool:
    """Payment confirmation for the student."""
    student = booking.student
    subject = f"Booking {booking.reference} confirmed"
    html_message = f"""
    <html>
    <body>
        <h2>Hello {student.username or student.email},</h2>
        <p>Your payment was received and your room is reserved.</p>
        <ul>
            <li><strong>Reference:</strong> {booking.reference}</li>
            <li><strong>Hostel:</strong> {booking.listing.name}</li>
            <li><strong>Duration:</strong> {booking.get_duration_display()}</li>
            <li><strong>Amount:</strong> {booking.amount} {booking.currency}</li>
        </ul>
    </body>
    </html>
    """

    try:
        send_mail(
            subject=subject,
            message=strip_tags(html_message),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[student.email],
            html_message=html_message,
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Failed to send email to {student.email}: {e}", exc_info=True)
        return False

    logger.info(f"Email sent successfully to {student.email}: {subject}")
    return True


def alert_settlement_inconsistency(booking: "Booking") -> bool:
    """Tell operators that a payment was captured without a room."""
    subject = f"Booking {booking.reference} needs reconciliation"
    message = (
        f"Payment for booking {booking.reference} was captured by the gateway "
        f"(gateway reference {booking.gateway_reference or 'n/a'}) but listing "
        f"{booking.listing_id} had no room left.\n\n"
        f"Amount: {booking.amount} {booking.currency}\n"
        f"Student: {booking.student.email}\n\n"
        "Refund the student or re-home them, then clear the reconciliation flag."
    )

    try:
        mail_admins(subject, message, fail_silently=False)
    except Exception as e:
        logger.error(f"Failed to alert administrators about {booking.reference}: {e}", exc_info=True)
        return False

    logger.info(f"Administrators alerted about booking {booking.reference}")
    return True


# ============================================================================
# EVENT HANDLERS
# ============================================================================

def on_booking_settled(event: BookingSettled) -> None:
    from .tasks import notify_booking_settled

    notify_booking_settled.delay(event.booking_id)


def on_settlement_inconsistency(event: SettlementInconsistencyDetected) -> None:
    from .tasks import alert_booking_reconciliation

    alert_booking_reconciliation.delay(event.booking_id)
