"""
Webhook Ingestor

Turns authenticated Paystack notifications into booking verifications.
Paystack retries deliveries that are not acknowledged, so once the
signature is valid the ingestor always acknowledges; internal failures
are logged and, when the gateway was unreachable, handed to a Celery
re-verification.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from django.conf import settings  # type: ignore

from shared.application.message_bus import MessageBus, message_bus

from .exceptions import GatewayUnavailableError, InvalidWebhookSignature
from .gateway import PaystackClient

logger = logging.getLogger(__name__)

CHARGE_SUCCESS = "charge.success"
ACKNOWLEDGEMENT = {"received": True}


class WebhookIngestor:
    def __init__(self, gateway: PaystackClient | None = None, bus: MessageBus | None = None):
        self.gateway = gateway or PaystackClient.from_settings()
        self.bus = bus or message_bus

    def ingest(self, raw_payload: bytes, signature: str | None) -> dict[str, Any]:
        if not self.gateway.verify_webhook_signature(raw_payload, signature):
            logger.warning("Rejected Paystack webhook with invalid signature")
            raise InvalidWebhookSignature()

        try:
            event = json.loads(raw_payload)
        except (TypeError, ValueError):
            logger.error("Signed Paystack webhook carried an unreadable body")
            return dict(ACKNOWLEDGEMENT)

        event_type = event.get("event") if isinstance(event, dict) else None
        if event_type != CHARGE_SUCCESS:
            logger.info(f"Ignoring Paystack webhook event {event_type}")
            return dict(ACKNOWLEDGEMENT)

        reference = (event.get("data") or {}).get("reference")
        if not reference:
            logger.warning("charge.success webhook without a reference")
            return dict(ACKNOWLEDGEMENT)

        self._verify(reference)
        return dict(ACKNOWLEDGEMENT)

    def _verify(self, reference: str) -> None:
        from apps.bookings.application.command_handlers import VerifyBookingCommand

        try:
            result = self.bus.handle_command(VerifyBookingCommand(reference=reference))
        except GatewayUnavailableError as exc:
            logger.warning(f"Gateway unavailable while verifying {reference} from webhook: {exc}")
            self._schedule_reverify(reference)
        except Exception as exc:
            logger.error(f"Webhook verification of {reference} failed: {exc}", exc_info=True)
        else:
            logger.info(f"Webhook verification of {reference}: {result.message}")

    def _schedule_reverify(self, reference: str) -> None:
        from apps.bookings.tasks import reverify_booking

        countdown = getattr(settings, "BOOKING_REVERIFY_COUNTDOWN", 30)
        try:
            reverify_booking.apply_async(args=[reference], countdown=countdown)
        except Exception as exc:
            logger.error(f"Could not schedule re-verification of {reference}: {exc}", exc_info=True)
