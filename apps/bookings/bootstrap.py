"""
Message bus wiring for the booking flow

Called once from BookingsConfig.ready(). Handlers share one gateway
client, built from settings at wiring time.
"""

from __future__ import annotations

import logging

from shared.application.message_bus import MessageBus, message_bus
from apps.listings.inventory import InventoryStore
from apps.payments.gateway import PaystackClient

from .application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    VerifyBookingCommand,
    VerifyBookingHandler,
)
from .domain.events import BookingSettled, SettlementInconsistencyDetected
from .ledger import BookingLedger
from .notifications import on_booking_settled, on_settlement_inconsistency

logger = logging.getLogger(__name__)


def bootstrap(bus: MessageBus = message_bus, gateway: PaystackClient | None = None) -> MessageBus:
    gateway = gateway or PaystackClient.from_settings()
    ledger = BookingLedger()
    inventory = InventoryStore()

    handlers = {
        CreateBookingCommand: CreateBookingHandler(ledger, inventory, gateway),
        VerifyBookingCommand: VerifyBookingHandler(ledger, inventory, gateway),
        CancelBookingCommand: CancelBookingHandler(ledger),
    }
    for command_type, handler in handlers.items():
        bus.register_command_handler(command_type, handler, replace=True)

    bus.subscribe(BookingSettled, on_booking_settled)
    bus.subscribe(SettlementInconsistencyDetected, on_settlement_inconsistency)

    if gateway.emulated:
        logger.warning("Paystack is not configured, bookings use emulated payments")
    return bus
