"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from decimal import Decimal

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: A booking was created and the gateway returned a checkout handle
    """
    booking_id: int
    listing_id: int
    student_id: int
    amount: Decimal
    currency: str


@dataclass(kw_only=True)
class BookingSettled(DomainEvent):
    """
    Event: Payment confirmed and one room consumed (processing -> success)

    Triggers:
    - Send the booking confirmation to the student
    """
    booking_id: int
    listing_id: int
    student_id: int
    gateway_reference: str
    rooms_left: int


@dataclass(kw_only=True)
class BookingFailed(DomainEvent):
    booking_id: int
    reason: str


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    booking_id: int
    cancelled_by_id: int
    previous_state: str


@dataclass(kw_only=True)
class SettlementInconsistencyDetected(DomainEvent):
    """
    Event: The gateway captured the payment but no room could be consumed

    The booking is flagged for reconciliation; operators must refund or
    re-home the student.

    Triggers:
    - Alert site administrators
    """
    booking_id: int
    listing_id: int
    gateway_reference: str
    amount: Decimal
    currency: str
