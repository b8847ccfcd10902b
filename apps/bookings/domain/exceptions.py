"""
Booking errors

The generic errors (validation, not found, authorization) come from the
shared kernel and are re-exported here so callers import the whole
taxonomy from one place.
"""

from shared.domain.exceptions import (
    AuthorizationError,
    DomainError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    'AuthorizationError',
    'BookingError',
    'CapacityError',
    'InconsistentSettlementError',
    'InvalidStateError',
    'NotFoundError',
    'ValidationError',
]


class BookingError(DomainError):
    default_code = 'booking_error'


class CapacityError(BookingError):
    """No room left on the listing."""

    status_code = 409
    default_code = 'no_capacity'
    default_detail = 'No rooms available.'


class InvalidStateError(BookingError):
    """The booking's payment state does not allow the operation."""

    status_code = 409
    default_code = 'invalid_state'
    default_detail = 'Booking cannot be changed in its current state.'


class InconsistentSettlementError(BookingError):
    """
    Payment captured by the gateway but the inventory decrement was denied.

    Never raised to API callers: it is logged at CRITICAL and the booking
    is flagged for reconciliation.
    """

    status_code = 409
    default_code = 'inconsistent_settlement'
    default_detail = 'Payment received but no room could be reserved.'

    def __init__(self, reference: str, listing_id: int, gateway_reference: str = ''):
        self.reference = reference
        self.listing_id = listing_id
        self.gateway_reference = gateway_reference
        super().__init__(
            f"Booking {reference} paid (gateway ref {gateway_reference or 'n/a'}) "
            f"but listing {listing_id} had no room left"
        )
