"""
Payment lifecycle of a booking

    pending ──► processing ──► success
       │            │
       ├────────────┴──► failed
       └────────────┴──► cancelled

``success``, ``failed`` and ``cancelled`` are terminal. Every write of
``Booking.payment_status`` is checked against ``TRANSITIONS`` and applied
as a compare-and-set on the sources returned by ``sources_for``.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class PaymentState(models.TextChoices):
    PENDING = "pending", _("Pending")
    PROCESSING = "processing", _("Processing")
    SUCCESS = "success", _("Success")
    FAILED = "failed", _("Failed")
    CANCELLED = "cancelled", _("Cancelled")


TRANSITIONS: dict[str, frozenset[str]] = {
    PaymentState.PENDING: frozenset({
        PaymentState.PROCESSING,
        PaymentState.FAILED,
        PaymentState.CANCELLED,
    }),
    # processing -> processing refreshes gateway metadata on a repeated verify
    PaymentState.PROCESSING: frozenset({
        PaymentState.PROCESSING,
        PaymentState.SUCCESS,
        PaymentState.FAILED,
        PaymentState.CANCELLED,
    }),
    PaymentState.SUCCESS: frozenset(),
    PaymentState.FAILED: frozenset(),
    PaymentState.CANCELLED: frozenset(),
}

TERMINAL_STATES = frozenset(state for state, targets in TRANSITIONS.items() if not targets)
UNSETTLED_STATES = frozenset({PaymentState.PENDING, PaymentState.PROCESSING})


def can_transition(source: str, target: str) -> bool:
    return target in TRANSITIONS.get(source, frozenset())


def sources_for(target: str) -> list[str]:
    """States from which ``target`` may be reached, in declaration order."""
    return [source for source, targets in TRANSITIONS.items() if target in targets]


def is_terminal(state: str) -> bool:
    return state in TERMINAL_STATES


CANCELLABLE_STATES = frozenset(sources_for(PaymentState.CANCELLED))
