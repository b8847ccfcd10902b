"""Tests for the booking command handlers (create, verify, cancel)."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch

from django.core import mail
from django.test import TestCase

from apps.bookings.application.command_handlers import (
    CancelBookingCommand,
    CreateBookingCommand,
    VerifyBookingCommand,
)
from apps.bookings.domain.exceptions import (
    AuthorizationError,
    CapacityError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from apps.bookings.domain.states import PaymentState
from apps.bookings.ledger import BookingLedger
from apps.bookings.models import Booking
from apps.bookings.tests.factories import make_admin, make_listing, make_owner, make_student
from apps.listings.models import Listing
from apps.payments.exceptions import GatewayDeclinedError, GatewayUnavailableError
from apps.payments.gateway import GatewayStatus, PaystackClient
from shared.application.message_bus import message_bus


def paid(reference: str) -> GatewayStatus:
    return GatewayStatus(
        success=True,
        reference=reference,
        raw={"status": "success", "reference": reference, "gateway_response": "Approved"},
        message="Approved",
    )


def declined(reference: str) -> GatewayStatus:
    return GatewayStatus(
        success=False,
        reference=reference,
        raw={"status": "failed", "reference": reference, "gateway_response": "Insufficient funds"},
        message="Insufficient funds",
    )


class BookingFlowTestCase(TestCase):
    def setUp(self) -> None:
        self.owner = make_owner()
        self.student = make_student()
        self.listing = make_listing(owner=self.owner, total_rooms=2, price=Decimal("1500.00"))

    def create(self, student=None, listing=None) -> Booking:
        return message_bus.handle_command(CreateBookingCommand(
            student_id=(student or self.student).pk,
            listing_id=(listing or self.listing).pk,
        ))

    def verify(self, reference: str):
        return message_bus.handle_command(VerifyBookingCommand(reference=reference))

    def cancel(self, booking: Booking, user, role: str | None = None) -> Booking:
        return message_bus.handle_command(CancelBookingCommand(
            booking_id=booking.pk,
            user_id=user.pk,
            role=role or user.effective_role,
        ))

    def rooms(self) -> int:
        self.listing.refresh_from_db()
        return self.listing.available_rooms


class CreateBookingTests(BookingFlowTestCase):
    def test_creates_pending_booking_with_checkout_handle(self) -> None:
        booking = self.create()

        self.assertEqual(booking.payment_status, Booking.PaymentStatus.PENDING)
        self.assertRegex(booking.reference, r"^HHL-\d{13}-[A-Z0-9]{6}$")
        self.assertEqual(booking.amount, Decimal("1500.00"))
        self.assertEqual(booking.currency, "GHS")
        self.assertEqual(booking.duration, Listing.RentDuration.SEMESTER)
        self.assertTrue(booking.authorization_url)

        stored = Booking.objects.get(pk=booking.pk)
        self.assertEqual(stored.authorization_url, booking.authorization_url)
        self.assertEqual(stored.access_code, booking.access_code)

    def test_creation_does_not_reserve_inventory(self) -> None:
        self.create()
        self.create()
        self.create()

        self.assertEqual(self.rooms(), 2)
        self.assertEqual(Booking.objects.count(), 3)

    def test_authorize_receives_booking_metadata(self) -> None:
        with patch.object(PaystackClient, "authorize") as authorize:
            authorize.return_value.authorization_url = "https://checkout.paystack.com/x"
            authorize.return_value.access_code = "x"
            booking = self.create()

        amount, reference, email = authorize.call_args.args
        self.assertEqual(amount.to_minor_units(), 150000)
        self.assertEqual(reference, booking.reference)
        self.assertEqual(email, self.student.email)
        self.assertEqual(
            authorize.call_args.kwargs["metadata"],
            {
                "booking_id": booking.pk,
                "student_id": self.student.pk,
                "listing_id": self.listing.pk,
                "listing_name": self.listing.name,
            },
        )

    def test_only_students_can_book(self) -> None:
        with self.assertRaises(AuthorizationError):
            self.create(student=self.owner)
        with self.assertRaises(AuthorizationError):
            self.create(student=make_admin())
        self.assertFalse(Booking.objects.exists())

    def test_listing_must_be_approved_and_active(self) -> None:
        pending = make_listing(owner=self.owner, status=Listing.Status.PENDING)
        inactive = make_listing(owner=self.owner, is_active=False)

        for listing in (pending, inactive):
            with self.assertRaises(NotFoundError):
                self.create(listing=listing)
        self.assertFalse(Booking.objects.exists())

    def test_missing_listing(self) -> None:
        with self.assertRaises(NotFoundError):
            message_bus.handle_command(CreateBookingCommand(student_id=self.student.pk, listing_id=999999))

    def test_full_listing_is_rejected(self) -> None:
        Listing.objects.filter(pk=self.listing.pk).update(available_rooms=0)

        with self.assertRaises(CapacityError):
            self.create()

    def test_malformed_ids(self) -> None:
        for student_id, listing_id in (("abc", 1), (self.student.pk, "1; drop"), (self.student.pk, 0), (None, 1)):
            with self.assertRaises(ValidationError):
                message_bus.handle_command(CreateBookingCommand(student_id=student_id, listing_id=listing_id))

    def test_gateway_refusal_leaves_no_booking(self) -> None:
        with patch.object(PaystackClient, "authorize", side_effect=GatewayDeclinedError("Invalid email")):
            with self.assertRaises(GatewayDeclinedError):
                self.create()

        self.assertFalse(Booking.objects.exists())

    def test_gateway_timeout_leaves_no_booking(self) -> None:
        with patch.object(PaystackClient, "authorize", side_effect=GatewayUnavailableError()):
            with self.assertRaises(GatewayUnavailableError):
                self.create()

        self.assertFalse(Booking.objects.exists())


class VerifyBookingTests(BookingFlowTestCase):
    def test_successful_payment_settles_and_consumes_one_room(self) -> None:
        booking = self.create()

        with patch.object(PaystackClient, "check_status", return_value=paid(booking.reference)):
            result = self.verify(booking.reference)

        self.assertTrue(result.verified)
        self.assertEqual(result.booking.payment_status, Booking.PaymentStatus.SUCCESS)
        self.assertEqual(result.booking.gateway_reference, booking.reference)
        self.assertIsNotNone(result.booking.settled_at)
        self.assertEqual(result.booking.payment_meta["gateway_response"], "Approved")
        self.assertEqual(self.rooms(), 1)

    def test_verify_is_idempotent(self) -> None:
        booking = self.create()

        with patch.object(PaystackClient, "check_status", return_value=paid(booking.reference)) as check_status:
            results = [self.verify(booking.reference) for _attempt in range(3)]

        self.assertTrue(all(result.verified for result in results))
        self.assertEqual(check_status.call_count, 1)
        self.assertEqual(results[1].message, "Booking already verified")
        self.assertEqual(self.rooms(), 1)

    def test_declined_payment_fails_without_touching_inventory(self) -> None:
        booking = self.create()

        with patch.object(PaystackClient, "check_status", return_value=declined(booking.reference)):
            result = self.verify(booking.reference)

        self.assertFalse(result.verified)
        self.assertEqual(result.message, "Insufficient funds")
        self.assertEqual(result.booking.payment_status, Booking.PaymentStatus.FAILED)
        self.assertEqual(result.booking.payment_meta["gateway_response"], "Insufficient funds")
        self.assertEqual(self.rooms(), 2)

    def test_failed_booking_is_terminal(self) -> None:
        booking = self.create()
        with patch.object(PaystackClient, "check_status", return_value=declined(booking.reference)):
            self.verify(booking.reference)
            result = self.verify(booking.reference)

        self.assertFalse(result.verified)
        self.assertEqual(result.booking.payment_status, Booking.PaymentStatus.FAILED)
        self.assertFalse(result.booking.requires_reconciliation)
        self.assertEqual(self.rooms(), 2)

    def test_payment_captured_after_failure_is_flagged(self) -> None:
        booking = self.create()
        with patch.object(PaystackClient, "check_status", return_value=declined(booking.reference)):
            self.verify(booking.reference)

        with patch.object(PaystackClient, "check_status", return_value=paid(booking.reference)) as check_status:
            with self.captureOnCommitCallbacks(execute=True):
                result = self.verify(booking.reference)
            again = self.verify(booking.reference)

        self.assertEqual(check_status.call_count, 1)
        self.assertFalse(result.verified)
        self.assertEqual(result.error, "inconsistent_settlement")
        self.assertEqual(result.booking.payment_status, Booking.PaymentStatus.FAILED)
        self.assertTrue(result.booking.requires_reconciliation)
        self.assertEqual(result.booking.payment_meta["failure_code"], "paid_after_failed")
        self.assertFalse(again.verified)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(self.rooms(), 2)

    def test_gateway_timeout_leaves_booking_reverifiable(self) -> None:
        booking = self.create()

        with patch.object(PaystackClient, "check_status", side_effect=GatewayUnavailableError()):
            with self.assertRaises(GatewayUnavailableError):
                self.verify(booking.reference)

        booking.refresh_from_db()
        self.assertEqual(booking.payment_status, Booking.PaymentStatus.PENDING)
        self.assertEqual(self.rooms(), 2)

        with patch.object(PaystackClient, "check_status", return_value=paid(booking.reference)):
            result = self.verify(booking.reference)

        self.assertTrue(result.verified)
        self.assertEqual(self.rooms(), 1)

    def test_oversubscribed_listing_settles_only_its_capacity(self) -> None:
        listing = make_listing(owner=self.owner, total_rooms=1)
        first = self.create(listing=listing)
        second = self.create(student=make_student(), listing=listing)

        with patch.object(PaystackClient, "check_status", side_effect=lambda reference: paid(reference)):
            first_result = self.verify(first.reference)
            second_result = self.verify(second.reference)

        self.assertTrue(first_result.verified)
        self.assertFalse(second_result.verified)
        self.assertEqual(second_result.error, "inconsistent_settlement")

        second.refresh_from_db()
        self.assertEqual(second.payment_status, Booking.PaymentStatus.FAILED)
        self.assertTrue(second.requires_reconciliation)
        self.assertEqual(second.payment_meta["failure_code"], "capacity")
        self.assertIsNone(second.settled_at)

        listing.refresh_from_db()
        self.assertEqual(listing.available_rooms, 0)
        self.assertEqual(Booking.objects.filter(listing=listing, payment_status="success").count(), 1)

    def test_inconsistency_alerts_operators(self) -> None:
        listing = make_listing(owner=self.owner, total_rooms=1)
        booking = self.create(listing=listing)
        Listing.objects.filter(pk=listing.pk).update(available_rooms=0)

        with self.captureOnCommitCallbacks(execute=True):
            result = self.verify(booking.reference)

        self.assertFalse(result.verified)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(booking.reference, mail.outbox[0].subject)
        self.assertEqual(mail.outbox[0].to, ["ops@hostelhub.local"])

    def test_listing_withdrawn_before_payment(self) -> None:
        booking = self.create()
        Listing.objects.filter(pk=self.listing.pk).update(is_active=False)

        result = self.verify(booking.reference)

        self.assertFalse(result.verified)
        self.assertTrue(result.booking.requires_reconciliation)
        self.assertEqual(self.rooms(), 2)

    def test_settlement_emails_the_student(self) -> None:
        booking = self.create()

        with self.captureOnCommitCallbacks(execute=True):
            self.verify(booking.reference)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.student.email])
        self.assertIn(booking.reference, mail.outbox[0].body)

    def test_unknown_reference(self) -> None:
        with self.assertRaises(NotFoundError):
            self.verify("HHL-0-UNKNWN")

    def test_blank_reference(self) -> None:
        with self.assertRaises(ValidationError):
            self.verify("   ")

    def test_amount_is_frozen_at_creation(self) -> None:
        booking = self.create()
        Listing.objects.filter(pk=self.listing.pk).update(price=Decimal("2000.00"))

        result = self.verify(booking.reference)

        self.assertEqual(result.booking.amount, Decimal("1500.00"))

    def test_settled_booking_cannot_be_repriced(self) -> None:
        booking = self.create()
        settled = self.verify(booking.reference).booking

        settled.amount = Decimal("1.00")
        with self.assertRaises(InvalidStateError):
            settled.save()

        settled.refresh_from_db()
        self.assertEqual(settled.amount, Decimal("1500.00"))

    def test_reference_cannot_be_reassigned(self) -> None:
        booking = self.create()

        booking.reference = "HHL-1-OTHER1"
        with self.assertRaises(InvalidStateError):
            booking.save()


class CancelBookingTests(BookingFlowTestCase):
    def test_student_cancels_pending_booking(self) -> None:
        booking = self.create()

        cancelled = self.cancel(booking, self.student)

        self.assertEqual(cancelled.payment_status, Booking.PaymentStatus.CANCELLED)
        self.assertEqual(cancelled.cancelled_by_id, self.student.pk)
        self.assertIsNotNone(cancelled.cancelled_at)
        self.assertEqual(self.rooms(), 2)

    def test_second_cancel_is_rejected(self) -> None:
        booking = self.create()
        self.cancel(booking, self.student)

        with self.assertRaises(InvalidStateError):
            self.cancel(booking, self.student)

    def test_owner_and_admin_may_cancel(self) -> None:
        first = self.create()
        second = self.create()

        self.assertEqual(self.cancel(first, self.owner).payment_status, Booking.PaymentStatus.CANCELLED)
        self.assertEqual(self.cancel(second, make_admin()).payment_status, Booking.PaymentStatus.CANCELLED)

    def test_strangers_may_not_cancel(self) -> None:
        booking = self.create()

        with self.assertRaises(AuthorizationError):
            self.cancel(booking, make_student())
        with self.assertRaises(AuthorizationError):
            self.cancel(booking, make_owner())

        booking.refresh_from_db()
        self.assertEqual(booking.payment_status, Booking.PaymentStatus.PENDING)

    def test_settled_booking_cannot_be_cancelled(self) -> None:
        booking = self.create()
        self.verify(booking.reference)

        with self.assertRaises(InvalidStateError):
            self.cancel(booking, self.student)

        self.assertEqual(self.rooms(), 1)

    def test_cancelled_booking_is_never_settled(self) -> None:
        booking = self.create()
        self.cancel(booking, self.student)

        with patch.object(PaystackClient, "check_status", return_value=declined(booking.reference)):
            result = self.verify(booking.reference)

        self.assertFalse(result.verified)
        self.assertEqual(result.booking.payment_status, Booking.PaymentStatus.CANCELLED)
        self.assertFalse(result.booking.requires_reconciliation)
        self.assertEqual(self.rooms(), 2)

    def test_payment_captured_after_cancel_is_flagged(self) -> None:
        booking = self.create()
        self.cancel(booking, self.student)

        with patch.object(PaystackClient, "check_status", return_value=paid(booking.reference)):
            with self.captureOnCommitCallbacks(execute=True):
                result = self.verify(booking.reference)

        self.assertFalse(result.verified)
        self.assertEqual(result.error, "inconsistent_settlement")
        self.assertEqual(result.booking.payment_status, Booking.PaymentStatus.CANCELLED)
        self.assertTrue(result.booking.requires_reconciliation)
        self.assertEqual(result.booking.payment_meta["failure_code"], "paid_after_cancelled")
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(booking.reference, mail.outbox[0].subject)
        self.assertEqual(self.rooms(), 2)

    def test_processing_booking_can_be_cancelled_once(self) -> None:
        booking = self.create()
        self.assertTrue(BookingLedger().transition(booking.reference, PaymentState.PROCESSING))

        cancelled = self.cancel(booking, self.student)

        self.assertEqual(cancelled.payment_status, Booking.PaymentStatus.CANCELLED)
        with self.assertRaises(InvalidStateError):
            self.cancel(booking, self.student)
        self.assertEqual(self.rooms(), 2)

    def test_missing_booking(self) -> None:
        with self.assertRaises(NotFoundError):
            message_bus.handle_command(CancelBookingCommand(booking_id=999999, user_id=self.student.pk, role="student"))
