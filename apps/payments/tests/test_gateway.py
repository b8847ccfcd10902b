"""Tests for the Paystack gateway client."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests
from django.test import SimpleTestCase, override_settings

from apps.payments.exceptions import GatewayDeclinedError, GatewayUnavailableError
from apps.payments.gateway import PaystackClient, generate_signature, is_placeholder_key
from shared.domain.value_objects import Money

REQUEST_PATH = "apps.payments.gateway.requests.request"
LIVE_KEY = "sk_test_4f1c2d3e4f5a6b7c8d9e"


def _response(status_code: int, body) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


class PlaceholderKeyTests(SimpleTestCase):
    def test_placeholder_keys(self) -> None:
        for key in ("", None, "sk_test_xxx", "sk_test_placeholder", "sk_test_placeholder_123", "pk_live_abc"):
            self.assertTrue(is_placeholder_key(key), key)
        self.assertFalse(is_placeholder_key(LIVE_KEY))


class PaystackClientTests(SimpleTestCase):
    def setUp(self) -> None:
        self.gateway = PaystackClient(
            LIVE_KEY,
            base_url="https://api.paystack.test/",
            timeout=5,
            callback_url="https://hostelhub.test/booking/verify",
        )
        self.amount = Money(Decimal("1500.50"), "GHS")

    def test_authorize_sends_minor_units(self) -> None:
        body = {
            "status": True,
            "data": {
                "authorization_url": "https://checkout.paystack.com/abc",
                "access_code": "abc",
                "reference": "HHL-1-ABCDEF",
            },
        }
        with patch(REQUEST_PATH, return_value=_response(200, body)) as request:
            handle = self.gateway.authorize(self.amount, "HHL-1-ABCDEF", "kofi@example.com", {"booking_id": 1})

        self.assertEqual(handle.authorization_url, "https://checkout.paystack.com/abc")
        self.assertEqual(handle.access_code, "abc")
        method, url = request.call_args.args
        kwargs = request.call_args.kwargs
        self.assertEqual(method, "POST")
        self.assertEqual(url, "https://api.paystack.test/transaction/initialize")
        self.assertEqual(kwargs["timeout"], 5)
        self.assertEqual(kwargs["json"]["amount"], 150050)
        self.assertEqual(kwargs["json"]["currency"], "GHS")
        self.assertEqual(kwargs["json"]["metadata"], {"booking_id": 1})
        self.assertEqual(
            kwargs["json"]["callback_url"],
            "https://hostelhub.test/booking/verify?reference=HHL-1-ABCDEF",
        )
        self.assertEqual(kwargs["headers"]["Authorization"], f"Bearer {LIVE_KEY}")

    def test_authorize_refused(self) -> None:
        body = {"status": False, "message": "Invalid email"}
        with patch(REQUEST_PATH, return_value=_response(200, body)):
            with self.assertRaises(GatewayDeclinedError):
                self.gateway.authorize(self.amount, "HHL-1-ABCDEF", "bad", {})

    def test_authorize_client_error_is_declined(self) -> None:
        with patch(REQUEST_PATH, return_value=_response(400, {"status": False, "message": "Duplicate"})):
            with self.assertRaises(GatewayDeclinedError) as ctx:
                self.gateway.authorize(self.amount, "HHL-1-ABCDEF", "kofi@example.com", {})
        self.assertFalse(ctx.exception.indeterminate)

    def test_timeout_is_indeterminate(self) -> None:
        with patch(REQUEST_PATH, side_effect=requests.exceptions.Timeout("read timed out")):
            with self.assertRaises(GatewayUnavailableError) as ctx:
                self.gateway.check_status("HHL-1-ABCDEF")
        self.assertTrue(ctx.exception.indeterminate)

    def test_connection_error_is_indeterminate(self) -> None:
        with patch(REQUEST_PATH, side_effect=requests.exceptions.ConnectionError("refused")):
            with self.assertRaises(GatewayUnavailableError):
                self.gateway.authorize(self.amount, "HHL-1-ABCDEF", "kofi@example.com", {})

    def test_server_error_is_indeterminate(self) -> None:
        with patch(REQUEST_PATH, return_value=_response(502, {"status": False})):
            with self.assertRaises(GatewayUnavailableError):
                self.gateway.check_status("HHL-1-ABCDEF")

    def test_throttling_and_credential_errors_are_indeterminate(self) -> None:
        for status_code in (401, 403, 408, 429):
            response = _response(status_code, {"status": False, "message": "Too many requests"})
            with self.subTest(status_code=status_code), patch(REQUEST_PATH, return_value=response):
                with self.assertRaises(GatewayUnavailableError):
                    self.gateway.check_status("HHL-1-ABCDEF")
                with self.assertRaises(GatewayUnavailableError):
                    self.gateway.authorize(self.amount, "HHL-1-ABCDEF", "kofi.com", {})

    def test_unknown_transaction_is_a_definite_answer(self) -> None:
        body = {"status": False, "message": "Transaction reference not found"}
        with patch(REQUEST_PATH, return_value=_response(404, body)):
            status = self.gateway.check_status("HHL-1-ABCDEF")

        self.assertFalse(status.success)
        self.assertEqual(status.message, "Transaction reference not found")

    def test_malformed_body_is_indeterminate(self) -> None:
        with patch(REQUEST_PATH, return_value=_response(200, ValueError("not json"))):
            with self.assertRaises(GatewayUnavailableError):
                self.gateway.check_status("HHL-1-ABCDEF")

    def test_check_status_success(self) -> None:
        body = {
            "status": True,
            "message": "Verification successful",
            "data": {"status": "success", "reference": "HHL-1-ABCDEF", "gateway_response": "Approved"},
        }
        with patch(REQUEST_PATH, return_value=_response(200, body)) as request:
            status = self.gateway.check_status("HHL-1-ABCDEF")

        self.assertTrue(status.success)
        self.assertEqual(status.reference, "HHL-1-ABCDEF")
        self.assertEqual(status.raw["gateway_response"], "Approved")
        self.assertEqual(request.call_args.args[1], "https://api.paystack.test/transaction/verify/HHL-1-ABCDEF")

    def test_check_status_abandoned_is_not_success(self) -> None:
        body = {"status": True, "data": {"status": "abandoned", "reference": "HHL-1-ABCDEF", "gateway_response": ""}}
        with patch(REQUEST_PATH, return_value=_response(200, body)):
            status = self.gateway.check_status("HHL-1-ABCDEF")

        self.assertFalse(status.success)
        self.assertEqual(status.message, "Payment not successful")

    def test_check_status_unknown_reference_is_not_success(self) -> None:
        body = {"status": False, "message": "Transaction reference not found"}
        with patch(REQUEST_PATH, return_value=_response(400, body)):
            status = self.gateway.check_status("HHL-1-ABCDEF")

        self.assertFalse(status.success)
        self.assertEqual(status.message, "Transaction reference not found")

    def test_webhook_signature(self) -> None:
        payload = b'{"event":"charge.success","data":{"reference":"HHL-1-ABCDEF"}}'
        signature = generate_signature(payload, LIVE_KEY)

        self.assertTrue(self.gateway.verify_webhook_signature(payload, signature))
        self.assertFalse(self.gateway.verify_webhook_signature(payload + b" ", signature))
        self.assertFalse(self.gateway.verify_webhook_signature(payload, "0" * 128))
        self.assertFalse(self.gateway.verify_webhook_signature(payload, None))


class EmulatedPaystackClientTests(SimpleTestCase):
    @override_settings(PAYSTACK_SECRET_KEY="sk_test_xxx", FRONTEND_URL="http://localhost:3000")
    def test_emulation_never_calls_the_network(self) -> None:
        client = PaystackClient.from_settings()
        self.assertTrue(client.emulated)

        with patch(REQUEST_PATH) as request:
            handle = client.authorize(Money(Decimal("10"), "GHS"), "HHL-1-ABCDEF", "kofi@example.com")
            status = client.check_status("HHL-1-ABCDEF")

        request.assert_not_called()
        self.assertEqual(handle.reference, "HHL-1-ABCDEF")
        self.assertTrue(handle.authorization_url.startswith("http://localhost:3000/mock-payment"))
        self.assertTrue(status.success)
