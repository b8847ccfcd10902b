"""
Paystack Payment Gateway Client

Wraps the three gateway capabilities the booking flow needs:

* ``authorize``   - initialise a transaction, returns a checkout handle
* ``check_status`` - the authoritative status of a transaction
* ``verify_webhook_signature`` - HMAC-SHA512 check of inbound webhooks

Amounts travel as integers in the currency's minor unit (pesewas, kobo).
Network failures, timeouts, 5xx answers, rate limiting (408/429) and
credential errors (401/403) raise GatewayUnavailableError:
the charge may or may not exist, so callers must re-verify later rather
than assume failure.

Without a real secret key (unset, ``sk_test_xxx`` or ``sk_test_placeholder*``)
the client emulates Paystack so the flow can be exercised locally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
import hmac
import logging
from typing import Any
from urllib.parse import quote

import requests
from django.conf import settings  # type: ignore

from shared.domain.value_objects import Money

from .exceptions import GatewayDeclinedError, GatewayUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.paystack.co"
PLACEHOLDER_KEYS = ("sk_test_xxx",)
PLACEHOLDER_PREFIX = "sk_test_placeholder"
# Answers that say nothing about the transaction itself.
INDETERMINATE_STATUS_CODES = frozenset({401, 403, 408, 429})


@dataclass(frozen=True)
class AuthorizationHandle:
    """What the client needs to complete payment out-of-band."""

    authorization_url: str
    access_code: str
    reference: str


@dataclass(frozen=True)
class GatewayStatus:
    success: bool
    reference: str
    raw: dict[str, Any] = field(default_factory=dict)
    message: str = ""


def is_placeholder_key(secret_key: str | None) -> bool:
    if not secret_key or secret_key in PLACEHOLDER_KEYS:
        return True
    if secret_key.startswith(PLACEHOLDER_PREFIX):
        return True
    return not secret_key.startswith("sk_")


def generate_signature(raw_payload: bytes, secret_key: str) -> str:
    """HMAC-SHA512 hex digest of the raw request body, as Paystack signs it."""
    return hmac.new(secret_key.encode("utf-8"), raw_payload, hashlib.sha512).hexdigest()


class PaystackClient:
    """HTTP client for the Paystack transaction API."""

    def __init__(
        self,
        secret_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30,
        callback_url: str = "",
    ):
        self.secret_key = secret_key or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.callback_url = callback_url

    @classmethod
    def from_settings(cls) -> "PaystackClient":
        return cls(
            getattr(settings, "PAYSTACK_SECRET_KEY", ""),
            base_url=getattr(settings, "PAYSTACK_BASE_URL", DEFAULT_BASE_URL),
            timeout=getattr(settings, "PAYSTACK_TIMEOUT", 30),
            callback_url=getattr(settings, "PAYSTACK_CALLBACK_URL", ""),
        )

    @property
    def emulated(self) -> bool:
        return is_placeholder_key(self.secret_key)

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def authorize(
        self,
        amount: Money,
        reference: str,
        email: str,
        metadata: dict[str, Any] | None = None,
    ) -> AuthorizationHandle:
        """
        Initialise a transaction for ``amount`` under our ``reference``.

        Raises GatewayDeclinedError when Paystack refuses the request and
        GatewayUnavailableError when the outcome is unknown.
        """
        logger.info(f"Initialising Paystack transaction {reference} for {amount}")

        if self.emulated:
            logger.warning("Paystack secret key not configured, emulating transaction initialisation")
            return AuthorizationHandle(
                authorization_url=f"{self._callback_base()}/mock-payment?reference={reference}",
                access_code=f"mock_{reference}",
                reference=reference,
            )

        payload: dict[str, Any] = {
            "email": email,
            "amount": amount.to_minor_units(),
            "currency": amount.currency,
            "reference": reference,
            "metadata": metadata or {},
        }
        if self.callback_url:
            payload["callback_url"] = f"{self.callback_url}?reference={quote(reference)}"

        body = self._request("POST", "/transaction/initialize", json=payload)
        if not body.get("status"):
            message = body.get("message") or "Failed to initialise payment"
            logger.error(f"Paystack refused transaction {reference}: {message}")
            raise GatewayDeclinedError(message)

        data = body.get("data") or {}
        handle = AuthorizationHandle(
            authorization_url=data.get("authorization_url", ""),
            access_code=data.get("access_code", ""),
            reference=data.get("reference") or reference,
        )
        logger.info(f"Paystack transaction {reference} initialised")
        return handle

    def check_status(self, reference: str) -> GatewayStatus:
        """
        Ask Paystack for the authoritative state of ``reference``.

        An answered request always produces a GatewayStatus: success only
        when the transaction itself reports ``success``. Only an unknown
        outcome raises (GatewayUnavailableError).
        """
        logger.info(f"Verifying Paystack transaction {reference}")

        if self.emulated:
            logger.warning("Paystack secret key not configured, emulating successful verification")
            return GatewayStatus(
                success=True,
                reference=reference,
                raw={
                    "status": "success",
                    "reference": reference,
                    "gateway_response": "Mock payment successful",
                },
                message="Mock verification successful",
            )

        try:
            body = self._request("GET", f"/transaction/verify/{quote(reference, safe='')}")
        except GatewayDeclinedError as exc:
            return GatewayStatus(success=False, reference=reference, raw={}, message=exc.detail)

        data = body.get("data") or {}
        success = bool(body.get("status")) and data.get("status") == "success"
        message = data.get("gateway_response") or body.get("message") or ""
        if not success:
            logger.info(f"Paystack transaction {reference} not successful: {data.get('status')}")
        return GatewayStatus(
            success=success,
            reference=data.get("reference") or reference,
            raw=data,
            message=message if success else (message or "Payment not successful"),
        )

    def verify_webhook_signature(self, raw_payload: bytes, signature: str | None) -> bool:
        if not signature or not self.secret_key:
            return False
        expected = generate_signature(raw_payload, self.secret_key)
        return hmac.compare_digest(expected, signature.strip().lower())

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _callback_base(self) -> str:
        return getattr(settings, "FRONTEND_URL", "http://localhost:3000").rstrip("/")

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        url = f"{self.base_url}{path}"

        try:
            response = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as exc:
            logger.error(f"Paystack request {method} {path} failed: {exc}")
            raise GatewayUnavailableError(f"Payment gateway unreachable: {exc}") from exc

        if response.status_code >= 500 or response.status_code in INDETERMINATE_STATUS_CODES:
            logger.error(f"Paystack {method} {path} returned {response.status_code}")
            raise GatewayUnavailableError(f"Payment gateway error ({response.status_code})")

        try:
            body = response.json()
        except ValueError as exc:
            logger.error(f"Paystack {method} {path} returned a non-JSON body")
            raise GatewayUnavailableError("Malformed response from payment gateway") from exc

        if response.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            logger.warning(f"Paystack {method} {path} rejected with {response.status_code}: {message}")
            raise GatewayDeclinedError(message or f"Payment gateway rejected the request ({response.status_code})")

        if not isinstance(body, dict):
            raise GatewayUnavailableError("Malformed response from payment gateway")
        return body
