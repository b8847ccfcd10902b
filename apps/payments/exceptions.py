"""Errors raised while talking to the payment gateway."""

from shared.domain.exceptions import DomainError


class GatewayError(DomainError):
    """Base class for gateway failures."""

    status_code = 502
    default_code = 'gateway_error'
    default_detail = 'Payment gateway error.'

    #: True when the outcome of the call is unknown (the charge may exist).
    indeterminate = False


class GatewayUnavailableError(GatewayError):
    """Timeout, connection failure or gateway 5xx."""

    status_code = 503
    default_code = 'gateway_unavailable'
    default_detail = 'Payment gateway is unavailable, try again later.'
    indeterminate = True


class GatewayDeclinedError(GatewayError):
    """The gateway answered and refused the request."""

    status_code = 502
    default_code = 'gateway_declined'
    default_detail = 'Payment gateway rejected the request.'


class InvalidWebhookSignature(DomainError):
    status_code = 401
    default_code = 'invalid_signature'
    default_detail = 'Invalid webhook signature.'
