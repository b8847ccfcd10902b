"""Inbound payment gateway endpoints."""

from django.http import JsonResponse  # type: ignore
from django.views.decorators.csrf import csrf_exempt  # type: ignore
from django.views.decorators.http import require_POST  # type: ignore

from .exceptions import InvalidWebhookSignature
from .webhooks import WebhookIngestor

SIGNATURE_HEADER = "HTTP_X_PAYSTACK_SIGNATURE"


@csrf_exempt
@require_POST
def paystack_webhook(request):
    """
    Paystack webhook

    The body is read raw: the signature covers the exact bytes sent.
    """
    signature = request.META.get(SIGNATURE_HEADER)
    try:
        acknowledgement = WebhookIngestor().ingest(request.body, signature)
    except InvalidWebhookSignature as exc:
        return JsonResponse({"detail": exc.detail, "code": exc.code}, status=exc.status_code)
    return JsonResponse(acknowledgement, status=200)
