from django.urls import path  # type: ignore

from .views import paystack_webhook

urlpatterns = [
    path("paystack/", paystack_webhook, name="paystack-webhook"),
]
