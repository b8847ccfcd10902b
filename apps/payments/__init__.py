"""Payment gateway integration (Paystack) and inbound webhooks."""
