"""Bookings app package.

This app holds the booking ledger and the payment reconciliation flow:
bookings are created against a listing, paid through the gateway and
settled by consuming one room of the listing exactly once, whether the
payment is confirmed by the client, a webhook or a background sweep.
"""
