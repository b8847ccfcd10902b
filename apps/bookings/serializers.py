"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking


class BookingInitiateSerializer(serializers.Serializer):
    """Input of the initiate endpoint: the listing to book."""

    listing_id = serializers.IntegerField(min_value=1)


class BookingVerifySerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=40, trim_whitespace=True)


class BookingSerializer(serializers.ModelSerializer):
    """Read-only view of a ledger entry."""

    listing_name = serializers.ReadOnlyField(source="listing.name")
    student_email = serializers.ReadOnlyField(source="student.email")
    listing_id = serializers.IntegerField(read_only=True)
    student_id = serializers.IntegerField(read_only=True)
    cancelled_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "reference",
            "listing_id",
            "listing_name",
            "student_id",
            "student_email",
            "amount",
            "currency",
            "payment_status",
            "gateway_reference",
            "authorization_url",
            "requires_reconciliation",
            "duration",
            "check_in_date",
            "check_out_date",
            "settled_at",
            "cancelled_at",
            "cancelled_by_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BookingReceiptSerializer(serializers.ModelSerializer):
    """What the public verify endpoint reveals about a booking."""

    listing_name = serializers.ReadOnlyField(source="listing.name")

    class Meta:
        model = Booking
        fields = [
            "reference",
            "listing_name",
            "amount",
            "currency",
            "payment_status",
            "duration",
            "settled_at",
        ]
        read_only_fields = fields


class VerificationResultSerializer(serializers.Serializer):
    verified = serializers.BooleanField()
    message = serializers.CharField()
    error = serializers.CharField(allow_null=True, required=False)
    booking = BookingReceiptSerializer()
