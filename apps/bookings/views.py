"""API views for the booking domain."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from drf_spectacular.utils import extend_schema  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.throttling import ScopedRateThrottle  # type: ignore

from shared.application.message_bus import message_bus

from .application.command_handlers import (
    CancelBookingCommand,
    CreateBookingCommand,
    VerifyBookingCommand,
)
from .filters import BookingFilterSet
from .pagination import BookingPagination
from .permissions import IsBookingStakeholder, IsStudent, user_role
from .queries import get_booking, visible_bookings
from .serializers import (
    BookingInitiateSerializer,
    BookingSerializer,
    BookingVerifySerializer,
    VerificationResultSerializer,
)


class BookingViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Bookings and their payment lifecycle.

    Writes go through the message bus; this class only translates HTTP.
    """

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    pagination_class = BookingPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = BookingFilterSet
    throttle_scope = "payments"

    def get_permissions(self):  # type: ignore
        if self.action == "initiate":
            return [permissions.IsAuthenticated(), IsStudent()]
        if self.action == "verify":
            return [permissions.AllowAny()]
        return super().get_permissions()

    def get_throttles(self):  # type: ignore
        if self.action in ("initiate", "verify"):
            return [ScopedRateThrottle()]
        return super().get_throttles()

    def get_queryset(self):  # type: ignore
        user = self.request.user
        if not user.is_authenticated:
            return visible_bookings(0, "").none()
        return visible_bookings(user.pk, user_role(user))

    def retrieve(self, request, pk=None):  # type: ignore
        booking = get_booking(pk, request.user.pk, user_role(request.user))
        return Response(BookingSerializer(booking).data)

    @extend_schema(request=BookingInitiateSerializer, responses={201: BookingSerializer})
    @action(detail=False, methods=["post"])
    def initiate(self, request):  # type: ignore
        serializer = BookingInitiateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = message_bus.handle_command(CreateBookingCommand(
            student_id=request.user.pk,
            listing_id=serializer.validated_data["listing_id"],
        ))

        return Response(
            {
                "booking": BookingSerializer(booking).data,
                "payment_authorization_url": booking.authorization_url,
                "access_code": booking.access_code,
                "paystack_public_key": getattr(settings, "PAYSTACK_PUBLIC_KEY", ""),
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(request=BookingVerifySerializer, responses={200: VerificationResultSerializer})
    @action(detail=False, methods=["post"], authentication_classes=[])
    def verify(self, request):  # type: ignore
        serializer = BookingVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = message_bus.handle_command(
            VerifyBookingCommand(reference=serializer.validated_data["reference"])
        )
        return Response(VerificationResultSerializer(result).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: BookingSerializer})
    @action(detail=True, methods=["put"])
    def cancel(self, request, pk=None):  # type: ignore
        user = request.user
        booking = message_bus.handle_command(CancelBookingCommand(
            booking_id=pk,
            user_id=user.pk,
            role=user_role(user),
        ))
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)
