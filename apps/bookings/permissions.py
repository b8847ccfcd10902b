"""Permission classes for the booking API."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore

from .domain.access import can_access


def user_role(user) -> str:
    return getattr(user, "effective_role", None) or getattr(user, "role", "")


class IsStudent(permissions.BasePermission):
    """Only students may start a booking."""

    message = "Only students can book rooms."

    def has_permission(self, request, view) -> bool:  # type: ignore
        user = request.user
        return bool(user and user.is_authenticated and hasattr(user, "is_student") and user.is_student())


class IsBookingStakeholder(permissions.BasePermission):
    """The student, the listing owner and administrators may access a booking."""

    def has_permission(self, request, view) -> bool:  # type: ignore
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj) -> bool:  # type: ignore
        user = request.user
        return can_access(obj, user.pk, user_role(user))
