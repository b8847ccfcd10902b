"""DRF exception handler that understands domain errors."""

from __future__ import annotations

import logging

from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from shared.domain.exceptions import DomainError

logger = logging.getLogger(__name__)


def domain_exception_handler(exc, context):  # type: ignore
    """Render DomainError subclasses as ``{"detail", "code"}`` with their status."""

    if isinstance(exc, DomainError):
        view = context.get("view")
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc.detail}"
        )
        return Response({"detail": exc.detail, "code": exc.code}, status=exc.status_code)

    return drf_exception_handler(exc, context)
