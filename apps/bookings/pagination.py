"""Page/limit pagination for the booking list."""

from __future__ import annotations

import math

from rest_framework.exceptions import ValidationError  # type: ignore
from rest_framework.pagination import PageNumberPagination  # type: ignore
from rest_framework.response import Response  # type: ignore

DEFAULT_LIMIT = 10
MAX_LIMIT = 50


class BookingPagination(PageNumberPagination):
    page_size = DEFAULT_LIMIT
    page_query_param = "page"
    page_size_query_param = "limit"
    max_page_size = MAX_LIMIT

    def paginate_queryset(self, queryset, request, view=None):  # type: ignore
        self._validate(request)
        return super().paginate_queryset(queryset, request, view)

    def _validate(self, request) -> None:
        errors = {}
        for name, upper in (("page", None), ("limit", MAX_LIMIT)):
            raw = request.query_params.get(name)
            if raw is None:
                continue
            try:
                value = int(raw)
            except ValueError:
                value = 0
            if value < 1 or (upper is not None and value > upper):
                errors[name] = (
                    "Page must be a positive integer" if name == "page"
                    else f"Limit must be between 1 and {MAX_LIMIT}"
                )
        if errors:
            raise ValidationError(errors)

    def get_paginated_response(self, data):  # type: ignore
        limit = self.get_page_size(self.request)
        total = self.page.paginator.count
        return Response({
            "bookings": data,
            "pagination": {
                "page": self.page.number,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if limit else 0,
            },
        })

    def get_paginated_response_schema(self, schema):  # type: ignore
        return {
            "type": "object",
            "properties": {
                "bookings": schema,
                "pagination": {
                    "type": "object",
                    "properties": {
                        "page": {"type": "integer"},
                        "limit": {"type": "integer"},
                        "total": {"type": "integer"},
                        "pages": {"type": "integer"},
                    },
                },
            },
        }
