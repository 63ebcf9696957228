"""DRF exception handler rendering reservation errors.

Every rejection leaves the API as::

    {"error": {"reason": "<stable code>", "message": "<human text>"}}

with the status code carried by the error class.
"""

from __future__ import annotations

import logging

from django.http import Http404  # type: ignore
from rest_framework import exceptions as drf_exceptions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from shared.domain.exceptions import ReservationError

logger = logging.getLogger(__name__)


def _first_message(detail) -> str:  # type: ignore
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _first_message(value)
            if key in ("non_field_errors", "detail"):
                return message
            return f"{key}: {message}"
        return "Invalid request."
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else "Invalid request."
    return str(detail)


def reservation_exception_handler(exc, context):  # type: ignore
    if isinstance(exc, ReservationError):
        logger.info(
            "Request rejected: %s (%s) %s",
            exc.reason,
            exc.status_code,
            exc.message,
        )
        return Response({"error": exc.to_dict()}, status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, drf_exceptions.ValidationError):
        payload = {
            "reason": "validation_error",
            "message": _first_message(exc.detail),
            "details": exc.detail,
        }
    elif isinstance(exc, (Http404, drf_exceptions.NotFound)):
        payload = {"reason": "not_found", "message": "Not found."}
    elif response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        payload = {"reason": "method_not_allowed", "message": _first_message(response.data)}
    else:
        payload = {"reason": getattr(exc, "default_code", "error"), "message": _first_message(response.data)}
    response.data = {"error": payload}
    return response
