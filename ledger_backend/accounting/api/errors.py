# accounting/api/errors.py

"""
PATH: accounting/api/errors.py

SERVICE ERROR -> HTTP MAPPING

- ConfigurationError (rule catalogue / chart)      -> 422
- PeriodLockedError                                -> 409
- EventDataError / IntegrityViolation / reports    -> 400
- OperationalError (database unavailable)          -> 503

Bodies always carry "detail", the error class as "code", and the error
context so the caller can diagnose without server logs.
"""

from __future__ import annotations

import logging

from django.db import OperationalError
from rest_framework import status
from rest_framework.response import Response

from accounting.services.exceptions import (
    AccountingServiceError,
    ConfigurationError,
    PeriodLockedError,
)

logger = logging.getLogger(__name__)


def _jsonable(value):
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def status_for(exc: Exception) -> int:
    if isinstance(exc, OperationalError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, ConfigurationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, PeriodLockedError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def error_response(exc: Exception) -> Response:
    http_status = status_for(exc)

    if isinstance(exc, AccountingServiceError):
        body = {
            "detail": exc.message,
            "code": type(exc).__name__,
            "context": {k: _jsonable(v) for k, v in exc.context.items()},
        }
    else:
        logger.error("Database unavailable: %s", exc)
        body = {"detail": "Ledger database unavailable, retry later", "code": type(exc).__name__}

    return Response(body, status=http_status)


class ServiceErrorMixin:
    """APIView mixin: accounting service errors become mapped JSON responses."""

    def handle_exception(self, exc):
        if isinstance(exc, (AccountingServiceError, OperationalError)):
            return error_response(exc)
        return super().handle_exception(exc)
