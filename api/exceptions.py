"""Map registry failures onto HTTP responses."""
from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from registry.exceptions import (
    ConfirmationRequired,
    ConstraintError,
    ConstraintViolation,
    NotFound,
    StorageError,
)

logger = logging.getLogger(__name__)


def _validation_body(exc: DjangoValidationError) -> dict:
    body = {"detail": "; ".join(exc.messages), "code": "invalid"}
    if hasattr(exc, "error_dict"):
        body["errors"] = exc.message_dict
    return body


def registry_exception_handler(exc, context):
    """DRF exception handler aware of the registry exceptions."""
    if isinstance(exc, ConfirmationRequired):
        return Response(
            {"detail": exc.warning, "code": "confirmation_required"},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, ConstraintError):
        return Response(
            {"detail": exc.detail, "code": str(exc.reason)},
            status=status.HTTP_400_BAD_REQUEST,
        )
    if isinstance(exc, DjangoValidationError):
        return Response(_validation_body(exc), status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, ConstraintViolation):
        return Response(
            {"detail": str(exc), "code": "constraint_violation", "key": exc.unique_key},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, NotFound):
        return Response({"detail": str(exc), "code": "not_found"}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, StorageError):
        logger.error("Storage failure during %s: %s", context.get("view").__class__.__name__, exc)
        return Response(
            {"detail": "Storage is unavailable.", "code": "storage_error"},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return exception_handler(exc, context)
