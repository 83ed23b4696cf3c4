"""
core.domain.exception_handler: DRF-compatible global exception handler.

Maps domain exceptions from ``core.domain.exceptions`` to proper
DRF ``Response`` objects so that views don't need per-endpoint
try/except boilerplate.

Response body for domain errors::

    {"code": "invalid_state", "detail": "Invalid state transition ..."}

Serializer validation errors keep DRF's field-keyed body and gain the
same ``code``::

    {"code": "validation_failed", "title": ["Ensure this field has at least 3 characters."]}

Register in ``settings.py``::

    REST_FRAMEWORK = {
        ...
        'EXCEPTION_HANDLER': 'core.domain.exception_handler.domain_exception_handler',
    }
"""

from __future__ import annotations

import logging

from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

# Domain exception → HTTP status code
_STATUS_MAP: dict[type, int] = {
    PermissionDenied:  403,
    NotFound:          404,
    InvalidTransition: 409,
    Conflict:          409,
    ValidationFailed:  400,
    DomainError:       400,  # catch-all base class last
}


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF exception handler that also handles ``core.domain.exceptions``.

    The default DRF handler is called first.  If it returns ``None``
    (meaning DRF doesn't recognise the exception), we check whether
    it's one of our domain exceptions and return an appropriate response.
    """
    # Let DRF handle its own exceptions (ValidationError, AuthN, etc.)
    response = drf_default_handler(exc, context)
    if response is not None:
        if isinstance(exc, DRFValidationError):
            # Field errors stay at the top level next to the code.
            errors = response.data if isinstance(response.data, dict) else {"detail": response.data}
            response.data = {"code": ValidationFailed.code, **errors}
        return response

    # Most specific first
    for exc_class, status_code in _STATUS_MAP.items():
        if isinstance(exc, exc_class):
            logger.warning(
                "Domain exception [%s] in %s: %s",
                exc.code,
                context.get("view", "unknown"),
                exc,
            )
            return Response(
                {"code": exc.code, "detail": str(exc)},
                status=status_code,
            )

    # Not our exception, let it propagate
    return None
