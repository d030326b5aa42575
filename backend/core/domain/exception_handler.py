"""
core.domain.exception_handler — turns domain exceptions into HTTP responses.

Services raise ``core.domain.exceptions``; views never catch them.  This
handler runs after DRF's own handler and answers with::

    {"detail": "<message>", "code": "<ExceptionClassName>"}

Wired up in ``settings.REST_FRAMEWORK['EXCEPTION_HANDLER']``.
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    ConfigurationError,
    Conflict,
    DomainError,
    Expired,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    StorageError,
)

logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases.
_STATUS_MAP: dict[type, int] = {
    PermissionDenied:   403,
    NotFound:           404,
    InvalidTransition:  409,
    Conflict:           409,
    Expired:            410,
    StorageError:       502,
    ConfigurationError: 503,
    DomainError:        400,
}

# These point at infrastructure or operator data, not at the caller.
_OPERATIONAL = (StorageError, ConfigurationError)


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF's handler gets first pick (validation errors, auth, 404s).
    Returning ``None`` lets anything unrecognised surface as a 500.
    """
    response = drf_default_handler(exc, context)
    if response is not None:
        return response

    if not isinstance(exc, DomainError):
        return None

    status_code = next(code for cls, code in _STATUS_MAP.items() if isinstance(exc, cls))
    log = logger.error if isinstance(exc, _OPERATIONAL) else logger.warning
    log(
        "%s in %s: %s",
        type(exc).__name__,
        context.get("view", "unknown"),
        exc,
    )
    return Response(
        {"detail": str(exc), "code": type(exc).__name__},
        status=status_code,
    )
