"""Exception handlers for the API."""

import typing as t
from copy import deepcopy

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import HttpRequest
from ninja.responses import Response

from common.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

# Most specific first: ExpiredError is a ValidationError.
DOMAIN_ERROR_STATUS: list[tuple[type[DomainError], int]] = [
    (ExpiredError, 410),
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (AuthorizationError, 403),
]


def status_for(exc: DomainError) -> int:
    """HTTP status code of a domain error."""
    for error_class, status_code in DOMAIN_ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code
    return 400


def handle_domain_error(request: HttpRequest, exc: DomainError | t.Type[DomainError]) -> Response:
    """Handle an expected, user-visible domain error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        The response, with the message in ``detail`` and the machine-readable ``reason``.
    """
    assert isinstance(exc, DomainError)
    status_code = status_for(exc)
    logger.info(
        "domain_error",
        error=type(exc).__name__,
        reason=exc.reason,
        status_code=status_code,
        method=request.method,
        path=request.path,
    )
    return Response(status=status_code, data={"detail": exc.message, "reason": exc.reason})


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Handle a general exception.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        The response.
    """
    logger.exception(
        "INTERNAL_SERVER_ERROR",
        method=request.method,
        path=request.path,
        headers=obfuscate(dict(request.headers)),
    )
    data: dict[str, t.Any] = {"detail": "Internal Server Error."}
    if settings.DEBUG:  # pragma: no cover
        data["error"] = repr(exc)
    return Response(status=500, data=data)


def handle_django_validation_error(
    request: HttpRequest, exc: DjangoValidationError | t.Type[DjangoValidationError]
) -> Response:
    """Handle a model validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    assert isinstance(exc, DjangoValidationError)
    logger.warning("VALIDATION_ERROR", method=request.method, path=request.path)
    if hasattr(exc, "error_dict"):
        error_dict = {k: [ee for e in v for ee in e] for k, v in exc.error_dict.items()}
    else:
        error_dict = {"__all__": exc.messages}
    return Response(status=400, data={"errors": error_dict})


SENSITIVE_KEYS = {"password", "token", "x-api-key", "authorization", "authentication", "cookie"}


def obfuscate(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Obfuscate sensitive data in payloads and headers."""
    new_data = deepcopy(data)
    for key in data.keys():
        if key.lower() in SENSITIVE_KEYS:
            new_data[key] = "********"
    return new_data
