"""Exception handlers for the API."""

import traceback
import typing as t
from copy import deepcopy

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja.responses import Response

from events.exceptions import (
    AlreadyMemberError,
    AuthorizationError,
    ConflictError,
    EventFullError,
    InfrastructureError,
    InvalidStateError,
    NotFoundError,
    RegistrationError,
)
from events.exceptions import ValidationError as RegistrationValidationError

logger = structlog.get_logger(__name__)


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
        exc_info=True,
        stack_info=True,
        method=request.method,
        path=request.path,
        headers=obfuscate(dict(request.headers)),
    )
    data = {"detail": "Internal Server Error."}
    is_staff = getattr(request, "user", None) and request.user.is_staff
    if settings.DEBUG or is_staff:  # pragma: no cover
        data["traceback"] = traceback.format_exc()
    return Response(status=500, data=data)


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    logger.error("VALIDATION_ERROR", exc_info=True, stack_info=True)
    error_dict = {k: [ee for e in v for ee in e] for k, v in exc.error_dict.items()}
    return Response(status=400, data={"errors": error_dict})


def handle_registration_error(request: HttpRequest, exc: RegistrationError | t.Type[RegistrationError]) -> Response:
    """Map the typed failures of the registration engine to HTTP responses.

    Unknown and unauthorized resources share a status and a body.
    """
    assert isinstance(exc, RegistrationError)
    match exc:
        case RegistrationValidationError(errors=errors):
            return Response(status=400, data={"errors": errors})
        case NotFoundError() | AuthorizationError():
            return Response(status=404, data={"detail": str(NotFoundError.default_message)})
        case InvalidStateError(status=status, attended_at=attended_at):
            return Response(
                status=409,
                data={"detail": exc.message, "status": status, "attended_at": attended_at},
            )
        case EventFullError():
            return Response(status=409, data={"detail": exc.message})
        case ConflictError():
            return Response(status=503, data={"detail": exc.message})
        case _:
            return Response(status=400, data={"detail": exc.message})


def handle_infrastructure_error(
    request: HttpRequest, exc: InfrastructureError | t.Type[InfrastructureError]
) -> Response:
    """The backing store failed. The request may be retried."""
    return Response(status=503, data={"detail": "Service temporarily unavailable. Please retry."})


def handle_already_member_error(request: HttpRequest, exc: AlreadyMemberError | t.Type[AlreadyMemberError]) -> Response:
    """Handle an already member error."""
    return Response(status=400, data={"detail": "The user is already a member of this organization."})


SENSITIVE_KEYS = {"password", "token", "x-api-key", "authorization", "authentication"}


def obfuscate(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Obfuscate sensitive data in payloads and headers."""
    new_data = deepcopy(data)
    for key in data.keys():
        if key.lower() in SENSITIVE_KEYS:
            new_data[key] = "********"
    return new_data
