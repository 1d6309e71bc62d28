import datetime

from django.utils.translation import gettext_lazy as _


class RegistrationError(Exception):
    """Base class for the typed failures returned by the registration engine."""

    code = "registration_error"
    default_message = _("The request could not be completed.")

    def __init__(self, message: str | None = None) -> None:
        """Initialize with an optional message, falling back to the default one."""
        self.message = str(message or self.default_message)
        super().__init__(self.message)


class ValidationError(RegistrationError):
    """Malformed input the caller can correct."""

    code = "validation_error"
    default_message = _("Invalid input.")

    def __init__(self, errors: dict[str, list[str]], message: str | None = None) -> None:
        """Store per-field error messages."""
        super().__init__(message)
        self.errors = errors


class NotFoundError(RegistrationError):
    """Unknown event, registration or QR hash."""

    code = "not_found"
    default_message = _("Not found or not authorized.")


class AuthorizationError(RegistrationError):
    """The caller lacks the membership or role the operation requires."""

    code = "not_authorized"
    default_message = _("Not found or not authorized.")


class InvalidStateError(RegistrationError):
    """A status transition was attempted from a status that does not allow it."""

    code = "invalid_state"

    def __init__(self, status: str, attended_at: datetime.datetime | None = None, message: str | None = None) -> None:
        """Keep the current status so clients can explain the rejection."""
        self.status = status
        self.attended_at = attended_at
        super().__init__(message or _describe_status(status))


class EventFullError(RegistrationError):
    """The event has reached its participant limit."""

    code = "event_full"
    default_message = _("This event is full.")


class ConflictError(RegistrationError):
    """QR hash generation kept colliding. Transient, the caller may retry."""

    code = "conflict"
    default_message = _("Could not allocate a registration code. Please retry.")


class InfrastructureError(Exception):
    """The backing store failed in a way the engine cannot interpret (timeouts, lost connections)."""


class AlreadyMemberError(Exception):
    """Raised when a user is already a member of an organization."""


def _describe_status(status: str) -> str:
    match status:
        case "checked-in":
            return str(_("already checked-in"))
        case "cancelled":
            return str(_("cancelled"))
        case _:
            return str(_("Invalid registration status: {status}")).format(status=status)
