"""Error taxonomy raised by the core and translated at the request boundary."""

from fastapi import status


class HelpdeskError(Exception):
    """Base class for errors that map onto a client-facing response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(HelpdeskError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(HelpdeskError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token is invalid or expired"


class AuthorizationError(HelpdeskError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden: you do not have permission to access this resource"


class NotFoundError(HelpdeskError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(HelpdeskError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class SelfActionError(HelpdeskError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Cannot perform this action on your own account"


def parse_id(value, label: str) -> int:
    """Return ``value`` as a positive integer id or raise ValidationError.

    Runs before any lookup so that a malformed id is reported as a client
    error and never as "not found".
    """
    text = str(value).strip() if value is not None else ""
    if not text.isascii() or not text.isdigit() or int(text) <= 0:
        raise ValidationError(f"Invalid {label} ID")
    return int(text)
