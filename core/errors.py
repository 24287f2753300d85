from __future__ import annotations

from fastapi import status


class ClinicError(Exception):
    """Base class for errors mapped straight to an HTTP status at the API boundary."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingParameterError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing required parameter"


class InvalidParameterError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid parameter"


class UnknownActionError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Unknown action"


class AuthError(ClinicError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class OwnershipError(ClinicError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ExternalServiceError(ClinicError):
    """Language-model failure. Never surfaced raw: callers degrade to a safe default."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "service unavailable"
