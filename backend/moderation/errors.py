"""Error types for the moderation service.

Every error carries a stable ``code`` and an HTTP ``status_code`` and is
rendered as ``{"error": {"code", "message", "details"}}`` by the handlers in
``moderation.main``. Input problems raise ``ValidationError`` before the
store is touched; store failures raise ``StoreReadError`` or
``StoreWriteError``; ``SideEffectError`` never leaves the action that
triggered it.
"""
from typing import Any

from fastapi import status


class AppError(Exception):
    code: str = "APP_ERROR"
    message: str = "Application error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    details: Any | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        if details is not None:
            self.details = details

        super().__init__(self.message)


class ValidationError(AppError):
    """Bad input, such as an empty reason or a ban length out of range."""

    code = "VALIDATION_ERROR"
    message = "Validation error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    code = "NOT_FOUND"
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class AuthError(AppError):
    code = "AUTH_ERROR"
    message = "Authentication failed"
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionError(AppError):  # type: ignore[override]
    code = "PERMISSION_DENIED"
    message = "Insufficient permissions"
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(AppError):
    """The record is no longer in a state that allows the action."""

    code = "CONFLICT_ERROR"
    message = "Resource conflict"
    status_code = status.HTTP_409_CONFLICT


class InternalError(AppError):
    code = "INTERNAL_ERROR"
    message = "Internal server error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StoreWriteError(AppError):
    """A primary mutation against the record store failed."""

    code = "STORE_WRITE_ERROR"
    message = "Record store write failed"
    status_code = status.HTTP_502_BAD_GATEWAY


class StoreReadError(AppError):
    """Listing records from the store failed."""

    code = "STORE_READ_ERROR"
    message = "Record store is unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class SideEffectError(AppError):
    """A best-effort notification could not be delivered.

    Raised by dispatch adapters and always caught by the caller; it never
    reaches an HTTP client.
    """

    code = "SIDE_EFFECT_ERROR"
    message = "Notification dispatch failed"
    status_code = status.HTTP_502_BAD_GATEWAY


ERROR_CODE_BY_STATUS: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: ValidationError.code,
    status.HTTP_401_UNAUTHORIZED: AuthError.code,
    status.HTTP_403_FORBIDDEN: PermissionError.code,
    status.HTTP_404_NOT_FOUND: NotFoundError.code,
    status.HTTP_409_CONFLICT: ConflictError.code,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ValidationError.code,
}


def error_payload(
    code: str,
    message: str,
    details: Any | None = None,
) -> dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}


def resolve_error_code(status_code: int) -> str:
    if status_code in ERROR_CODE_BY_STATUS:
        return ERROR_CODE_BY_STATUS[status_code]
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return InternalError.code
    return "UNKNOWN_ERROR"
