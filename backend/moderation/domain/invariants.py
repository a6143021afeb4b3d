"""
Domain invariants module.

Every check here runs BEFORE any write to the record store, so a rejected
action leaves no trace behind.

INVARIANTS:
1. Superadmin accounts are immutable with respect to role and ban fields
2. Only pending approval requests can be reviewed
3. Rejections, bans and unbans carry a non-empty reason
4. Temporary bans last a positive whole number of days
"""

import logging
from typing import Any

from ..errors import ConflictError, PermissionError, ValidationError
from .entities import RequestStatus, User, UserType

logger = logging.getLogger(__name__)

GRANTABLE_ROLES = frozenset({UserType.ADMIN, UserType.USER})


class InvariantViolation(PermissionError):
    """
    Raised when an action would break a domain invariant.

    Logged on construction so refused attempts show up even when the caller
    turns the error into a plain HTTP response.
    """

    code = "INVARIANT_VIOLATION"
    message = "Operation violates a domain invariant"

    def __init__(self, message: str, *, invariant: str, details: dict[str, Any] | None = None):
        super().__init__(message, details=details or {})
        self.invariant = invariant

        logger.error(
            "invariant_violation invariant=%s message=%s details=%s",
            invariant,
            message,
            details,
        )


def validate_not_superadmin(user: User, *, operation: str) -> None:
    """
    INVARIANT-1: superadmin targets are refused for role and ban changes.

    Raises:
        InvariantViolation: If ``user`` is a superadmin
    """
    if user.is_superadmin:
        raise InvariantViolation(
            f"Cannot {operation} a superadmin account",
            invariant="INVARIANT-1.superadmin_immutable",
            details={"user_id": user.id, "operation": operation},
        )


def validate_request_pending(status: RequestStatus, *, request_id: str) -> None:
    """INVARIANT-2: a reviewed request cannot be decided again."""
    if status != RequestStatus.PENDING:
        raise ConflictError(
            f"Request {request_id} has already been {status.value}",
            details={"request_id": request_id, "status": status.value},
        )


def require_reason(value: str | None, *, field: str) -> str:
    """
    INVARIANT-3: reasons must be non-empty once trimmed.

    Returns:
        The trimmed reason
    """
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={"field": field})
    return value.strip()


def parse_ban_days(value: Any) -> int:
    """
    INVARIANT-4: temporary bans need a finite positive integer of days.

    Accepts ints and digit strings ("7", " 7 "). Booleans, fractional floats,
    non-numeric strings, zero and negatives are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError("Please enter a valid number of days (> 0).")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("Please enter a valid number of days (> 0).")
        days = int(value)
    elif isinstance(value, int):
        days = value
    elif isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            raise ValidationError("Please enter a valid number of days (> 0).")
        days = int(text)
    else:
        raise ValidationError("Please enter a valid number of days (> 0).")
    if days <= 0:
        raise ValidationError("Please enter a valid number of days (> 0).")
    return days


def validate_grantable_role(role: Any) -> UserType:
    try:
        parsed = UserType(role)
    except ValueError:
        raise ValidationError(f"Unknown role: {role!r}") from None
    if parsed not in GRANTABLE_ROLES:
        raise ValidationError(f"Role {parsed.value} cannot be granted from the console")
    return parsed
