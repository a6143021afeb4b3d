"""
Access gate for the moderation console.

Decides who may reach the core at all: the acting principal must be
authenticated and hold the admin or superadmin role. Mutating actions need
superadmin. Redirects and cookies belong to the surrounding application.
"""
from __future__ import annotations

from typing import Any, Mapping

import jwt

from ..domain.entities import Principal, UserType
from ..errors import AuthError, PermissionError

CONSOLE_ROLES = frozenset({UserType.ADMIN.value, UserType.SUPERADMIN.value})


class InvalidTokenError(AuthError):
    message = "Invalid token"


class ExpiredTokenError(AuthError):
    message = "Token has expired"


def _role_claim(payload: Mapping[str, Any]) -> str | None:
    for key in ("user_type", "role"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    metadata = payload.get("user_metadata")
    if isinstance(metadata, Mapping):
        value = metadata.get("user_type")
        if isinstance(value, str) and value:
            return value
    return None


def decode_principal(token: str, *, secret_key: str, algorithm: str) -> Principal:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise ExpiredTokenError() from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError() from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise InvalidTokenError("Invalid token payload")
    role = _role_claim(payload)
    if role is None:
        raise InvalidTokenError("Token carries no role claim")
    return Principal(id=subject, role=role)


def require_console_access(principal: Principal | None) -> Principal:
    if principal is None:
        raise AuthError("Not authenticated")
    if principal.role not in CONSOLE_ROLES:
        raise PermissionError("Admin access required")
    return principal


def require_superadmin(principal: Principal | None) -> Principal:
    principal = require_console_access(principal)
    if principal.role != UserType.SUPERADMIN.value:
        raise PermissionError("Superadmin access required")
    return principal


class StaticPrincipalProvider:
    """Principal provider for a session whose principal is already known."""

    def __init__(self, principal: Principal | None) -> None:
        self._principal = principal

    async def current_principal(self) -> Principal | None:
        return self._principal
