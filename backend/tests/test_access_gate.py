from datetime import datetime, timedelta, timezone

import jwt
import pytest

from moderation.auth.access_gate import (
    ExpiredTokenError,
    InvalidTokenError,
    decode_principal,
    require_console_access,
    require_superadmin,
)
from moderation.domain.entities import Principal
from moderation.errors import AuthError, PermissionError

SECRET = "gate-secret-for-tests-0123456789abcdef"


def _token(payload: dict, *, secret: str = SECRET) -> str:
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.mark.parametrize(
    "claims",
    [
        {"user_type": "admin"},
        {"role": "admin"},
        {"user_metadata": {"user_type": "admin"}},
    ],
)
def test_decode_reads_role_claim(claims: dict) -> None:
    principal = decode_principal(
        _token({"sub": "u1", **claims}), secret_key=SECRET, algorithm="HS256"
    )

    assert principal == Principal(id="u1", role="admin")


def test_decode_rejects_bad_signature() -> None:
    token = _token({"sub": "u1", "user_type": "admin"}, secret="other-secret-value")

    with pytest.raises(InvalidTokenError):
        decode_principal(token, secret_key=SECRET, algorithm="HS256")


def test_decode_rejects_expired_token() -> None:
    expired = datetime.now(timezone.utc) - timedelta(minutes=5)
    token = _token({"sub": "u1", "user_type": "admin", "exp": expired})

    with pytest.raises(ExpiredTokenError):
        decode_principal(token, secret_key=SECRET, algorithm="HS256")


@pytest.mark.parametrize("payload", [{"user_type": "admin"}, {"sub": "u1"}])
def test_decode_requires_subject_and_role(payload: dict) -> None:
    with pytest.raises(InvalidTokenError):
        decode_principal(_token(payload), secret_key=SECRET, algorithm="HS256")


def test_console_access_roles() -> None:
    with pytest.raises(AuthError):
        require_console_access(None)
    with pytest.raises(PermissionError):
        require_console_access(Principal(id="u1", role="user"))

    admin = Principal(id="a1", role="admin")
    assert require_console_access(admin) is admin


def test_superadmin_required_for_actions() -> None:
    with pytest.raises(PermissionError):
        require_superadmin(Principal(id="a1", role="admin"))

    root = Principal(id="s1", role="superadmin")
    assert require_superadmin(root) is root
