from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..auth.access_gate import decode_principal, require_console_access, require_superadmin
from ..config import get_settings
from ..domain.entities import Principal
from ..domain.ports.notifications import NotificationDispatch
from ..domain.ports.record_store import RecordStore
from ..errors import AuthError, InternalError

bearer_scheme = HTTPBearer(auto_error=False)


def get_store(request: Request) -> RecordStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise InternalError("Record store is not configured")
    return store


def get_dispatch(request: Request) -> NotificationDispatch:
    dispatch = getattr(request.app.state, "dispatch", None)
    if dispatch is None:
        raise InternalError("Notification dispatch is not configured")
    return dispatch


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Not authenticated")
    settings = get_settings()
    return decode_principal(
        credentials.credentials,
        secret_key=settings.secret_key,
        algorithm=settings.algorithm,
    )


async def get_console_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    return require_console_access(principal)


async def get_superadmin_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    return require_superadmin(principal)
