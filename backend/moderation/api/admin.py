"""
Admin API endpoints for the moderation console.

Reads need an admin or superadmin principal; every mutation needs
superadmin. Side-effect failures never fail a request: they come back in
``warnings`` next to the committed result.
"""
from fastapi import APIRouter, Depends, Query

from ..config import get_settings
from ..console.view_model import RoleFilter, StatusFilter, ViewFilters, derive_user_page
from ..domain.entities import Principal
from ..domain.ports.notifications import NotificationDispatch
from ..domain.ports.record_store import RecordStore
from ..domain.reconciliation import RequestStatusFilter, filter_requests, resolve_request
from ..use_cases.approvals.decide_request import decide_request
from ..use_cases.approvals.load_requests import load_approval_requests
from ..use_cases.lookups import get_user, list_users
from ..use_cases.moderation.ban_user import ban_user
from ..use_cases.moderation.change_role import change_role
from ..use_cases.moderation.unban_user import unban_user
from .dependencies import get_console_principal, get_dispatch, get_store, get_superadmin_principal
from .schemas import (
    ApprovalRequestOut,
    BanIn,
    DecisionIn,
    DecisionOut,
    RoleIn,
    UnbanIn,
    UserActionOut,
    UserOut,
    UserPageOut,
    WarningOut,
)

router = APIRouter(prefix="/admin", tags=["admin-moderation"])


@router.get("/users", response_model=UserPageOut)
async def list_console_users(
    search: str = Query("", max_length=200, description="Matches name, email or mobile"),
    role: RoleFilter = Query(RoleFilter.ALL, description="Filter by role"),
    status_filter: StatusFilter = Query(
        StatusFilter.ALL, alias="status", description="Filter by ban status"
    ),
    page: int = Query(1, ge=1, description="1-based page, clamped to the last page"),
    page_size: int | None = Query(None, ge=1, le=100, description="Results per page"),
    store: RecordStore = Depends(get_store),
    _principal: Principal = Depends(get_console_principal),
):
    users = await list_users(store)
    result = derive_user_page(
        users,
        ViewFilters(search_term=search, role_filter=role, status_filter=status_filter),
        page=page,
        page_size=page_size or get_settings().console_page_size,
    )
    return UserPageOut.from_page(result)


@router.get("/approval-requests", response_model=list[ApprovalRequestOut])
async def list_approval_requests(
    status_filter: RequestStatusFilter = Query(
        RequestStatusFilter.PENDING, alias="status", description="Filter by request status"
    ),
    store: RecordStore = Depends(get_store),
    _principal: Principal = Depends(get_console_principal),
):
    requests = await load_approval_requests(store)
    return [ApprovalRequestOut.from_entity(item) for item in filter_requests(requests, status_filter)]


@router.post("/approval-requests/{request_id}/decision", response_model=DecisionOut)
async def decide_approval_request(
    request_id: str,
    payload: DecisionIn,
    store: RecordStore = Depends(get_store),
    dispatch: NotificationDispatch = Depends(get_dispatch),
    principal: Principal = Depends(get_superadmin_principal),
):
    """
    Approve or reject a request.

    ``request_id`` may be a synthetic ``pending-<user id>``; the request is
    written to the store before the decision is recorded.
    """
    request = resolve_request(await load_approval_requests(store), request_id)
    outcome = await decide_request(
        store,
        dispatch,
        request,
        payload.action,
        reviewer_id=principal.id,
        notes=payload.notes,
    )
    return DecisionOut(
        request=ApprovalRequestOut.from_entity(outcome.result),
        warnings=WarningOut.from_warnings(outcome.warnings),
    )


@router.post("/users/{user_id}/ban", response_model=UserActionOut)
async def ban_console_user(
    user_id: str,
    payload: BanIn,
    store: RecordStore = Depends(get_store),
    dispatch: NotificationDispatch = Depends(get_dispatch),
    _principal: Principal = Depends(get_superadmin_principal),
):
    user = await get_user(store, user_id)
    outcome = await ban_user(
        store, dispatch, user, payload.ban_type, payload.reason, payload.days
    )
    return UserActionOut(
        user=UserOut.from_entity(user.merged_with(outcome.result)),
        warnings=WarningOut.from_warnings(outcome.warnings),
    )


@router.post("/users/{user_id}/unban", response_model=UserActionOut)
async def unban_console_user(
    user_id: str,
    payload: UnbanIn,
    store: RecordStore = Depends(get_store),
    dispatch: NotificationDispatch = Depends(get_dispatch),
    _principal: Principal = Depends(get_superadmin_principal),
):
    user = await get_user(store, user_id)
    outcome = await unban_user(store, dispatch, user, payload.message)
    return UserActionOut(
        user=UserOut.from_entity(user.merged_with(outcome.result)),
        warnings=WarningOut.from_warnings(outcome.warnings),
    )


@router.put("/users/{user_id}/role", response_model=UserActionOut)
async def change_console_user_role(
    user_id: str,
    payload: RoleIn,
    store: RecordStore = Depends(get_store),
    _principal: Principal = Depends(get_superadmin_principal),
):
    user = await get_user(store, user_id)
    patch = await change_role(store, user, payload.user_type)
    return UserActionOut(user=UserOut.from_entity(user.merged_with(patch)))
