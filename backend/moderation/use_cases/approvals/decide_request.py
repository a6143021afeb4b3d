import logging
from datetime import datetime, timezone

from ...application.side_effects import ActionOutcome, SideEffect, run_side_effects
from ...domain.entities import (
    ApprovalRequest,
    PendingRequest,
    RequestStatus,
    ReviewAction,
    SyntheticRequest,
    UserStatus,
    UserType,
)
from ...domain.invariants import (
    require_reason,
    validate_not_superadmin,
    validate_request_pending,
)
from ...domain.ports.notifications import NotificationDispatch
from ...domain.ports.record_store import Collection, RecordStore
from ...domain.reconciliation import materialize
from ...errors import ValidationError
from ..lookups import get_user

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "No reason provided."


def _outcome_message(request: ApprovalRequest, action: ReviewAction) -> str:
    role = request.requested_role.value
    if action == ReviewAction.APPROVE:
        return (
            f"Your {role} account request has been approved! "
            "You can now log in with your new role."
        )
    return (
        f"Your {role} account request has been rejected. "
        f"Reason: {request.notes or DEFAULT_REJECTION_REASON}"
    )


def _user_patch(request: ApprovalRequest, action: ReviewAction) -> dict:
    if action == ReviewAction.APPROVE:
        return {
            "user_type": request.requested_role.value,
            "status": UserStatus.ACTIVE.value,
            "requested_role": None,
        }
    return {
        "status": UserStatus.ACTIVE.value,
        "user_type": UserType.USER.value,
    }


async def _materialize(
    store: RecordStore, request: SyntheticRequest, notes: str | None
) -> ApprovalRequest:
    created = await store.insert(
        Collection.APPROVAL_REQUESTS, materialize(request, notes)
    )
    logger.info(
        "operation=approval:materialize request_id=%s user_id=%s",
        created.get("id"),
        request.user_id,
    )
    return ApprovalRequest.from_record(created, user=request.user)


async def decide_request(
    store: RecordStore,
    dispatch: NotificationDispatch,
    request: PendingRequest,
    action: ReviewAction | str,
    *,
    reviewer_id: str,
    notes: str | None = None,
    now: datetime | None = None,
) -> ActionOutcome[ApprovalRequest]:
    """
    Approve or reject an approval request.

    ORDER: materialize (synthetic only) -> request transition -> user cascade
    -> notification. The first three are separate store writes; a failure in
    any of them propagates and nothing is compensated. The notification is
    best-effort and reported through ``ActionOutcome.warnings``.
    """
    try:
        action = ReviewAction(action)
    except ValueError:
        raise ValidationError(f"Unknown review action: {action!r}") from None

    if action == ReviewAction.REJECT:
        notes = require_reason(notes, field="Rejection reason")
    elif notes is not None:
        notes = notes.strip() or None

    validate_request_pending(request.status, request_id=request.id)
    target = await get_user(store, request.user_id)
    validate_not_superadmin(target, operation=f"{action.value} a role request for")

    if isinstance(request, SyntheticRequest):
        working = await _materialize(store, request, notes)
    else:
        working = request

    reviewed_at = now or datetime.now(timezone.utc)
    new_status = (
        RequestStatus.APPROVED if action == ReviewAction.APPROVE else RequestStatus.REJECTED
    )
    final_notes = notes if notes is not None else working.notes
    await store.update(
        Collection.APPROVAL_REQUESTS,
        working.id,
        {
            "status": new_status.value,
            "reviewed_at": reviewed_at,
            "reviewed_by": reviewer_id,
            "notes": final_notes,
        },
    )
    decided = ApprovalRequest(
        id=working.id,
        user_id=working.user_id,
        requested_role=working.requested_role,
        requested_at=working.requested_at,
        status=new_status,
        reviewed_at=reviewed_at,
        reviewed_by=reviewer_id,
        notes=final_notes,
        user=working.user,
    )

    await store.update(Collection.USERS, decided.user_id, _user_patch(decided, action))
    logger.info(
        "operation=approval:%s request_id=%s user_id=%s reviewer_id=%s",
        action.value,
        decided.id,
        decided.user_id,
        reviewer_id,
    )

    async def notify_user() -> None:
        await dispatch.send_in_app(decided.user_id, _outcome_message(decided, action))

    warnings = await run_side_effects(
        [SideEffect("in_app_notification", notify_user)],
        operation=f"approval:{action.value}",
    )
    return ActionOutcome(result=decided, warnings=warnings)
