"""Merge formal approval requests with requests inferred from user status."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Sequence

from ..errors import NotFoundError
from .entities import (
    UNDATED,
    ApprovalRequest,
    PendingRequest,
    Record,
    RequestStatus,
    SyntheticRequest,
    User,
    UserStatus,
)


class RequestStatusFilter(str, Enum):
    ALL = "all"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def synthesize(user: User) -> SyntheticRequest:
    return SyntheticRequest(
        user_id=user.id,
        requested_at=user.created_at or UNDATED,
        user=user.summary(),
    )


def reconcile(
    formal_requests: Sequence[ApprovalRequest],
    pending_users: Iterable[User],
) -> list[PendingRequest]:
    """Combine formal requests with synthetic ones, newest first.

    A synthetic request is produced only for ``pending_admin`` users with no
    formal request at all, whatever that request's status. The sort is
    stable, so equal timestamps keep formal requests ahead of synthetic ones.
    Missing timestamps become ``UNDATED``; the clock is never read here.
    """
    known_user_ids = {request.user_id for request in formal_requests}
    synthetic: list[SyntheticRequest] = []
    for user in pending_users:
        if not user.id or user.status != UserStatus.PENDING_ADMIN:
            continue
        if user.id in known_user_ids:
            continue
        known_user_ids.add(user.id)
        synthetic.append(synthesize(user))

    combined: list[PendingRequest] = [*formal_requests, *synthetic]
    combined.sort(key=lambda request: request.requested_at, reverse=True)
    return combined


def materialize(request: SyntheticRequest, notes: str | None) -> Record:
    """Build the insert payload that turns ``request`` into a formal record."""
    return {
        "user_id": request.user_id,
        "requested_role": request.requested_role.value,
        "status": RequestStatus.PENDING.value,
        "notes": notes or None,
    }


def filter_requests(
    requests: Sequence[PendingRequest],
    status_filter: RequestStatusFilter | str = RequestStatusFilter.PENDING,
) -> list[PendingRequest]:
    status_filter = RequestStatusFilter(status_filter)
    if status_filter == RequestStatusFilter.ALL:
        return list(requests)
    return [
        request for request in requests if request.status.value == status_filter.value
    ]


def resolve_request(requests: Sequence[PendingRequest], request_id: str) -> PendingRequest:
    for request in requests:
        if request.id == request_id:
            return request
    raise NotFoundError(f"Approval request {request_id} not found")
