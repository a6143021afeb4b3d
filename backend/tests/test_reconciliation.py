from datetime import timedelta

import pytest

from moderation.domain.entities import (
    UNDATED,
    ApprovalRequest,
    RequestStatus,
    SyntheticRequest,
    User,
    UserType,
)
from moderation.domain.ports.record_store import Collection
from moderation.domain.reconciliation import (
    RequestStatusFilter,
    filter_requests,
    materialize,
    reconcile,
    resolve_request,
)
from moderation.errors import NotFoundError
from moderation.use_cases.approvals.load_requests import load_approval_requests
from tests.store_helpers import BASE_TIME, request_record, user_record


def _pending_user(user_id: str, hours: int = 0) -> User:
    return User.from_record(
        user_record(
            user_id,
            "Pending",
            user_id.upper(),
            status="pending_admin",
            created_at=BASE_TIME + timedelta(hours=hours),
        )
    )


def test_synthesizes_request_for_pending_user_without_record() -> None:
    result = reconcile([], [_pending_user("u1")])

    assert len(result) == 1
    synthetic = result[0]
    assert isinstance(synthetic, SyntheticRequest)
    assert synthetic.id == "pending-u1"
    assert synthetic.is_synthetic
    assert synthetic.status == RequestStatus.PENDING
    assert synthetic.requested_role == UserType.ADMIN
    assert synthetic.requested_at == BASE_TIME
    assert synthetic.user is not None and synthetic.user.email == "u1@example.com"


def test_formal_record_of_any_status_suppresses_synthesis() -> None:
    rejected = ApprovalRequest.from_record(request_record("r1", "u1", status="rejected"))

    result = reconcile([rejected], [_pending_user("u1")])

    assert result == [rejected]


def test_skips_users_without_id_or_not_pending() -> None:
    active = User.from_record(user_record("u2", "Active", "User"))
    nameless = _pending_user("")

    assert reconcile([], [active, nameless]) == []


def test_duplicate_pending_users_yield_one_request() -> None:
    result = reconcile([], [_pending_user("u1"), _pending_user("u1")])

    assert [request.id for request in result] == ["pending-u1"]


def test_orders_newest_first_across_formal_and_synthetic() -> None:
    oldest = ApprovalRequest.from_record(request_record("r1", "u1", hours=1))
    newest = ApprovalRequest.from_record(request_record("r3", "u3", hours=3))

    result = reconcile([oldest, newest], [_pending_user("u2", hours=2)])

    assert [request.id for request in result] == ["r3", "pending-u2", "r1"]


def test_reconcile_is_idempotent() -> None:
    formal = [ApprovalRequest.from_record(request_record("r1", "u1", hours=1))]
    users = [_pending_user("u2", hours=2), _pending_user("u3", hours=3)]

    first = reconcile(formal, users)
    second = reconcile(formal, users)

    assert first == second


def test_reconcile_without_created_at_is_deterministic() -> None:
    record = user_record("u1", "No", "Date", status="pending_admin")
    record.pop("created_at")
    undated = User.from_record(record)
    dated = _pending_user("u2")

    first = reconcile([], [undated, dated])
    second = reconcile([], [undated, dated])

    assert first == second
    assert [request.id for request in first] == ["pending-u2", "pending-u1"]
    assert first[1].requested_at == UNDATED


def test_formal_record_without_requested_at_sorts_last() -> None:
    record = request_record("r1", "u1")
    record.pop("requested_at")
    undated = ApprovalRequest.from_record(record)
    dated = ApprovalRequest.from_record(request_record("r2", "u2"))

    assert reconcile([undated, dated], []) == [dated, undated]
    assert undated.requested_at == UNDATED


def test_materialize_builds_pending_insert_payload() -> None:
    synthetic = reconcile([], [_pending_user("u1")])[0]

    assert materialize(synthetic, "Looks good") == {
        "user_id": "u1",
        "requested_role": "admin",
        "status": "pending",
        "notes": "Looks good",
    }
    assert materialize(synthetic, "")["notes"] is None


def test_filter_requests_by_status() -> None:
    requests = [
        ApprovalRequest.from_record(request_record("r1", "u1", status="approved")),
        ApprovalRequest.from_record(request_record("r2", "u2", status="rejected")),
        ApprovalRequest.from_record(request_record("r3", "u3")),
    ]
    requests += reconcile([], [_pending_user("u4")])

    assert [r.id for r in filter_requests(requests)] == ["r3", "pending-u4"]
    assert [r.id for r in filter_requests(requests, "approved")] == ["r1"]
    assert len(filter_requests(requests, RequestStatusFilter.ALL)) == 4


def test_resolve_request_unknown_id() -> None:
    with pytest.raises(NotFoundError):
        resolve_request([], "pending-missing")


@pytest.mark.anyio
async def test_load_attaches_owner_summaries_and_synthesizes(store) -> None:
    store.seed(
        Collection.USERS,
        [
            user_record("u1", "Ada", "Lovelace", status="pending_admin", requested_role="admin"),
            user_record("u2", "Alan", "Turing", status="pending_admin"),
        ],
    )
    store.seed(Collection.APPROVAL_REQUESTS, [request_record("r1", "u1", hours=5)])

    requests = await load_approval_requests(store)

    assert [request.id for request in requests] == ["r1", "pending-u2"]
    assert requests[0].user is not None
    assert requests[0].user.first_name == "Ada"
    assert requests[1].user is not None
    assert requests[1].user.last_name == "Turing"


@pytest.mark.anyio
async def test_materialized_requests_reconcile_to_same_set(store) -> None:
    store.seed(
        Collection.USERS,
        [
            user_record("u1", "Ada", "Lovelace", status="pending_admin"),
            user_record(
                "u2",
                "Alan",
                "Turing",
                status="pending_admin",
                created_at=BASE_TIME + timedelta(hours=2),
            ),
        ],
    )
    before = await load_approval_requests(store)
    assert all(request.is_synthetic for request in before)

    for request in before:
        # Keep the inferred request time so ordering is comparable
        await store.insert(
            Collection.APPROVAL_REQUESTS,
            {**materialize(request, None), "requested_at": request.requested_at},
        )
    after = await load_approval_requests(store)

    assert [request.user_id for request in after] == [
        request.user_id for request in before
    ]
    assert [request.user_id for request in after] == ["u2", "u1"]
    assert not any(request.is_synthetic for request in after)
    assert reconcile(after, []) == after
