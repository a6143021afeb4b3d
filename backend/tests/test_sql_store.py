from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
import sqlalchemy as sa

from moderation.domain.entities import User
from moderation.domain.ports.record_store import Collection, EventKind
from moderation.errors import StoreReadError, StoreWriteError
from moderation.infrastructure.sql_store import SqlRecordStore
from moderation.use_cases.approvals.load_requests import load_approval_requests
from tests.store_helpers import (
    BASE_TIME,
    make_sqlite_engine,
    request_record,
    sqlite_session_factory,
    user_record,
)


@pytest.fixture
def sql_store() -> SqlRecordStore:
    return SqlRecordStore(sqlite_session_factory(make_sqlite_engine()))


class BrokenSession:
    async def execute(self, *args, **kwargs):
        raise sa.exc.OperationalError("SELECT 1", {}, Exception("database is down"))

    async def commit(self) -> None:
        return None

    async def rollback(self) -> None:
        return None


@asynccontextmanager
async def broken_session_factory():
    yield BrokenSession()


@pytest.mark.anyio
async def test_insert_and_filter_by_membership(sql_store) -> None:
    await sql_store.insert(Collection.USERS, user_record("u1", "Ada", "Lovelace"))
    await sql_store.insert(
        Collection.USERS, user_record("u2", "Alan", "Turing", status="pending_admin")
    )
    await sql_store.insert(
        Collection.USERS, user_record("u3", "Grace", "Hopper", user_type="admin")
    )

    pending = await sql_store.fetch_all(Collection.USERS, {"status": ["pending_admin"]})
    chosen = await sql_store.fetch_all(Collection.USERS, {"id": ["u1", "u3"]})

    assert [record["id"] for record in pending] == ["u2"]
    assert {record["id"] for record in chosen} == {"u1", "u3"}
    assert pending[0]["firstName"] == "Alan"


@pytest.mark.anyio
async def test_insert_assigns_id_and_timestamp(sql_store) -> None:
    await sql_store.insert(Collection.USERS, user_record("u1", "Ada", "Lovelace"))

    created = await sql_store.insert(
        Collection.APPROVAL_REQUESTS,
        {"user_id": "u1", "requested_role": "admin", "status": "pending", "notes": None},
    )

    assert len(created["id"]) == 32
    assert created["requested_at"] is not None


@pytest.mark.anyio
async def test_update_round_trips_user_fields(sql_store) -> None:
    await sql_store.insert(Collection.USERS, user_record("u1", "Ada", "Lovelace"))
    until = BASE_TIME + timedelta(days=7)

    updated = await sql_store.update(
        Collection.USERS,
        "u1",
        {"is_banned": True, "banned_until": until, "ban_reason": "Spam"},
    )

    user = User.from_record(updated)
    assert user.is_banned
    assert user.banned_until == until
    assert user.ban_reason == "Spam"


@pytest.mark.anyio
async def test_update_publishes_committed_row(sql_store) -> None:
    await sql_store.insert(Collection.USERS, user_record("u1", "Ada", "Lovelace"))
    received: list[dict] = []

    async def handler(record: dict) -> None:
        received.append(record)

    unsubscribe = await sql_store.subscribe(Collection.USERS, EventKind.UPDATE, handler)
    await sql_store.update(Collection.USERS, "u1", {"user_type": "admin"})
    await unsubscribe()
    await sql_store.update(Collection.USERS, "u1", {"user_type": "user"})

    assert len(received) == 1
    assert received[0]["id"] == "u1"
    assert received[0]["user_type"] == "admin"
    assert received[0]["email"] == "u1@example.com"


@pytest.mark.anyio
async def test_update_missing_record_fails(sql_store) -> None:
    with pytest.raises(StoreWriteError):
        await sql_store.update(Collection.USERS, "ghost", {"is_banned": True})


@pytest.mark.anyio
async def test_second_pending_request_for_user_is_rejected(sql_store) -> None:
    await sql_store.insert(Collection.USERS, user_record("u1", "Ada", "Lovelace"))
    await sql_store.insert(Collection.APPROVAL_REQUESTS, request_record("r1", "u1"))

    with pytest.raises(StoreWriteError):
        await sql_store.insert(Collection.APPROVAL_REQUESTS, request_record("r2", "u1"))

    # Reviewed requests do not count against the limit
    await sql_store.insert(
        Collection.APPROVAL_REQUESTS, request_record("r3", "u1", status="rejected")
    )
    records = await sql_store.fetch_all(Collection.APPROVAL_REQUESTS, {"user_id": "u1"})
    assert sorted(record["id"] for record in records) == ["r1", "r3"]


@pytest.mark.anyio
async def test_reconciliation_over_sql(sql_store) -> None:
    await sql_store.insert(Collection.USERS, user_record("u1", "Ada", "Lovelace"))
    await sql_store.insert(
        Collection.USERS,
        user_record(
            "u2",
            "Alan",
            "Turing",
            status="pending_admin",
            created_at=datetime(2026, 1, 2, tzinfo=timezone.utc),
        ),
    )
    await sql_store.insert(Collection.APPROVAL_REQUESTS, request_record("r1", "u1"))

    requests = await load_approval_requests(sql_store)

    assert [request.id for request in requests] == ["pending-u2", "r1"]
    assert requests[1].user is not None
    assert requests[1].user.email == "u1@example.com"


@pytest.mark.anyio
async def test_read_failure_is_store_read_error() -> None:
    store = SqlRecordStore(broken_session_factory)

    with pytest.raises(StoreReadError):
        await store.fetch_all(Collection.USERS)


@pytest.mark.anyio
async def test_write_failure_is_store_write_error() -> None:
    store = SqlRecordStore(broken_session_factory)

    with pytest.raises(StoreWriteError):
        await store.update(Collection.USERS, "u1", {"is_banned": True})


@pytest.mark.anyio
async def test_unknown_filter_column(sql_store) -> None:
    with pytest.raises(StoreReadError):
        await sql_store.fetch_all(Collection.USERS, {"nickname": "ada"})
