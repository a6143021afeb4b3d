"""Record store backed by the relational database.

Every call runs in its own session and transaction, so a multi-step action
can leave earlier writes committed when a later one fails. Rows are
published on the change feed only after their transaction commits.
"""
from __future__ import annotations

import logging
import uuid
from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, Mapping

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.entities import Record
from ..domain.ports.record_store import ChangeHandler, Collection, EventKind, Unsubscribe
from ..errors import StoreReadError, StoreWriteError
from ..models import AdminNotification, ApprovalRequest, Notification, User
from .change_feed import ChangeFeed, LocalChangeFeed

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_TABLES: dict[Collection, sa.Table] = {
    Collection.USERS: User.__table__,
    Collection.APPROVAL_REQUESTS: ApprovalRequest.__table__,
    Collection.NOTIFICATIONS: Notification.__table__,
    Collection.ADMIN_NOTIFICATIONS: AdminNotification.__table__,
}

_ORDERING: dict[Collection, str] = {
    Collection.USERS: "created_at",
    Collection.APPROVAL_REQUESTS: "requested_at",
    Collection.NOTIFICATIONS: "created_at",
    Collection.ADMIN_NOTIFICATIONS: "created_at",
}


def table_for(collection: Collection) -> sa.Table:
    return _TABLES[collection]


def _apply_filters(
    query: sa.Select, table: sa.Table, filters: Mapping[str, Any] | None
) -> sa.Select:
    for key, expected in (filters or {}).items():
        if key not in table.c:
            raise StoreReadError(
                f"Unknown filter column: {key}", details={"table": table.name}
            )
        column = table.c[key]
        if isinstance(expected, (list, tuple, set, frozenset)):
            query = query.where(column.in_(list(expected)))
        elif expected is None:
            query = query.where(column.is_(None))
        else:
            query = query.where(column == expected)
    return query


class SqlRecordStore:
    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        feed: ChangeFeed | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._feed = feed or LocalChangeFeed()

    async def fetch_all(
        self, collection: Collection, filters: Mapping[str, Any] | None = None
    ) -> list[Record]:
        table = table_for(collection)
        query = _apply_filters(sa.select(table), table, filters)
        query = query.order_by(table.c[_ORDERING[collection]].desc())
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as exc:
            logger.error("store_read_failed collection=%s error=%s", collection.value, exc)
            raise StoreReadError(details={"collection": collection.value}) from exc

    async def insert(self, collection: Collection, record: Mapping[str, Any]) -> Record:
        table = table_for(collection)
        values = dict(record)
        values.setdefault("id", uuid.uuid4().hex)
        record_id = str(values["id"])
        async with self._session_factory() as session:
            try:
                await session.execute(sa.insert(table).values(**values))
                await session.commit()
                stored = await self._load(session, table, record_id)
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(
                    "store_write_failed op=insert collection=%s error=%s",
                    collection.value,
                    exc,
                )
                raise StoreWriteError(
                    details={"collection": collection.value, "op": "insert"}
                ) from exc
        stored = stored or values
        await self._feed.publish(collection, EventKind.INSERT, dict(stored))
        return stored

    async def update(
        self, collection: Collection, record_id: str, patch: Mapping[str, Any]
    ) -> Record:
        table = table_for(collection)
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    sa.update(table).where(table.c.id == record_id).values(**dict(patch))
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise StoreWriteError(
                        "Record not found",
                        details={"collection": collection.value, "id": record_id},
                    )
                await session.commit()
                stored = await self._load(session, table, record_id)
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(
                    "store_write_failed op=update collection=%s id=%s error=%s",
                    collection.value,
                    record_id,
                    exc,
                )
                raise StoreWriteError(
                    details={"collection": collection.value, "op": "update", "id": record_id}
                ) from exc
        stored = stored or {"id": record_id, **patch}
        await self._feed.publish(collection, EventKind.UPDATE, dict(stored))
        return stored

    async def subscribe(
        self, collection: Collection, event_kind: EventKind, handler: ChangeHandler
    ) -> Unsubscribe:
        return await self._feed.subscribe(collection, event_kind, handler)

    @staticmethod
    async def _load(session: AsyncSession, table: sa.Table, record_id: str) -> Record | None:
        result = await session.execute(sa.select(table).where(table.c.id == record_id))
        row = result.mappings().first()
        return dict(row) if row is not None else None
