from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Protocol

from ..entities import Record


class Collection(str, Enum):
    USERS = "users"
    APPROVAL_REQUESTS = "approval_requests"
    NOTIFICATIONS = "notifications"
    ADMIN_NOTIFICATIONS = "admin_notifications"


class EventKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"


ChangeHandler = Callable[[Record], Awaitable[None]]
Unsubscribe = Callable[[], Awaitable[None]]


class RecordStore(Protocol):
    """Transactional record service over the console's collections.

    Writes are not atomic across calls or collections. Read failures raise
    ``StoreReadError``; write failures raise ``StoreWriteError``.
    """

    async def fetch_all(
        self, collection: Collection, filters: Mapping[str, Any] | None = None
    ) -> list[Record]:
        ...

    async def insert(self, collection: Collection, record: Mapping[str, Any]) -> Record:
        ...

    async def update(
        self, collection: Collection, record_id: str, patch: Mapping[str, Any]
    ) -> Record:
        ...

    async def subscribe(
        self, collection: Collection, event_kind: EventKind, handler: ChangeHandler
    ) -> Unsubscribe:
        ...
