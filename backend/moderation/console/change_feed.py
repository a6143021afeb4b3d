from __future__ import annotations

import logging

from ..domain.entities import Record
from ..domain.ports.record_store import Collection, EventKind, RecordStore, Unsubscribe
from .cache import ConsoleCache

logger = logging.getLogger(__name__)


class ChangeFeedConsumer:
    """Refresh already-cached users from the store's update stream.

    Unknown ids are ignored: the feed refreshes rows, it never discovers new
    ones. Nothing is re-sorted here; the view model recomputes on next read.
    """

    def __init__(self, store: RecordStore, cache: ConsoleCache) -> None:
        self._store = store
        self._cache = cache
        self._unsubscribe: Unsubscribe | None = None

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = await self._store.subscribe(
            Collection.USERS, EventKind.UPDATE, self.apply
        )
        logger.info("change_feed_started collection=%s", Collection.USERS.value)

    async def stop(self) -> None:
        if self._unsubscribe is None:
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        await unsubscribe()
        logger.info("change_feed_stopped collection=%s", Collection.USERS.value)

    async def apply(self, record: Record) -> None:
        if self._cache.merge_user(record):
            logger.debug("change_feed_applied user_id=%s", record.get("id"))
        else:
            logger.debug("change_feed_ignored user_id=%s", record.get("id"))
