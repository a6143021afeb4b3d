"""Transports for the record store's change stream.

``LocalChangeFeed`` fans events out inside one process. ``RedisChangeFeed``
publishes them over Redis pub/sub so consoles running in other workers see
the same updates.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from contextlib import suppress
from datetime import date, datetime
from typing import Any, Protocol

from redis.exceptions import RedisError

from ..domain.entities import Record
from ..domain.ports.record_store import ChangeHandler, Collection, EventKind, Unsubscribe
from .redis import RedisClient

logger = logging.getLogger(__name__)


class ChangeFeed(Protocol):
    async def publish(
        self, collection: Collection, event_kind: EventKind, record: Record
    ) -> None:
        ...

    async def subscribe(
        self, collection: Collection, event_kind: EventKind, handler: ChangeHandler
    ) -> Unsubscribe:
        ...


async def _deliver(handler: ChangeHandler, record: Record, *, channel: str) -> None:
    try:
        await handler(record)
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "change_handler_failed channel=%s record_id=%s error=%s",
            channel,
            record.get("id"),
            exc,
        )


class LocalChangeFeed:
    def __init__(self) -> None:
        self._handlers: dict[tuple[Collection, EventKind], list[ChangeHandler]] = defaultdict(list)

    async def publish(
        self, collection: Collection, event_kind: EventKind, record: Record
    ) -> None:
        channel = f"{collection.value}:{event_kind.value}"
        for handler in list(self._handlers[(collection, event_kind)]):
            await _deliver(handler, dict(record), channel=channel)

    async def subscribe(
        self, collection: Collection, event_kind: EventKind, handler: ChangeHandler
    ) -> Unsubscribe:
        key = (collection, event_kind)
        self._handlers[key].append(handler)

        async def unsubscribe() -> None:
            with suppress(ValueError):
                self._handlers[key].remove(handler)

        return unsubscribe


def _encode(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class RedisChangeFeed:
    def __init__(self, client: RedisClient, *, prefix: str) -> None:
        self._client = client
        self._prefix = prefix

    def channel(self, collection: Collection, event_kind: EventKind) -> str:
        return f"{self._prefix}:{collection.value}:{event_kind.value}"

    async def publish(
        self, collection: Collection, event_kind: EventKind, record: Record
    ) -> None:
        channel = self.channel(collection, event_kind)
        try:
            await self._client.publish(channel, json.dumps(record, default=_encode))
        except RedisError as exc:
            # The write already committed; subscribers catch up on next reload
            logger.warning("change_publish_failed channel=%s error=%s", channel, exc)

    async def subscribe(
        self, collection: Collection, event_kind: EventKind, handler: ChangeHandler
    ) -> Unsubscribe:
        channel = self.channel(collection, event_kind)
        pubsub = await self._client.pubsub()
        await pubsub.subscribe(channel)
        task = asyncio.create_task(self._listen(pubsub, channel, handler))

        async def unsubscribe() -> None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()

        return unsubscribe

    async def _listen(self, pubsub: Any, channel: str, handler: ChangeHandler) -> None:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                record = json.loads(message["data"])
            except (TypeError, ValueError) as exc:
                logger.warning("change_message_malformed channel=%s error=%s", channel, exc)
                continue
            if not isinstance(record, dict):
                logger.warning("change_message_malformed channel=%s error=not_an_object", channel)
                continue
            await _deliver(handler, record, channel=channel)
