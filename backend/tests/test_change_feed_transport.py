import asyncio
import json
from datetime import datetime, timezone

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from moderation.domain.ports.record_store import Collection, EventKind
from moderation.infrastructure.change_feed import LocalChangeFeed, RedisChangeFeed
from moderation.errors import StoreWriteError
from tests.store_helpers import InMemoryRecordStore, user_record


class FakePubSub:
    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()
        self.channels: set[str] = set()
        self.closed = False

    async def subscribe(self, channel: str) -> None:
        self.channels.add(channel)

    async def unsubscribe(self, channel: str) -> None:
        self.channels.discard(channel)

    async def aclose(self) -> None:
        self.closed = True

    async def listen(self):
        while True:
            yield await self.queue.get()


class FakeRedisClient:
    def __init__(self, *, fail_publish: bool = False) -> None:
        self.fail_publish = fail_publish
        self.pubsubs: list[FakePubSub] = []
        self.published: list[tuple[str, str]] = []

    async def pubsub(self) -> FakePubSub:
        pubsub = FakePubSub()
        self.pubsubs.append(pubsub)
        return pubsub

    async def publish(self, channel: str, message: str) -> int:
        if self.fail_publish:
            raise RedisConnectionError("redis is down")
        self.published.append((channel, message))
        receivers = [p for p in self.pubsubs if channel in p.channels]
        for pubsub in receivers:
            pubsub.queue.put_nowait({"type": "message", "channel": channel, "data": message})
        return len(receivers)


@pytest.mark.anyio
async def test_local_feed_keeps_delivering_after_handler_error() -> None:
    feed = LocalChangeFeed()
    received: list[dict] = []

    async def broken(_record: dict) -> None:
        raise RuntimeError("handler bug")

    async def collect(record: dict) -> None:
        received.append(record)

    await feed.subscribe(Collection.USERS, EventKind.UPDATE, broken)
    await feed.subscribe(Collection.USERS, EventKind.UPDATE, collect)
    await feed.publish(Collection.USERS, EventKind.UPDATE, {"id": "u1"})
    await feed.publish(Collection.USERS, EventKind.INSERT, {"id": "u2"})

    assert received == [{"id": "u1"}]


@pytest.mark.anyio
async def test_memory_store_publishes_through_feed() -> None:
    feed = LocalChangeFeed()
    store = InMemoryRecordStore(feed=feed)
    store.seed(Collection.USERS, [user_record("u1", "Ada", "Lovelace")])
    inserted: list[dict] = []

    async def collect(record: dict) -> None:
        inserted.append(record)

    await store.subscribe(Collection.NOTIFICATIONS, EventKind.INSERT, collect)
    await store.insert(Collection.NOTIFICATIONS, {"user_id": "u1", "message": "hi"})

    assert inserted[0]["message"] == "hi"
    assert inserted[0]["created_at"] is not None


@pytest.mark.anyio
async def test_memory_store_allows_one_pending_request_per_user(store) -> None:
    await store.insert(Collection.APPROVAL_REQUESTS, {"user_id": "u1", "status": "pending"})

    with pytest.raises(StoreWriteError):
        await store.insert(Collection.APPROVAL_REQUESTS, {"user_id": "u1", "status": "pending"})

    assert len(store.records(Collection.APPROVAL_REQUESTS)) == 1


@pytest.mark.anyio
async def test_redis_feed_round_trip() -> None:
    client = FakeRedisClient()
    feed = RedisChangeFeed(client, prefix="moderation:changes")
    delivered = asyncio.Event()
    received: list[dict] = []

    async def collect(record: dict) -> None:
        received.append(record)
        delivered.set()

    unsubscribe = await feed.subscribe(Collection.USERS, EventKind.UPDATE, collect)
    await feed.publish(
        Collection.USERS,
        EventKind.UPDATE,
        {"id": "u1", "banned_until": datetime(2026, 1, 8, tzinfo=timezone.utc)},
    )
    await asyncio.wait_for(delivered.wait(), timeout=1)
    await unsubscribe()

    assert client.published[0][0] == "moderation:changes:users:update"
    assert received == [{"id": "u1", "banned_until": "2026-01-08T00:00:00+00:00"}]
    assert client.pubsubs[0].closed
    assert client.pubsubs[0].channels == set()


@pytest.mark.anyio
async def test_redis_feed_skips_malformed_messages() -> None:
    client = FakeRedisClient()
    feed = RedisChangeFeed(client, prefix="test")
    delivered = asyncio.Event()
    received: list[dict] = []

    async def collect(record: dict) -> None:
        received.append(record)
        delivered.set()

    unsubscribe = await feed.subscribe(Collection.USERS, EventKind.UPDATE, collect)
    pubsub = client.pubsubs[0]
    pubsub.queue.put_nowait({"type": "message", "data": "not json"})
    pubsub.queue.put_nowait({"type": "message", "data": json.dumps([1, 2])})
    pubsub.queue.put_nowait({"type": "message", "data": json.dumps({"id": "u1"})})
    await asyncio.wait_for(delivered.wait(), timeout=1)
    await unsubscribe()

    assert received == [{"id": "u1"}]


@pytest.mark.anyio
async def test_redis_publish_failure_is_not_raised() -> None:
    feed = RedisChangeFeed(FakeRedisClient(fail_publish=True), prefix="test")

    await feed.publish(Collection.USERS, EventKind.UPDATE, {"id": "u1"})
