"""Redis client used to fan record changes out to every console session.

Sessions in other processes learn about each other's writes through Redis
pub/sub; the client here only wraps connection lifecycle, publishing and
subscription handles.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto

from redis.asyncio import Redis as AsyncRedis, from_url as async_from_url
from redis.asyncio.client import PubSub

logger = logging.getLogger(__name__)


class _RedisLifecycleState(Enum):
    """Lifecycle states for the Redis singleton.

    State transitions:
    - UNINITIALIZED -> INITIALIZED (via init_redis)
    - INITIALIZED -> CLOSED (via close_redis)
    - CLOSED -> INITIALIZED (via init_redis - allows restart)
    """
    UNINITIALIZED = auto()
    INITIALIZED = auto()
    CLOSED = auto()


class RedisClient:
    def __init__(self, redis_url: str) -> None:
        """
        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
        """
        self._redis_url = redis_url
        self._redis: AsyncRedis | None = None

    async def connect(self) -> None:
        if self._redis is None:
            self._redis = async_from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("Redis connection established")

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Redis connection closed")

    async def _ensure_connected(self) -> AsyncRedis:
        if self._redis is None:
            await self.connect()
        assert self._redis is not None
        return self._redis

    async def publish(self, channel: str, message: str) -> int:
        """Publish ``message`` on ``channel``.

        Returns:
            Number of subscribers that received the message
        """
        redis = await self._ensure_connected()
        return int(await redis.publish(channel, message))

    async def pubsub(self) -> PubSub:
        """Open a new pub/sub handle; the caller owns closing it."""
        redis = await self._ensure_connected()
        return redis.pubsub(ignore_subscribe_messages=True)


# Created at startup, not at import; guarded by _redis_lock
_redis_client: RedisClient | None = None
_redis_state: _RedisLifecycleState = _RedisLifecycleState.UNINITIALIZED
_redis_lock: asyncio.Lock = asyncio.Lock()


async def init_redis(redis_url: str) -> RedisClient:
    """Initialize the global Redis client.

    Idempotent: when already initialized the existing client is returned.
    """
    global _redis_client, _redis_state

    async with _redis_lock:
        if _redis_state == _RedisLifecycleState.INITIALIZED:
            assert _redis_client is not None
            logger.debug("Redis already initialized, returning existing client")
            return _redis_client

        logger.info("Initializing Redis client (current state: %s)", _redis_state.name)
        _redis_client = RedisClient(redis_url)
        await _redis_client.connect()
        _redis_state = _RedisLifecycleState.INITIALIZED
        return _redis_client


async def close_redis() -> None:
    """Close the global Redis client. Safe to call repeatedly."""
    global _redis_client, _redis_state

    async with _redis_lock:
        if _redis_state != _RedisLifecycleState.INITIALIZED:
            logger.debug("Redis not initialized (state: %s), nothing to close", _redis_state.name)
            return

        if _redis_client is not None:
            await _redis_client.disconnect()
            _redis_client = None
        _redis_state = _RedisLifecycleState.CLOSED
        logger.info("Redis client closed")


def get_redis() -> RedisClient:
    """
    Raises:
        RuntimeError: If the client has not been initialized
    """
    if _redis_state != _RedisLifecycleState.INITIALIZED or _redis_client is None:
        raise RuntimeError("Redis client not initialized. Call init_redis() first.")
    return _redis_client


def _reset_for_testing() -> None:
    global _redis_client, _redis_state
    _redis_client = None
    _redis_state = _RedisLifecycleState.UNINITIALIZED
