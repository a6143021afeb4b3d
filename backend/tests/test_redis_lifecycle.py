"""Tests for the Redis singleton lifecycle.

Creating a client does not open a socket, so none of these need a server.
"""

import pytest

from moderation.infrastructure import redis


@pytest.fixture(autouse=True)
def reset_redis_state():
    redis._reset_for_testing()
    yield
    redis._reset_for_testing()


@pytest.mark.anyio
async def test_init_redis_is_idempotent() -> None:
    redis_url = "redis://localhost:6379/0"

    try:
        client1 = await redis.init_redis(redis_url)
        client2 = await redis.init_redis(redis_url)

        assert client1 is client2, "init_redis should return same client when called twice"
        assert redis._redis_state == redis._RedisLifecycleState.INITIALIZED
        assert redis.get_redis() is client1
    finally:
        await redis.close_redis()


@pytest.mark.anyio
async def test_close_redis_is_idempotent() -> None:
    await redis.init_redis("redis://localhost:6379/0")

    await redis.close_redis()
    assert redis._redis_state == redis._RedisLifecycleState.CLOSED
    assert redis._redis_client is None

    await redis.close_redis()
    assert redis._redis_state == redis._RedisLifecycleState.CLOSED


@pytest.mark.anyio
async def test_close_without_init_is_safe() -> None:
    await redis.close_redis()

    assert redis._redis_state == redis._RedisLifecycleState.UNINITIALIZED


@pytest.mark.anyio
async def test_get_redis_after_close_raises_error() -> None:
    await redis.init_redis("redis://localhost:6379/0")
    await redis.close_redis()

    with pytest.raises(RuntimeError, match="not initialized"):
        redis.get_redis()


@pytest.mark.anyio
async def test_reinit_after_close_creates_new_client() -> None:
    first = await redis.init_redis("redis://localhost:6379/0")
    await redis.close_redis()

    try:
        second = await redis.init_redis("redis://localhost:6379/0")
        assert second is not first
        assert redis._redis_state == redis._RedisLifecycleState.INITIALIZED
    finally:
        await redis.close_redis()
