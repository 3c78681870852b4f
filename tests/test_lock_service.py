from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from cinebook.services.lock_service import (
    RELEASE_LUA_SCRIPT,
    acquire_lock,
    commit_lock_key,
    triple_lock,
)

TRIPLE = (7, "Galaxy Cinema", datetime(2030, 5, 1, 18, 30))


def test_commit_lock_key_names_the_triple():
    assert commit_lock_key(TRIPLE) == "cinebook:commit_lock:7:Galaxy Cinema:2030-05-01T18:30:00"


@pytest.mark.asyncio
async def test_lock_is_taken_and_released_by_owner():
    redis = AsyncMock()
    redis.set.return_value = True
    redis.eval.return_value = 1

    async with triple_lock(redis, TRIPLE, ttl_ms=1000, wait_ms=100) as owner:
        assert owner is not None
        redis.set.assert_awaited_once_with(commit_lock_key(TRIPLE), owner, nx=True, px=1000)
        redis.eval.assert_not_awaited()

    redis.eval.assert_awaited_once_with(RELEASE_LUA_SCRIPT, 1, commit_lock_key(TRIPLE), owner)


@pytest.mark.asyncio
async def test_lock_is_released_when_body_raises():
    redis = AsyncMock()
    redis.set.return_value = True
    redis.eval.return_value = 1

    with pytest.raises(RuntimeError):
        async with triple_lock(redis, TRIPLE, ttl_ms=1000, wait_ms=100):
            raise RuntimeError("boom")

    redis.eval.assert_awaited_once()


@pytest.mark.asyncio
async def test_acquire_polls_until_free():
    redis = AsyncMock()
    redis.set.side_effect = [None, None, True]

    assert await acquire_lock(redis, "k", "me", ttl_ms=1000, wait_ms=1000) is True
    assert redis.set.await_count == 3


@pytest.mark.asyncio
async def test_contended_lock_yields_none_after_wait():
    redis = AsyncMock()
    redis.set.return_value = None

    async with triple_lock(redis, TRIPLE, ttl_ms=1000, wait_ms=0) as owner:
        assert owner is None
    redis.eval.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_errors_degrade_to_no_lock(caplog):
    redis = AsyncMock()
    redis.set.side_effect = ConnectionError("redis down")

    async with triple_lock(redis, TRIPLE) as owner:
        assert owner is None
    assert "relying on seat constraint" in caplog.text


@pytest.mark.asyncio
async def test_no_redis_means_no_lock():
    async with triple_lock(None, TRIPLE) as owner:
        assert owner is None


@pytest.mark.asyncio
async def test_failed_release_is_logged_not_raised(caplog):
    redis = AsyncMock()
    redis.set.return_value = True
    redis.eval.side_effect = ConnectionError("gone")

    async with triple_lock(redis, TRIPLE, ttl_ms=1000, wait_ms=100):
        pass
    assert "release failed" in caplog.text
