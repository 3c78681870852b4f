import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional, Tuple

from cinebook.core.config import COMMIT_LOCK_TTL_MS, COMMIT_LOCK_WAIT_MS, LOCK_PREFIX

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.05

# Delete the lock only if we still own it
RELEASE_LUA_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""

Triple = Tuple[int, str, datetime]


def _prefix() -> str:
    p = LOCK_PREFIX or ""
    if p and not p.endswith(":"):
        p = p + ":"
    return p


def commit_lock_key(triple: Triple) -> str:
    """Redis key guarding commits for one (movie, theater, showtime) triple."""
    movie_id, theater_name, showtime_start = triple
    return f"{_prefix()}commit_lock:{movie_id}:{theater_name}:{showtime_start.isoformat()}"


async def acquire_lock(redis, key: str, owner: str, ttl_ms: int, wait_ms: int) -> bool:
    """Poll SET NX PX until the lock is ours or ``wait_ms`` elapses."""
    deadline = time.monotonic() + wait_ms / 1000.0
    while True:
        if await redis.set(key, owner, nx=True, px=ttl_ms):
            return True
        if time.monotonic() >= deadline:
            return False
        await asyncio.sleep(POLL_INTERVAL_S)


async def release_lock(redis, key: str, owner: str) -> bool:
    released = await redis.eval(RELEASE_LUA_SCRIPT, 1, key, owner)
    return int(released or 0) == 1


@asynccontextmanager
async def triple_lock(
    redis,
    triple: Triple,
    ttl_ms: int = COMMIT_LOCK_TTL_MS,
    wait_ms: int = COMMIT_LOCK_WAIT_MS,
) -> AsyncIterator[Optional[str]]:
    """
    Serialize commits for one triple across processes.

    Yields the owner token when the lock is held, or None when Redis is
    missing, failing or contended past ``wait_ms``. The seat-claim unique
    constraint still rejects overlapping bookings in the unlocked case.
    """
    if redis is None:
        logger.debug("Redis unavailable - committing without triple lock")
        yield None
        return

    key = commit_lock_key(triple)
    owner = uuid.uuid4().hex
    try:
        acquired = await acquire_lock(redis, key, owner, ttl_ms, wait_ms)
    except Exception as e:
        logger.warning("⚠ Commit lock acquire failed for %s, relying on seat constraint: %s", key, e)
        acquired = False

    if not acquired:
        logger.warning("⚠ Commit lock not acquired for %s within %sms", key, wait_ms)
        yield None
        return

    try:
        yield owner
    finally:
        try:
            if not await release_lock(redis, key, owner):
                logger.warning("Commit lock %s expired before release", key)
        except Exception as e:
            logger.warning("Commit lock release failed for %s (expires in %sms): %s", key, ttl_ms, e)
