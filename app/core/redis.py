# ============================================================================
# Redis Connection & Per-Session Turn Locks
# ============================================================================
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as redis
from redis.exceptions import LockError

from app.config import get_settings
from app.core.exceptions import TutorException

settings = get_settings()
logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True
)

class TurnInProgress(TutorException):
    def __init__(self):
        super().__init__(
            detail="Another message for this session is still being processed",
            status_code=409,
            error_code="TURN_IN_PROGRESS"
        )

class TurnLocks:
    """
    Serializes turns per chat session.

    Backed by in-process asyncio locks, or by Redis locks when several
    instances share one database.
    """

    def __init__(self, client: Optional[redis.Redis] = None, timeout: int = 90):
        self.client = client
        self.timeout = timeout
        self._local: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _local_lock(self, key: str) -> asyncio.Lock:
        lock = self._local.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._local[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, session_id, blocking_timeout: Optional[float] = None) -> AsyncIterator[None]:
        """
        Hold the session's turn lock. Waits up to ``blocking_timeout``
        seconds (the lock TTL by default), then raises TurnInProgress.
        """
        key = f"chat_turn:{session_id}"
        wait = self.timeout if blocking_timeout is None else blocking_timeout

        if self.client is None:
            lock = self._local_lock(key)
            try:
                await asyncio.wait_for(lock.acquire(), timeout=wait)
            except asyncio.TimeoutError:
                raise TurnInProgress()
            try:
                yield
            finally:
                lock.release()
            return

        lock = self.client.lock(key, timeout=self.timeout, blocking_timeout=wait)
        if not await lock.acquire():
            raise TurnInProgress()
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                logger.warning(f"Turn lock {key} expired before release")

def build_turn_locks() -> TurnLocks:
    client = redis_client if settings.TURN_LOCK_BACKEND == "redis" else None
    return TurnLocks(client, timeout=settings.TURN_LOCK_TIMEOUT_SECONDS)

turn_locks = build_turn_locks()
