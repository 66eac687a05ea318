"""
Redis-backed registration lock for multi-process deployments.

Circuit Breaker Pattern:
  If Redis is unreachable, or the lock is not acquired within the timeout,
  the attempt "fails open" and proceeds without it. The database stays
  authoritative because the coordinator's conditional UPDATE still refuses
  to go past capacity; the only cost is more losers being re-evaluated
  under contention.
"""

from contextlib import asynccontextmanager

from redis.exceptions import LockError, RedisError

from campus_events.core.logging import get_logger
from campus_events.core.metrics import redis_connection_errors, registration_lock_timeouts
from campus_events.infrastructure.redis_client import get_redis
from campus_events.services.interfaces.registration_lock import RegistrationLock

logger = get_logger(__name__)


class RedisRegistrationLock(RegistrationLock):
    """
    Distributed single-writer-per-event lock.

    Use when:
    - Several API workers serve registrations for the same events
    - Popular events where many students register at opening time
    """

    def __init__(self, timeout: float = 10.0, lease: float = 30.0):
        self.timeout = timeout
        # Lease bounds how long a crashed holder can block the event
        self.lease = lease

    @staticmethod
    def _key(event_id: int) -> str:
        return f"registration_lock:{event_id}"

    @asynccontextmanager
    async def hold(self, event_id: int):
        client = await get_redis()
        if client is None:
            yield
            return

        lock = client.lock(self._key(event_id), timeout=self.lease, blocking_timeout=self.timeout)
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            redis_connection_errors.inc()
            logger.warning("registration_lock_unavailable", event_id=event_id, error=str(e))
            acquired = False
        else:
            if not acquired:
                registration_lock_timeouts.labels(strategy="redis").inc()
                logger.warning("registration_lock_timeout", event_id=event_id, timeout=self.timeout)

        try:
            yield
        finally:
            if acquired:
                await self._release(lock, event_id)

    async def _release(self, lock, event_id: int) -> None:
        try:
            await lock.release()
        except LockError:
            # Lease expired while we were still working; the DB guard held
            logger.warning("registration_lock_expired", event_id=event_id, lease=self.lease)
        except RedisError as e:
            redis_connection_errors.inc()
            logger.warning("registration_lock_release_failed", event_id=event_id, error=str(e))
