"""
In-process registration lock: one asyncio.Lock per event id.

Entries are reference counted and dropped once nobody holds or waits on
them, so the table only contains events with in-flight registrations.
"""

import asyncio
from contextlib import asynccontextmanager

from campus_events.core.logging import get_logger
from campus_events.core.metrics import registration_lock_timeouts
from campus_events.services.interfaces.registration_lock import RegistrationLock

logger = get_logger(__name__)


class LocalRegistrationLock(RegistrationLock):
    """
    Single-writer-per-event inside one process.

    Use when:
    - One API worker process (development, tests, small deployments)
    """

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._locks: dict[int, asyncio.Lock] = {}
        self._refs: dict[int, int] = {}

    def _checkout(self, event_id: int) -> asyncio.Lock:
        lock = self._locks.get(event_id)
        if lock is None:
            lock = self._locks[event_id] = asyncio.Lock()
        self._refs[event_id] = self._refs.get(event_id, 0) + 1
        return lock

    def _checkin(self, event_id: int) -> None:
        self._refs[event_id] -= 1
        if self._refs[event_id] == 0:
            del self._refs[event_id]
            del self._locks[event_id]

    @asynccontextmanager
    async def hold(self, event_id: int):
        lock = self._checkout(event_id)
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
                acquired = True
            except asyncio.TimeoutError:
                registration_lock_timeouts.labels(strategy="local").inc()
                logger.warning("registration_lock_timeout", event_id=event_id, timeout=self.timeout)
                acquired = False
            try:
                yield
            finally:
                if acquired:
                    lock.release()
        finally:
            self._checkin(event_id)

    @property
    def active_events(self) -> int:
        return len(self._locks)
