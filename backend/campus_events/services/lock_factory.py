"""
Registration lock factory.
Configures which per-event serialization strategy the coordinator uses.
"""

from typing import Optional

from campus_events.core.config import get_settings
from campus_events.services.interfaces.database_lock import DatabaseOnlyLock
from campus_events.services.interfaces.registration_lock import RegistrationLock
from campus_events.services.local_lock import LocalRegistrationLock
from campus_events.services.redis_lock import RedisRegistrationLock


def build_registration_lock(strategy: str, timeout: float) -> RegistrationLock:
    """
    Strategy selection via REGISTRATION_LOCK:
    - database: conditional UPDATE only (default)
    - local: asyncio lock per event (single worker)
    - redis: distributed lock (several workers)
    """
    if strategy == "redis":
        return RedisRegistrationLock(timeout=timeout)
    if strategy == "database":
        return DatabaseOnlyLock()
    if strategy == "local":
        return LocalRegistrationLock(timeout=timeout)
    raise ValueError(f"Unknown REGISTRATION_LOCK strategy: {strategy!r}")


# Singleton instance
_lock: Optional[RegistrationLock] = None


def get_registration_lock() -> RegistrationLock:
    """Get registration lock singleton."""
    global _lock
    if _lock is None:
        settings = get_settings()
        _lock = build_registration_lock(settings.REGISTRATION_LOCK, settings.REGISTRATION_LOCK_TIMEOUT)
    return _lock
