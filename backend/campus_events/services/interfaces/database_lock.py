"""
Database-only strategy - no lock.
Relies entirely on the coordinator's conditional UPDATE.
"""

from contextlib import asynccontextmanager

from campus_events.services.interfaces.registration_lock import RegistrationLock


class DatabaseOnlyLock(RegistrationLock):
    """
    No serialization outside the database.

    Use when:
    - Several workers share a database and Redis is not deployed
    - Contention per event is low
    Concurrent losers of the last seat are re-evaluated by the coordinator.
    """

    @asynccontextmanager
    async def hold(self, event_id: int):
        yield
