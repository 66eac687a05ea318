"""
Registration lock strategy interface.
Chooses the serialization point that guards one event's seat counter.
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager


class RegistrationLock(ABC):
    """
    Per-event mutual exclusion around a registration or cancellation.

    Implementations:
    - DatabaseOnlyLock: no lock, the conditional UPDATE is the only guard
    - LocalRegistrationLock: asyncio.Lock per event, single process
    - RedisRegistrationLock: Redis lock shared by every worker process

    Whatever the strategy, the coordinator still performs the conditional
    UPDATE; the lock only removes contention on it.
    """

    @abstractmethod
    def hold(self, event_id: int) -> AsyncContextManager[None]:
        """
        Hold the lock for `event_id` for the duration of the context.

        A lock that cannot be acquired within its timeout is skipped and the
        body runs unlocked; callers never see lock errors.
        """
