"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .registration_lock import RegistrationLock
from .database_lock import DatabaseOnlyLock

__all__ = ['RegistrationLock', 'DatabaseOnlyLock']
