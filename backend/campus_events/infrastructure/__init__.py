"""
Connections to services outside the database: the shared Redis client used
by the event cache and the Redis registration lock.
"""

from .redis_client import get_redis, close_redis

__all__ = ['get_redis', 'close_redis']
