"""
Cache-Related Exceptions

All exceptions related to caching operations (Redis, runtime tier, value codec).
"""

from object_cache.core.exceptions.base import ObjectCacheError


class CacheError(ObjectCacheError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to connect to the backend store (Redis).

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a backend key operation fails.

    Common causes:
    - INCRBY/DECRBY on a value that is not an integer
    - Operation timeout
    - Memory limit exceeded
    """
    pass


class CodecError(CacheError):
    """
    Raised when a stored value cannot be encoded or decoded.

    Common causes:
    - Record written by something other than this cache
    - Serializer refused the value
    """
    pass
