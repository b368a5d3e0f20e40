"""
Exception Module

Structured exception hierarchy for the object cache.

Module Structure:
-----------------
- **base.py**: ObjectCacheError base class + ConfigurationError
- **cache.py**: Backend, key and codec exceptions

Usage:
------
```python
from object_cache.core.exceptions import CacheConnectionError, CodecError
```

Ordinary cache conditions (a miss, an ``add`` on an existing key) are never
raised; they are reported as ``MISS`` / ``False`` by the cache facade. These
exceptions travel between the Redis client and the backend tier adapter, which
absorbs them.
"""

# Base exception
from object_cache.core.exceptions.base import ConfigurationError, ObjectCacheError

# Cache exceptions
from object_cache.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CodecError,
)

__all__ = [
    # Base
    "ObjectCacheError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CodecError",
]
