"""
Object Cache

Two-tier key/value cache for application objects: a process-local runtime
tier in front of a shared Redis server.

Usage:
    from object_cache import MISS, init_object_cache

    cache = await init_object_cache()
    await cache.set("post:42", post, group="posts", expiration=300)
    if (post := await cache.get("post:42", group="posts")) is MISS:
        ...
"""

from object_cache.infrastructure.cache import (
    MISS,
    ObjectCache,
    close_object_cache,
    get_object_cache,
    init_object_cache,
)

__version__ = "1.0.0"

__all__ = [
    "MISS",
    "ObjectCache",
    "get_object_cache",
    "init_object_cache",
    "close_object_cache",
]
