"""
Cache Module

Provides the two-tier object cache (runtime tier in-process + shared Redis).
"""

from .cache_manager import (
    MISS,
    BackendTier,
    CacheObserver,
    ObjectCache,
    RuntimeTier,
    close_object_cache,
    get_object_cache,
    init_object_cache,
)
from .codec import ValueCodec, ValueKind, classify
from .keys import GroupClassifier, KeyBuilder, KeyScope
from .redis_client import RedisClient

__all__ = [
    "MISS",
    "ObjectCache",
    "RuntimeTier",
    "BackendTier",
    "CacheObserver",
    "get_object_cache",
    "init_object_cache",
    "close_object_cache",
    "ValueCodec",
    "ValueKind",
    "classify",
    "KeyScope",
    "GroupClassifier",
    "KeyBuilder",
    "RedisClient",
]
