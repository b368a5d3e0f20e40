"""
Interfaces Module

Protocols the cache facade depends on, so backends can be swapped or mocked.
"""

from object_cache.core.interfaces.cache import InMemoryBackend, KeyValueBackend

__all__ = [
    "KeyValueBackend",
    "InMemoryBackend",
]
