"""
Core Module

Foundational components: configuration, logging, exceptions and backend protocols.
"""

from .exceptions import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CodecError,
    ConfigurationError,
    ObjectCacheError,
)
from .interfaces import InMemoryBackend, KeyValueBackend
from .logging import (
    get_logger,
    log_stage,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_stage",
    "ObjectCacheError",
    "ConfigurationError",
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CodecError",
    "KeyValueBackend",
    "InMemoryBackend",
]
