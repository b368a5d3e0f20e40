"""
System Constants and Enumerations

Default group lists, key layout constants and the stage identifiers used in
structured log entries.
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for logging)
# ============================================================================


class Stage(str, Enum):
    """
    Cache processing stages for structured logging.

    Format: {SEQUENCE}_{DESCRIPTIVE_NAME}
    """

    INITIALIZATION = "0.0_INITIALIZATION"
    RUNTIME_LOOKUP = "2.1_RUNTIME_LOOKUP"
    BACKEND_LOOKUP = "2.2_BACKEND_LOOKUP"
    CACHE_WRITE = "2.3_CACHE_WRITE"
    CACHE_DELETE = "2.4_CACHE_DELETE"
    COUNTER_UPDATE = "2.5_COUNTER_UPDATE"
    CACHE_FLUSH = "2.6_CACHE_FLUSH"
    SHUTDOWN = "3.0_SHUTDOWN"

    REDIS = "REDIS_OPERATIONS"
    CODEC = "C_VALUE_CODEC"


# ============================================================================
# Cache Tiers
# ============================================================================


class CacheTier(str, Enum):
    """Which tier answered a lookup."""

    RUNTIME = "runtime"
    BACKEND = "backend"
    MISS = "miss"


# ============================================================================
# Key Layout
# ============================================================================

DEFAULT_GROUP = "default"
KEY_SEPARATOR = ":"

# Groups shared by every tenant of a multi-tenant installation
DEFAULT_GLOBAL_GROUPS: tuple[str, ...] = (
    "users",
    "userlogins",
    "usermeta",
    "site-options",
    "site-lookup",
    "blog-lookup",
    "blog-details",
    "rss",
)

# Groups whose values only make sense for the current process
DEFAULT_NON_PERSISTENT_GROUPS: tuple[str, ...] = (
    "comment",
    "counts",
)

# Longest key fragment written to a log line
LOG_KEY_MAX_LENGTH = 40
