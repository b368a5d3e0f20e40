"""
Configuration Module

Centralized, type-safe configuration for the object cache.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Default group lists, key layout and stage identifiers

Usage:
------
```python
from object_cache.core.config import get_settings
from object_cache.core.config.constants import Stage

settings = get_settings()
redis_host = settings.redis.REDIS_HOST
salt = settings.cache.CACHE_KEY_SALT
```

Environment Variables:
---------------------
```bash
REDIS_HOST=localhost
REDIS_PORT=6379
REDIS_DB=0

CACHE_KEY_SALT=site-a
CACHE_TABLE_PREFIX=wp_
CACHE_MULTI_TENANT=true
CACHE_TENANT_ID=3
CACHE_NON_PERSISTENT_GROUPS='["counts", "transient-report"]'

LOG_LEVEL=INFO
LOG_FORMAT=json
```

Testing:
-------
```python
import os
from object_cache.core.config import reload_settings

os.environ["CACHE_KEY_SALT"] = "test"
settings = reload_settings()
```
"""

from object_cache.core.config.constants import (
    DEFAULT_GLOBAL_GROUPS,
    DEFAULT_GROUP,
    DEFAULT_NON_PERSISTENT_GROUPS,
    KEY_SEPARATOR,
    LOG_KEY_MAX_LENGTH,
    CacheTier,
    Stage,
)
from object_cache.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "reload_settings",
    # Enums
    "Stage",
    "CacheTier",
    # Key layout
    "DEFAULT_GROUP",
    "KEY_SEPARATOR",
    "DEFAULT_GLOBAL_GROUPS",
    "DEFAULT_NON_PERSISTENT_GROUPS",
    "LOG_KEY_MAX_LENGTH",
]
