"""
Logging Module

structlog configuration for the object cache. Call ``setup_logging()`` once
at process start; modules then use ``get_logger(__name__)`` and tag entries
with a ``Stage`` through ``log_stage``.
"""

from .logger import (
    get_logger,
    log_stage,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_stage",
]
