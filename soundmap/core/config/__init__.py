"""
Config - Application configuration.

- settings.py: Settings dataclass from environment
- cache.py: Cache storage factory
"""

from .settings import Settings, CacheBackend, LogLevel, get_settings, reset_settings
from .cache import create_cache_storage

__all__ = [
    # Settings
    "Settings",
    "CacheBackend",
    "LogLevel",
    "get_settings",
    "reset_settings",
    # Cache
    "create_cache_storage",
]
