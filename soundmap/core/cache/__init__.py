"""
Cache - Analysis cache and its persisted models.

Usage:
    from soundmap.core.cache import AnalysisCache

    cache = AnalysisCache.from_settings()
    analysis = cache.get(record)
"""

from .models import CacheEntry, CacheStore
from .interfaces import ICacheStatusProvider, CacheStats
from .repository import (
    AnalysisCache,
    CACHE_VERSION,
    DEFAULT_MAX_BYTES,
    DEFAULT_MAX_ENTRIES,
    DEFAULT_STORAGE_KEY,
)

__all__ = [
    'AnalysisCache',
    'CacheEntry',
    'CacheStore',
    'ICacheStatusProvider',
    'CacheStats',
    'CACHE_VERSION',
    'DEFAULT_MAX_BYTES',
    'DEFAULT_MAX_ENTRIES',
    'DEFAULT_STORAGE_KEY',
]
