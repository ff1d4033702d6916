"""
Cache Storage Factory - Create the storage backend of the analysis cache.

Uses factory pattern for dependency injection.
"""

import os
from typing import Optional

from ..interfaces import StorageProtocol
from .settings import CacheBackend, get_settings


def create_cache_storage(
    backend: Optional[CacheBackend] = None,
    **kwargs
) -> StorageProtocol:
    """
    Factory for cache storage backends.

    Args:
        backend: Storage backend (default from settings)
        **kwargs: Backend-specific arguments (cache_dir, db_path, quota_bytes)

    Returns:
        StorageProtocol implementation

    Example:
        storage = create_cache_storage()  # Uses settings
        storage = create_cache_storage(CacheBackend.SQLITE, db_path="/tmp/a.db")
    """
    settings = get_settings()
    backend = backend or settings.cache_backend
    quota_bytes = kwargs.get('quota_bytes', settings.storage_quota_bytes)

    if backend == CacheBackend.FILE:
        from ..connectors.file_storage import FileStorage
        cache_dir = kwargs.get('cache_dir', settings.cache_dir)
        return FileStorage(cache_dir=cache_dir, quota_bytes=quota_bytes)

    elif backend == CacheBackend.SQLITE:
        from ..connectors.sqlite_storage import SQLiteStorage
        db_path = kwargs.get('db_path', os.path.join(settings.cache_dir, 'analysis.db'))
        return SQLiteStorage(db_path=db_path, quota_bytes=quota_bytes)

    elif backend == CacheBackend.MEMORY:
        from ..connectors.inmemory_storage import InMemoryStorage
        return InMemoryStorage(quota_bytes=quota_bytes)

    raise ValueError(f"Unknown cache backend: {backend}")
