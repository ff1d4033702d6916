"""
Storage Protocol - Interface for persisting the analysis cache record.

The cache persists one serialized document under one key, the way a
browser key/value store would hold it.

Implementations:
- FileStorage (soundmap.core.connectors.file_storage)
- SQLiteStorage (soundmap.core.connectors.sqlite_storage)
- InMemoryStorage (soundmap.core.connectors.inmemory_storage)
"""

from typing import Protocol, Optional, runtime_checkable


@runtime_checkable
class StorageProtocol(Protocol):
    """Protocol for string key/value storage backends (DI interface)."""

    def get_item(self, key: str) -> Optional[str]:
        """Get stored value, or None if absent."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """
        Store value.

        Raises:
            StorageQuotaExceededError: value does not fit into the quota
            CacheWriteError: any other write failure
        """
        ...

    def remove_item(self, key: str) -> None:
        """Remove key (no-op if absent)."""
        ...
