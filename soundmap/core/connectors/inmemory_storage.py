"""
InMemoryStorage - In-memory storage implementation for unit tests.

Simple dict-based storage without persistence. An optional quota mimics a
browser-style storage limit so eviction/retry paths can be exercised.
"""

from typing import Dict, Optional

from soundmap.core.errors import StorageQuotaExceededError


class InMemoryStorage:
    """
    In-memory storage implementation.

    Implements StorageProtocol for unit testing.
    No persistence - data lost on restart.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self._store: Dict[str, str] = {}
        self.quota_bytes = quota_bytes
        self.write_count = 0

    def get_item(self, key: str) -> Optional[str]:
        """Get value by key."""
        return self._store.get(key)

    def set_item(self, key: str, value: str) -> None:
        """Set value, enforcing the quota on its UTF-8 size."""
        size = len(value.encode("utf-8"))
        if self.quota_bytes is not None and size > self.quota_bytes:
            raise StorageQuotaExceededError(
                "Storage quota exceeded",
                data={"key": key, "size_bytes": size, "quota_bytes": self.quota_bytes},
            )
        self._store[key] = value
        self.write_count += 1

    def remove_item(self, key: str) -> None:
        """Delete key."""
        self._store.pop(key, None)

    def keys(self) -> list:
        """Get all stored keys."""
        return list(self._store.keys())
