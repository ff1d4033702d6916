"""
Cache Interfaces - Abstract contracts for cache operations.

Separates read-only status queries from write operations:
- ICacheStatusProvider: Read-only interface for diagnostics (CLI, service)
- Full cache operations remain in AnalysisCache

Architecture:
    Service / CLI → ICacheStatusProvider (read-only)
    BatchProcessor → AnalysisCache (full access)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from soundmap.common.types import AudioFileRecord


@dataclass
class CacheStats:
    """Cache statistics for diagnostics."""
    total_entries: int
    cache_size_bytes: int
    cache_size_mb: float
    oldest_entry: Optional[int] = None  # cached_at, epoch ms
    newest_entry: Optional[int] = None

    def to_dict(self) -> Dict:
        return {
            'total_entries': self.total_entries,
            'cache_size_bytes': self.cache_size_bytes,
            'cache_size_mb': self.cache_size_mb,
            'oldest_entry': self.oldest_entry,
            'newest_entry': self.newest_entry,
        }


class ICacheStatusProvider(ABC):
    """
    Read-only interface for querying cache status.

    Does NOT allow writing to cache - that's the BatchProcessor's job.
    Also does not touch last_accessed, so querying never changes eviction
    order.
    """

    @abstractmethod
    def has(self, record: AudioFileRecord) -> bool:
        """Check if an analysis is cached for this file."""
        pass

    @abstractmethod
    def stats(self) -> CacheStats:
        """Get overall cache statistics."""
        pass
