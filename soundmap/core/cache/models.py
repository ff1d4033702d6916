"""
Domain Models for the analysis cache.

These dataclasses represent what the cache persists.
All models have to_dict() and from_dict() for serialization.

Domain entities:
- CacheEntry: one cached analysis with identity fields and timestamps
- CacheStore: the versioned aggregate persisted as a single record
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from soundmap.common.types import AnalysisResult


@dataclass
class CacheEntry:
    """
    A cached analysis of one file.

    file_name/path/size are denormalized for diagnostics only; the cache key
    already encodes path and size. Timestamps are epoch milliseconds.
    """
    file_name: str
    path: str
    size: int
    analysis: AnalysisResult
    cached_at: int
    last_accessed: int

    def to_dict(self) -> dict:
        return {
            'file_name': self.file_name,
            'path': self.path,
            'size': self.size,
            'analysis': self.analysis.to_dict(),
            'cached_at': self.cached_at,
            'last_accessed': self.last_accessed,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'CacheEntry':
        return cls(
            file_name=str(d['file_name']),
            path=str(d['path']),
            size=int(d['size']),
            analysis=AnalysisResult.from_dict(d['analysis']),
            cached_at=int(d['cached_at']),
            last_accessed=int(d['last_accessed']),
        )


@dataclass
class CacheStore:
    """Versioned mapping from cache key to CacheEntry."""
    version: str
    data: Dict[str, CacheEntry] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'data': {key: entry.to_dict() for key, entry in self.data.items()},
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'CacheStore':
        """
        Build from a parsed record.

        Raises:
            ValueError: record is not a mapping or `data` is not a mapping
            KeyError: required field missing
        """
        if not isinstance(d, dict):
            raise ValueError(f"Cache record must be an object, got {type(d).__name__}")
        data = d['data']
        if not isinstance(data, dict):
            raise ValueError(f"Cache data must be an object, got {type(data).__name__}")
        return cls(
            version=str(d['version']),
            data={str(key): CacheEntry.from_dict(entry) for key, entry in data.items()},
        )
