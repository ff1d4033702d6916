"""
Analysis Cache - persistent, versioned, capacity-bounded store of analyses.

Single entry point for reading and writing cached analyses. The whole store
is one record (see CacheStore) persisted under one storage key through a
StorageProtocol backend.

Eviction:
- Entry count above max_entries → keep the newest floor(0.7 * max_entries)
  entries by last_accessed, dropping the rest in one pass.
- Serialized store above max_bytes → same prune before writing.
- Storage quota exceeded on write → prune and retry exactly once.

Persistence is best-effort: write failures are logged and swallowed, the
in-memory store stays authoritative for the rest of the session.

Usage:
    from soundmap.core.cache import AnalysisCache
    from soundmap.core.config import create_cache_storage

    cache = AnalysisCache(create_cache_storage())
    if cache.has(record):
        record.analysis = cache.get(record)
    else:
        cache.set(record, analysis)
"""

import json
import time
from typing import Callable, Dict, Optional

from soundmap.common.logging import get_logger
from soundmap.common.types import AnalysisResult, AudioFileRecord
from soundmap.core.errors import CacheError, StorageQuotaExceededError
from soundmap.core.interfaces import StorageProtocol
from soundmap.core.monitoring import metrics
from .models import CacheEntry, CacheStore
from .interfaces import ICacheStatusProvider, CacheStats

logger = get_logger(__name__)

DEFAULT_STORAGE_KEY = "soundmap_audio_analysis"
DEFAULT_MAX_ENTRIES = 500
DEFAULT_MAX_BYTES = int(4.5 * 1024 * 1024)
CACHE_VERSION = "1.0"

# Share of max_entries (percent) that survives a prune
PRUNE_KEEP_PERCENT = 70


class AnalysisCache(ICacheStatusProvider):
    """
    Analysis cache keyed by file identity ("<path>_<size>").

    Not thread-safe; the batch processor is its only writer.
    """

    def __init__(
        self,
        storage: StorageProtocol,
        storage_key: str = DEFAULT_STORAGE_KEY,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        max_bytes: int = DEFAULT_MAX_BYTES,
        version: str = CACHE_VERSION,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache and load the persisted store.

        Args:
            storage: Persistence backend
            storage_key: Key of the single persisted record
            max_entries: Entry-count bound
            max_bytes: Serialized-size budget that triggers a prune before writing
            version: Running store version; a stored record with another
                     version is discarded on load
            clock: Returns epoch seconds (injectable for tests)
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.storage = storage
        self.storage_key = storage_key
        self.max_entries = max_entries
        self.max_bytes = max_bytes
        self.version = version
        self._clock = clock
        self._store = self.load()
        metrics.cache_entries_total.set(len(self._store))

    @classmethod
    def from_settings(cls, settings=None, storage: Optional[StorageProtocol] = None) -> 'AnalysisCache':
        """Build a cache from Settings (storage from create_cache_storage by default)."""
        from soundmap.core.config import create_cache_storage, get_settings

        settings = settings or get_settings()
        if storage is None:
            storage = create_cache_storage(settings.cache_backend)
        return cls(
            storage,
            max_entries=settings.cache_max_entries,
            max_bytes=settings.cache_max_bytes,
            version=settings.cache_version,
        )

    # ============== Keys ==============

    @staticmethod
    def compute_key(record: AudioFileRecord) -> str:
        """Cache key of a file: path and size joined by an underscore."""
        return f"{record.path}_{record.size}"

    @property
    def keep_count(self) -> int:
        """Entries that survive a prune."""
        return self.max_entries * PRUNE_KEEP_PERCENT // 100

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ============== Lookup ==============

    def has(self, record: AudioFileRecord) -> bool:
        """Check presence without touching last_accessed."""
        return self.compute_key(record) in self._store.data

    def get(self, record: AudioFileRecord) -> Optional[AnalysisResult]:
        """
        Get cached analysis and mark the entry as recently used.

        The updated last_accessed is persisted with the next write.

        Returns:
            AnalysisResult or None on a miss
        """
        entry = self._store.data.get(self.compute_key(record))
        if entry is None:
            metrics.record_cache_miss()
            logger.debug("Cache miss", data={"file": record.name})
            return None

        entry.last_accessed = self._now_ms()
        metrics.record_cache_hit()
        logger.debug("Cache hit", data={"file": record.name})
        return entry.analysis

    def get_entry(self, record: AudioFileRecord) -> Optional[CacheEntry]:
        """Raw entry for diagnostics; does not update last_accessed."""
        return self._store.data.get(self.compute_key(record))

    @property
    def entries(self) -> Dict[str, CacheEntry]:
        """Snapshot of the current entries by key."""
        return dict(self._store.data)

    def __len__(self) -> int:
        return len(self._store)

    # ============== Write ==============

    def set(self, record: AudioFileRecord, analysis: AnalysisResult) -> None:
        """
        Insert or overwrite the entry of a file, evict if needed, persist.

        Raises:
            ValueError: analysis is a synthetic fallback result
        """
        if analysis.synthetic:
            raise ValueError(f"Refusing to cache synthetic analysis of {record.name}")

        now = self._now_ms()
        self._store.data[self.compute_key(record)] = CacheEntry(
            file_name=record.name,
            path=record.path,
            size=record.size,
            analysis=analysis,
            cached_at=now,
            last_accessed=now,
        )

        if len(self._store) > self.max_entries:
            self.prune()

        metrics.cache_operations_total.labels(operation='set', result='ok').inc()
        metrics.cache_entries_total.set(len(self._store))
        self.save()
        logger.debug("Cached analysis", data={"file": record.name, "entries": len(self._store)})

    def prune(self) -> int:
        """
        Keep only the newest floor(0.7 * max_entries) entries by last_accessed.

        A store that already fits is left untouched.

        Returns:
            Number of evicted entries
        """
        before = len(self._store)
        keep = self.keep_count
        if before <= keep:
            return 0

        ordered = sorted(self._store.data.items(), key=lambda item: item[1].last_accessed)
        self._store.data = dict(ordered[before - keep:])

        evicted = before - len(self._store)
        metrics.cache_evictions_total.inc(evicted)
        metrics.cache_entries_total.set(len(self._store))
        logger.info(
            "Pruned analysis cache",
            data={"before": before, "after": len(self._store), "evicted": evicted},
        )
        return evicted

    def _serialize(self) -> str:
        return json.dumps(self._store.to_dict())

    def save(self) -> bool:
        """
        Persist the store.

        Returns:
            True if the record was written, False if persistence failed
        """
        serialized = self._serialize()
        size = len(serialized.encode("utf-8"))
        if size > self.max_bytes:
            logger.warning(
                "Cache size exceeds budget, pruning before write",
                data={"size_bytes": size, "max_bytes": self.max_bytes},
            )
            self.prune()
            serialized = self._serialize()

        try:
            try:
                self.storage.set_item(self.storage_key, serialized)
            except StorageQuotaExceededError:
                self.prune()
                serialized = self._serialize()
                self.storage.set_item(self.storage_key, serialized)
        except (CacheError, OSError) as e:
            metrics.cache_operations_total.labels(operation='save', result='error').inc()
            logger.error(
                "Failed to persist analysis cache",
                data={"entries": len(self._store), "error": str(e)},
            )
            return False

        metrics.cache_operations_total.labels(operation='save', result='ok').inc()
        metrics.cache_size_bytes.set(len(serialized.encode("utf-8")))
        logger.debug("Saved analysis cache", data={"entries": len(self._store)})
        return True

    # ============== Load / Clear ==============

    def _empty_store(self) -> CacheStore:
        return CacheStore(version=self.version)

    def load(self) -> CacheStore:
        """
        Read the persisted store.

        Missing, unreadable or malformed records load as an empty store. A
        record of another version is removed from storage.
        """
        try:
            raw = self.storage.get_item(self.storage_key)
        except (CacheError, OSError, ValueError) as e:
            logger.warning("Failed to read analysis cache", data={"error": str(e)})
            return self._empty_store()

        if raw is None:
            logger.info("No analysis cache found, starting fresh")
            return self._empty_store()

        try:
            parsed = json.loads(raw)
            stored_version = parsed.get('version') if isinstance(parsed, dict) else None
            if stored_version != self.version:
                logger.info(
                    "Analysis cache version mismatch, discarding stored cache",
                    data={"stored_version": stored_version, "version": self.version},
                )
                self._discard_record()
                return self._empty_store()
            store = CacheStore.from_dict(parsed)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Malformed analysis cache, starting fresh", data={"error": str(e)})
            return self._empty_store()

        logger.info("Loaded analysis cache", data={"entries": len(store)})
        return store

    def _discard_record(self) -> None:
        try:
            self.storage.remove_item(self.storage_key)
        except (CacheError, OSError) as e:
            logger.warning("Failed to remove stale analysis cache", data={"error": str(e)})

    def clear(self) -> None:
        """Drop every entry and the persisted record."""
        self._store = self._empty_store()
        self.storage.remove_item(self.storage_key)
        metrics.cache_entries_total.set(0)
        logger.info("Analysis cache cleared")

    # ============== Diagnostics ==============

    def stats(self) -> CacheStats:
        """Entry count, serialized size and cached_at range."""
        entries = list(self._store.data.values())
        if not entries:
            return CacheStats(total_entries=0, cache_size_bytes=0, cache_size_mb=0.0)

        size = len(self._serialize().encode("utf-8"))
        timestamps = [entry.cached_at for entry in entries]
        return CacheStats(
            total_entries=len(entries),
            cache_size_bytes=size,
            cache_size_mb=round(size / (1024 * 1024), 2),
            oldest_entry=min(timestamps),
            newest_entry=max(timestamps),
        )

    def export_json(self) -> str:
        """Pretty-printed store record."""
        return json.dumps(self._store.to_dict(), indent=2)

    def import_json(self, text: str) -> bool:
        """
        Replace the store with an exported record of the running version.

        Returns:
            True if imported, False on a version mismatch or malformed input
        """
        try:
            parsed = json.loads(text)
            if not isinstance(parsed, dict) or parsed.get('version') != self.version:
                logger.warning(
                    "Cache import rejected: version mismatch",
                    data={
                        "version": self.version,
                        "imported_version": parsed.get('version') if isinstance(parsed, dict) else None,
                    },
                )
                return False
            store = CacheStore.from_dict(parsed)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Cache import rejected: malformed record", data={"error": str(e)})
            return False

        self._store = store
        if len(self._store) > self.max_entries:
            self.prune()
        metrics.cache_entries_total.set(len(self._store))
        self.save()
        logger.info("Analysis cache imported", data={"entries": len(self._store)})
        return True
