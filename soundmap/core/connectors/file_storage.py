"""
FileStorage - JSON-file storage implementation.

One file per key under a cache directory. Writes go to a temporary file in
the same directory and are moved into place with os.replace, so a crash
mid-write never leaves a truncated record behind.
"""

import errno
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from soundmap.common.logging import get_logger
from soundmap.core.errors import CacheError, CacheWriteError, StorageQuotaExceededError

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class FileStorage:
    """
    File-based storage implementation.

    Implements StorageProtocol.
    """

    def __init__(self, cache_dir: str = "cache", quota_bytes: Optional[int] = None):
        """
        Initialize file storage.

        Args:
            cache_dir: Directory for stored records
            quota_bytes: Maximum size of a single record (None = unlimited)
        """
        self.cache_dir = Path(cache_dir).expanduser()
        self.quota_bytes = quota_bytes

    def _path_for(self, key: str) -> Path:
        return self.cache_dir / f"{_UNSAFE_CHARS.sub('_', key)}.json"

    def get_item(self, key: str) -> Optional[str]:
        """Read stored value, None if the file does not exist."""
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise CacheError(
                "Failed to read cache record",
                data={"key": key, "path": str(path)},
                cause=e,
            )

    def set_item(self, key: str, value: str) -> None:
        """Write value atomically."""
        encoded = value.encode("utf-8")
        if self.quota_bytes is not None and len(encoded) > self.quota_bytes:
            raise StorageQuotaExceededError(
                "Storage quota exceeded",
                data={"key": key, "size_bytes": len(encoded), "quota_bytes": self.quota_bytes},
            )

        path = self._path_for(key)
        tmp_path = None
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                suffix=".tmp", prefix=f".{path.stem}_", dir=str(self.cache_dir)
            )
            with os.fdopen(fd, "wb") as f:
                f.write(encoded)
            os.replace(tmp_path, path)
            tmp_path = None
            logger.debug("Cache record written", data={"path": str(path), "size_bytes": len(encoded)})
        except OSError as e:
            if e.errno in _QUOTA_ERRNOS:
                raise StorageQuotaExceededError(
                    "No space left for cache record",
                    data={"key": key, "path": str(path)},
                    cause=e,
                )
            raise CacheWriteError(
                "Failed to write cache record",
                data={"key": key, "path": str(path)},
                cause=e,
            )
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def remove_item(self, key: str) -> None:
        """Delete the record file if present."""
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheWriteError(
                "Failed to remove cache record",
                data={"key": key, "path": str(path)},
                cause=e,
            )
