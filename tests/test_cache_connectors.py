"""Unit tests for cache storage connectors.

Tests storage implementations:
    - InMemoryStorage: In-memory dict-based storage
    - FileStorage: One JSON file per key, atomic writes
    - SQLiteStorage: SQLite key/value table

Tests StorageProtocol compliance, quota handling and the backend factory.
"""

import errno
import os
import shutil
from pathlib import Path

import pytest

from soundmap.core.config import CacheBackend, create_cache_storage
from soundmap.core.connectors import FileStorage, InMemoryStorage, SQLiteStorage
from soundmap.core.errors import CacheError, CacheWriteError, StorageQuotaExceededError
from soundmap.core.interfaces import StorageProtocol


@pytest.fixture(params=["memory", "file", "sqlite"])
def storage(request, tmp_path):
    """Every backend, empty and unlimited."""
    if request.param == "memory":
        return InMemoryStorage()
    if request.param == "file":
        return FileStorage(cache_dir=str(tmp_path / "cache"))
    return SQLiteStorage(db_path=str(tmp_path / "cache" / "analysis.db"))


# =============================================================================
# PROTOCOL COMPLIANCE
# =============================================================================

@pytest.mark.unit
class TestStorageProtocol:
    """Tests shared by all backends."""

    def test_implements_protocol(self, storage):
        assert isinstance(storage, StorageProtocol)

    def test_set_and_get(self, storage):
        """Test basic set/get operations.

        ЧТО ПРОВЕРЯЕМ:
            Values are stored and returned unchanged
        """
        storage.set_item("soundmap_audio_analysis", '{"version": "1.0", "data": {}}')
        assert storage.get_item("soundmap_audio_analysis") == '{"version": "1.0", "data": {}}'

    def test_get_missing_key(self, storage):
        assert storage.get_item("missing") is None

    def test_overwrite(self, storage):
        storage.set_item("k", "first")
        storage.set_item("k", "second")
        assert storage.get_item("k") == "second"

    def test_remove(self, storage):
        storage.set_item("k", "value")
        storage.remove_item("k")
        assert storage.get_item("k") is None

    def test_remove_missing_key_is_noop(self, storage):
        storage.remove_item("never-written")

    def test_unicode_value(self, storage):
        storage.set_item("k", '{"file": "трек_1.wav"}')
        assert storage.get_item("k") == '{"file": "трек_1.wav"}'


# =============================================================================
# QUOTA
# =============================================================================

@pytest.mark.unit
class TestStorageQuota:
    """Tests for the per-record quota."""

    @pytest.mark.parametrize("backend", ["memory", "file", "sqlite"])
    def test_value_over_quota_rejected(self, backend, tmp_path):
        if backend == "memory":
            storage = InMemoryStorage(quota_bytes=10)
        elif backend == "file":
            storage = FileStorage(cache_dir=str(tmp_path), quota_bytes=10)
        else:
            storage = SQLiteStorage(db_path=str(tmp_path / "a.db"), quota_bytes=10)

        storage.set_item("k", "small")
        with pytest.raises(StorageQuotaExceededError):
            storage.set_item("k", "x" * 11)

        # Previous value survives a rejected write
        assert storage.get_item("k") == "small"

    def test_quota_counts_utf8_bytes(self):
        storage = InMemoryStorage(quota_bytes=4)
        with pytest.raises(StorageQuotaExceededError):
            storage.set_item("k", "ééé")  # 6 bytes

    def test_write_count(self):
        storage = InMemoryStorage(quota_bytes=4)
        storage.set_item("k", "ab")
        with pytest.raises(StorageQuotaExceededError):
            storage.set_item("k", "abcdef")
        assert storage.write_count == 1
        assert storage.keys() == ["k"]


# =============================================================================
# FILE STORAGE
# =============================================================================

@pytest.mark.unit
class TestFileStorage:
    """Tests specific to FileStorage."""

    def test_key_is_sanitized(self, tmp_path):
        storage = FileStorage(cache_dir=str(tmp_path))
        storage.set_item("../evil/key", "v")

        files = [p.name for p in tmp_path.iterdir()]
        assert files == [".._evil_key.json"]
        assert storage.get_item("../evil/key") == "v"

    def test_no_temp_files_left(self, tmp_path):
        storage = FileStorage(cache_dir=str(tmp_path))
        storage.set_item("k", "v1")
        storage.set_item("k", "v2")
        assert [p.name for p in tmp_path.iterdir()] == ["k.json"]

    def test_creates_cache_dir(self, tmp_path):
        storage = FileStorage(cache_dir=str(tmp_path / "a" / "b"))
        storage.set_item("k", "v")
        assert (tmp_path / "a" / "b" / "k.json").exists()

    def test_disk_full_maps_to_quota_error(self, tmp_path, monkeypatch):
        """ЧТО ПРОВЕРЯЕМ:
            ENOSPC from the filesystem surfaces as StorageQuotaExceededError
        """
        def no_space(src, dst):
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(os, "replace", no_space)
        storage = FileStorage(cache_dir=str(tmp_path))

        with pytest.raises(StorageQuotaExceededError):
            storage.set_item("k", "v")
        assert list(tmp_path.iterdir()) == []

    def test_other_os_error_maps_to_write_error(self, tmp_path, monkeypatch):
        def denied(src, dst):
            raise OSError(errno.EACCES, "Permission denied")

        monkeypatch.setattr(os, "replace", denied)
        storage = FileStorage(cache_dir=str(tmp_path))

        with pytest.raises(CacheWriteError) as exc_info:
            storage.set_item("k", "v")
        assert not isinstance(exc_info.value, StorageQuotaExceededError)

    def test_undecodable_record_maps_to_cache_error(self, tmp_path):
        """ЧТО ПРОВЕРЯЕМ:
            A record file that is not valid UTF-8 surfaces as CacheError,
            not as a raw UnicodeDecodeError
        """
        (tmp_path / "k.json").write_bytes(b'{"version": "1.0", "data": {\xff\xfe}}')
        storage = FileStorage(cache_dir=str(tmp_path))

        with pytest.raises(CacheError) as exc_info:
            storage.get_item("k")
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)

    def test_unreadable_record_maps_to_cache_error(self, tmp_path):
        (tmp_path / "k.json").mkdir()
        storage = FileStorage(cache_dir=str(tmp_path))

        with pytest.raises(CacheError):
            storage.get_item("k")

    def test_remove_os_error_maps_to_write_error(self, tmp_path, monkeypatch):
        def denied(self, missing_ok=False):
            raise OSError(errno.EACCES, "Permission denied")

        monkeypatch.setattr(Path, "unlink", denied)
        storage = FileStorage(cache_dir=str(tmp_path))

        with pytest.raises(CacheWriteError):
            storage.remove_item("k")


# =============================================================================
# SQLITE STORAGE
# =============================================================================

@pytest.mark.unit
class TestSQLiteStorage:
    """Tests specific to SQLiteStorage."""

    def test_persists_across_instances(self, tmp_path):
        db_path = str(tmp_path / "analysis.db")
        SQLiteStorage(db_path=db_path).set_item("k", "v")
        assert SQLiteStorage(db_path=db_path).get_item("k") == "v"

    def test_creates_parent_dir(self, tmp_path):
        SQLiteStorage(db_path=str(tmp_path / "nested" / "analysis.db"))
        assert (tmp_path / "nested" / "analysis.db").exists()

    def test_missing_database_dir_maps_to_cache_errors(self, tmp_path):
        """ЧТО ПРОВЕРЯЕМ:
            Connection failures are translated like write failures, so
            callers only ever see CacheError subclasses
        """
        storage = SQLiteStorage(db_path=str(tmp_path / "db" / "analysis.db"))
        shutil.rmtree(tmp_path / "db")

        with pytest.raises(CacheWriteError) as exc_info:
            storage.set_item("k", "v")
        assert not isinstance(exc_info.value, StorageQuotaExceededError)
        with pytest.raises(CacheError):
            storage.get_item("k")
        with pytest.raises(CacheWriteError):
            storage.remove_item("k")

    def test_corrupt_database_maps_to_cache_error(self, tmp_path):
        db_path = tmp_path / "analysis.db"
        storage = SQLiteStorage(db_path=str(db_path))
        db_path.write_bytes(b"not a database" * 512)

        with pytest.raises(CacheError):
            storage.get_item("k")
        with pytest.raises(CacheWriteError):
            storage.set_item("k", "v")


# =============================================================================
# FACTORY
# =============================================================================

@pytest.mark.unit
class TestCreateCacheStorage:
    """Tests for create_cache_storage()."""

    def test_default_backend_is_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CACHE_DIR", str(tmp_path))
        storage = create_cache_storage()
        assert isinstance(storage, FileStorage)
        assert storage.cache_dir == tmp_path
        assert storage.quota_bytes == 5 * 1024 * 1024

    def test_backend_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CACHE_BACKEND", "sqlite")
        monkeypatch.setenv("CACHE_DIR", str(tmp_path))
        storage = create_cache_storage()
        assert isinstance(storage, SQLiteStorage)
        assert storage.db_path == tmp_path / "analysis.db"

    def test_explicit_backend_and_kwargs(self, tmp_path):
        storage = create_cache_storage(CacheBackend.MEMORY, quota_bytes=123)
        assert isinstance(storage, InMemoryStorage)
        assert storage.quota_bytes == 123

    def test_explicit_sqlite_path(self, tmp_path):
        storage = create_cache_storage(CacheBackend.SQLITE, db_path=str(tmp_path / "x.db"))
        assert storage.db_path == tmp_path / "x.db"

    def test_unlimited_quota(self, monkeypatch):
        monkeypatch.setenv("STORAGE_QUOTA_BYTES", "0")
        assert create_cache_storage(CacheBackend.MEMORY).quota_bytes is None
