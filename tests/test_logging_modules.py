"""
Unit tests for logging modules.

Tests cover:
1. Correlation and job IDs
2. Log formatters (JSON, structured adapter)
3. Logging configuration
4. Audio file discovery
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import pytest

from soundmap.common.logging.correlation import (
    CorrelationLogFilter,
    generate_correlation_id,
    get_correlation_id,
    get_job_id,
    job_context,
    set_correlation_id,
)
from soundmap.common.logging.file_discovery import find_audio_files, get_relative_path
from soundmap.common.logging.formatters import JSONFormatter, StructuredLogAdapter
from soundmap.common.logging.logging_config import LoggingConfig


def _record(name="soundmap.core.cache.repository", msg="Cache hit", **attrs) -> logging.LogRecord:
    record = logging.LogRecord(name, logging.INFO, __file__, 1, msg, (), None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


# =============================================================================
# Correlation ID Tests
# =============================================================================

class TestCorrelationID:
    """Tests for correlation ID management."""

    def test_generate_correlation_id(self):
        """Test generating correlation ID."""
        corr_id = generate_correlation_id()
        assert isinstance(corr_id, str)
        assert len(corr_id) == 8

    def test_correlation_id_uniqueness(self):
        """Test generated correlation IDs are unique."""
        ids = [generate_correlation_id() for _ in range(10)]
        assert len(set(ids)) == len(ids)

    def test_job_context_sets_and_resets(self):
        """Test job_context binds IDs only inside the block."""
        assert get_job_id() is None
        with job_context() as job_id:
            assert job_id.startswith("batch-")
            assert get_job_id() == job_id
            assert get_correlation_id() is not None
        assert get_job_id() is None

    def test_job_context_explicit_id(self):
        with job_context("batch-fixed") as job_id:
            assert job_id == "batch-fixed"

    @pytest.mark.asyncio
    async def test_job_context_isolated_between_tasks(self):
        """Test concurrent tasks keep their own job IDs."""
        async def run(name):
            with job_context(name):
                await asyncio.sleep(0)
                return get_job_id()

        assert await asyncio.gather(run("batch-a"), run("batch-b")) == ["batch-a", "batch-b"]

    def test_filter_injects_context(self):
        log_filter = CorrelationLogFilter()
        record = _record()
        with job_context("batch-x"):
            set_correlation_id("cid-1")
            assert log_filter.filter(record) is True
        assert record.job_id == "batch-x"
        assert record.correlation_id == "cid-1"


# =============================================================================
# Formatter Tests
# =============================================================================

class TestJSONFormatter:
    """Tests for JSON log formatting."""

    def test_basic_fields(self):
        formatter = JSONFormatter()
        entry = json.loads(formatter.format(_record()))

        assert entry["level"] == "INFO"
        assert entry["message"] == "Cache hit"
        assert entry["logger"] == "soundmap.core.cache.repository"
        assert entry["component"] == "core.cache.repository"
        assert "timestamp" in entry

    def test_component_strips_modules_prefix(self):
        assert JSONFormatter._extract_component("soundmap.modules.analysis.worker.channel") == \
            "analysis.worker.channel"
        assert JSONFormatter._extract_component("__main__") == "main"

    def test_structured_data_and_ids(self):
        formatter = JSONFormatter(extra_fields={"service": "soundmap"})
        record = _record(structured_data={"file": "kick.wav"}, job_id="batch-1", correlation_id="c1")

        entry = json.loads(formatter.format(record))

        assert entry["data"] == {"file": "kick.wav"}
        assert entry["job_id"] == "batch-1"
        assert entry["correlation_id"] == "c1"
        assert entry["service"] == "soundmap"

    def test_exception_info(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

        entry = json.loads(JSONFormatter().format(record))
        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad value"


class TestStructuredLogAdapter:
    """Tests for the data= keyword."""

    def test_data_becomes_structured_data(self, caplog):
        adapter = StructuredLogAdapter(logging.getLogger("soundmap.test.adapter"))
        with caplog.at_level(logging.INFO, logger="soundmap.test.adapter"):
            adapter.info("Batch prepared", data={"total": 3})

        assert caplog.records[-1].structured_data == {"total": 3}

    def test_without_data(self, caplog):
        adapter = StructuredLogAdapter(logging.getLogger("soundmap.test.adapter"), {"component": "cli"})
        with caplog.at_level(logging.INFO, logger="soundmap.test.adapter"):
            adapter.warning("slow", extra={"attempt": 2})

        record = caplog.records[-1]
        assert not hasattr(record, "structured_data")
        assert (record.component, record.attempt) == ("cli", 2)

    def test_disabled_level_drops_data(self, caplog):
        adapter = StructuredLogAdapter(logging.getLogger("soundmap.test.adapter"))
        with caplog.at_level(logging.WARNING, logger="soundmap.test.adapter"):
            adapter.debug("hidden", data={"x": 1})
        assert caplog.records == []


# =============================================================================
# Logging Config Tests
# =============================================================================

class TestLoggingConfig:
    """Tests for per-component levels."""

    @pytest.fixture
    def config_file(self, tmp_path) -> Path:
        path = tmp_path / "logging-config.yaml"
        path.write_text(
            "default_level: warning\n"
            "components:\n"
            "  worker:\n"
            "    level: debug\n"
            "    json_format: true\n"
            "  cli: error\n"
            "modules:\n"
            "  numba: warning\n"
        )
        return path

    def test_levels_from_file(self, config_file):
        config = LoggingConfig(str(config_file))
        assert config.get_level("worker") == "DEBUG"
        assert config.get_level("cli") == "ERROR"
        assert config.get_level("other") == "WARNING"
        assert config.get_json_format("worker") is True
        assert config.get_json_format("cli") is False
        assert config.get_module_levels() == {"numba": "WARNING"}

    def test_env_override(self, config_file, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL_WORKER", "error")
        monkeypatch.setenv("LOG_JSON_FORMAT_CLI", "yes")
        config = LoggingConfig(str(config_file))
        assert config.get_level("worker") == "ERROR"
        assert config.get_json_format("cli") is True

    def test_missing_file_defaults(self, tmp_path):
        config = LoggingConfig(str(tmp_path / "absent.yaml"))
        assert config.get_level("worker") == "INFO"
        assert config.get_module_levels() == {}

    def test_project_config_found(self):
        """Test the repository's logging-config.yaml is picked up."""
        config = LoggingConfig()
        assert "numba" in config.get_module_levels()


# =============================================================================
# File Discovery Tests
# =============================================================================

class TestFileDiscovery:
    """Tests for find_audio_files / get_relative_path."""

    @pytest.fixture
    def audio_tree(self, tmp_path) -> Path:
        (tmp_path / "drums").mkdir()
        for name in ["b.wav", "a.MP3", "notes.txt", "drums/kick.flac", "drums/snare.WAV"]:
            (tmp_path / name).write_bytes(b"\0" * 10)
        return tmp_path

    def test_recursive_sorted(self, audio_tree):
        files = find_audio_files(audio_tree)
        assert [get_relative_path(f, audio_tree) for f in files] == [
            "a.MP3", "b.wav", "drums/kick.flac", "drums/snare.WAV",
        ]

    def test_non_recursive(self, audio_tree):
        files = find_audio_files(audio_tree, recursive=False)
        assert [f.name for f in files] == ["a.MP3", "b.wav"]

    def test_extension_filter(self, audio_tree):
        files = find_audio_files(audio_tree, extensions={"flac"})
        assert [f.name for f in files] == ["kick.flac"]

    def test_single_file_and_missing_path(self, audio_tree):
        assert find_audio_files(audio_tree / "b.wav") == [audio_tree / "b.wav"]
        assert find_audio_files(audio_tree / "notes.txt") == []
        assert find_audio_files(audio_tree / "nope") == []

    def test_relative_path_outside_base(self, tmp_path):
        assert get_relative_path(Path("/elsewhere/x.wav"), tmp_path) == "x.wav"
