"""
Settings - Application configuration using dataclasses.

Environment variables:
- CACHE_BACKEND: file, sqlite, memory
- CACHE_DIR: Directory for the persisted analysis cache
- CACHE_MAX_ENTRIES: Entry-count bound of the analysis cache
- CACHE_MAX_BYTES: Serialized-size budget that triggers eviction
- CACHE_VERSION: Store format tag; a mismatch discards the stored cache
- STORAGE_QUOTA_BYTES: Hard quota of the storage backend
- WORKER_ENABLED: Start the analysis worker process (true/false)
- WORKER_TIMEOUT_SEC: Per-request timeout of the worker channel
- SAMPLE_RATE: Decode sample rate
- ANALYSIS_MAX_SECONDS: Seconds of audio decoded and analyzed per file
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR
- LOG_JSON: Emit JSON log lines
"""

import os
from enum import Enum
from typing import Optional
from dataclasses import dataclass, field

from soundmap.core.errors import ConfigurationError


class CacheBackend(str, Enum):
    """Storage backend options for the analysis cache."""
    FILE = "file"
    SQLITE = "sqlite"
    MEMORY = "memory"


class LogLevel(str, Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_enum(enum_cls, name: str, default: str):
    raw = os.getenv(name, default)
    try:
        return enum_cls(raw if enum_cls is CacheBackend else raw.upper())
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}",
            data={"variable": name, "allowed": [m.value for m in enum_cls]},
            cause=e,
        )


def _env_number(cast, name: str, default: str):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}",
            data={"variable": name},
            cause=e,
        )


@dataclass
class Settings:
    """Application settings from environment."""

    # Cache
    cache_backend: CacheBackend = field(
        default_factory=lambda: _env_enum(CacheBackend, "CACHE_BACKEND", "file")
    )
    cache_dir: str = field(
        default_factory=lambda: os.getenv("CACHE_DIR", "cache")
    )
    cache_max_entries: int = field(
        default_factory=lambda: _env_number(int, "CACHE_MAX_ENTRIES", "500")
    )
    cache_max_bytes: int = field(
        default_factory=lambda: _env_number(int, "CACHE_MAX_BYTES", str(int(4.5 * 1024 * 1024)))
    )
    cache_version: str = field(
        default_factory=lambda: os.getenv("CACHE_VERSION", "1.0")
    )
    storage_quota_bytes: Optional[int] = field(
        default_factory=lambda: _env_number(int, "STORAGE_QUOTA_BYTES", str(5 * 1024 * 1024))
    )

    # Worker
    worker_enabled: bool = field(
        default_factory=lambda: _env_bool("WORKER_ENABLED", "true")
    )
    worker_timeout_sec: float = field(
        default_factory=lambda: _env_number(float, "WORKER_TIMEOUT_SEC", "60")
    )

    # Audio
    sample_rate: int = field(
        default_factory=lambda: _env_number(int, "SAMPLE_RATE", "44100")
    )
    analysis_max_seconds: float = field(
        default_factory=lambda: _env_number(float, "ANALYSIS_MAX_SECONDS", "15")
    )

    # Logging
    log_level: LogLevel = field(
        default_factory=lambda: _env_enum(LogLevel, "LOG_LEVEL", "INFO")
    )
    log_json: bool = field(
        default_factory=lambda: _env_bool("LOG_JSON", "false")
    )

    def __post_init__(self):
        if self.cache_max_entries < 1:
            raise ConfigurationError(
                "cache_max_entries must be at least 1",
                data={"cache_max_entries": self.cache_max_entries},
            )
        if self.cache_max_bytes <= 0:
            raise ConfigurationError(
                "cache_max_bytes must be positive",
                data={"cache_max_bytes": self.cache_max_bytes},
            )
        if self.storage_quota_bytes is not None and self.storage_quota_bytes <= 0:
            # Non-positive quota means "unlimited"
            self.storage_quota_bytes = None
        if self.worker_timeout_sec <= 0:
            raise ConfigurationError(
                "worker_timeout_sec must be positive",
                data={"worker_timeout_sec": self.worker_timeout_sec},
            )
        if self.sample_rate <= 0 or self.analysis_max_seconds <= 0:
            raise ConfigurationError(
                "sample_rate and analysis_max_seconds must be positive",
                data={
                    "sample_rate": self.sample_rate,
                    "analysis_max_seconds": self.analysis_max_seconds,
                },
            )


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached singleton so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
