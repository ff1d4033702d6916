"""Logging and small shared utilities for SoundMap."""

from .logger import setup_logging, get_logger
from .logging_config import LoggingConfig, get_logging_config
from .formatters import JSONFormatter, StructuredLogAdapter
from .correlation import (
    CorrelationLogFilter,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
    get_job_id,
    set_job_id,
    job_context,
)
from .file_discovery import (
    AUDIO_EXTENSIONS,
    find_audio_files,
    get_relative_path,
)
from .warnings_config import (
    suppress_audio_warnings,
)

__all__ = [
    # Logger
    'setup_logging',
    'get_logger',
    # Logging config
    'LoggingConfig',
    'get_logging_config',
    # Structured logging
    'JSONFormatter',
    'StructuredLogAdapter',
    # Correlation
    'CorrelationLogFilter',
    'generate_correlation_id',
    'get_correlation_id',
    'set_correlation_id',
    'get_job_id',
    'set_job_id',
    'job_context',
    # File discovery
    'AUDIO_EXTENSIONS',
    'find_audio_files',
    'get_relative_path',
    # Warnings
    'suppress_audio_warnings',
]
