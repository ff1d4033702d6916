"""
Custom error classes with structured logging and error propagation.

All errors include correlation context and structured data for observability.
"""

from typing import Optional, Dict, Any
from soundmap.common.logging import get_logger
from soundmap.common.logging.correlation import get_correlation_id, get_job_id

logger = get_logger(__name__)


class SoundmapError(Exception):
    """
    Base error class for all application errors.

    Automatically logs errors with correlation context when raised.
    """

    # Level used when the error logs itself on construction
    log_level: str = "error"

    def __init__(
        self,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        """
        Initialize error with structured context.

        Args:
            message: Human-readable error message
            data: Structured data for observability
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.data = data or {}
        self.cause = cause

        self.correlation_id = get_correlation_id()
        self.job_id = get_job_id()

        self._log_error()

    def _log_error(self):
        """Log error with structured data."""
        log_data = {
            "error_type": self.__class__.__name__,
            "correlation_id": self.correlation_id,
            "job_id": self.job_id,
            **self.data,
        }

        if self.cause:
            log_data["cause"] = str(self.cause)

        if self.log_level == "warning":
            logger.warning(self.message, data=log_data)
        else:
            logger.error(self.message, data=log_data, exc_info=self.cause is not None)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "data": self.data,
            "correlation_id": self.correlation_id,
            "job_id": self.job_id,
            "cause": str(self.cause) if self.cause else None,
        }


# Audio processing errors
class AudioProcessingError(SoundmapError):
    """Error during audio processing (loading, decoding)."""
    pass


class AudioLoadError(AudioProcessingError):
    """Source audio could not be read or decoded."""
    log_level = "warning"


# Analysis errors
class AnalysisError(SoundmapError):
    """Error during feature analysis."""
    pass


class EngineUnavailableError(AnalysisError):
    """Analysis engine was never initialized."""
    log_level = "warning"


class WorkerChannelError(AnalysisError):
    """Error communicating with the analysis worker."""
    pass


class WorkerUnavailableError(WorkerChannelError):
    """No worker process is running behind the channel."""
    log_level = "warning"


class RequestTimeoutError(WorkerChannelError):
    """Worker did not answer a request within the timeout."""
    pass


class ChannelTerminatedError(WorkerChannelError):
    """Request was outstanding when the channel was terminated."""
    log_level = "warning"


class WorkerAnalysisError(WorkerChannelError):
    """Worker answered a request with an error message."""
    pass


# Cache errors
class CacheError(SoundmapError):
    """Error accessing cache."""
    pass


class CacheWriteError(CacheError):
    """Persisting the cache store failed."""
    pass


class StorageQuotaExceededError(CacheWriteError):
    """Serialized value does not fit into the storage quota."""
    log_level = "warning"


# Configuration errors
class ConfigurationError(SoundmapError):
    """Error in configuration."""
    pass
