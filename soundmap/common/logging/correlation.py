"""Correlation and job IDs for tracing a batch run through the logs."""

import uuid
import logging
import contextvars
from contextlib import contextmanager
from typing import Iterator, Optional


# Context variable for correlation ID (thread-safe, async-safe)
correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

# Context variable for batch/job ID
job_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)


def generate_correlation_id() -> str:
    """Generate unique correlation ID."""
    return str(uuid.uuid4())[:8]


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def set_correlation_id(cid: str):
    """Set correlation ID in context."""
    correlation_id_var.set(cid)


def get_job_id() -> str | None:
    """Get current job ID from context."""
    return job_id_var.get()


def set_job_id(jid: str):
    """Set job ID in context."""
    job_id_var.set(jid)


@contextmanager
def job_context(job_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a job ID (and a fresh correlation ID) for the enclosed block.

    Both variables are reset on exit, so nested or concurrent asyncio tasks
    keep their own values.

    Usage:
        with job_context() as job_id:
            await processor.run(files)
    """
    jid = job_id or f"batch-{generate_correlation_id()}"
    job_token = job_id_var.set(jid)
    cid_token = correlation_id_var.set(generate_correlation_id())
    try:
        yield jid
    finally:
        correlation_id_var.reset(cid_token)
        job_id_var.reset(job_token)


class CorrelationLogFilter(logging.Filter):
    """
    Logging filter that adds correlation_id and job_id to log records.

    Use with standard logging to auto-inject context vars.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.job_id = get_job_id()
        return True
