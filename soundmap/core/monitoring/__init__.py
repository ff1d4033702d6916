"""Monitoring and metrics collection."""

from .metrics import (
    # Decorators
    track_duration,

    # Helper functions
    record_cache_hit,
    record_cache_miss,
    record_worker_request,
    record_fallback,
    update_batch_metrics,
    set_app_info,

    # Metrics
    analysis_duration_seconds,
    analysis_fallbacks_total,
    worker_requests_total,
    worker_pending_requests,
    cache_operations_total,
    cache_evictions_total,
    cache_entries_total,
    cache_size_bytes,
)

__all__ = [
    'track_duration',
    'record_cache_hit',
    'record_cache_miss',
    'record_worker_request',
    'record_fallback',
    'update_batch_metrics',
    'set_app_info',
    'analysis_duration_seconds',
    'analysis_fallbacks_total',
    'worker_requests_total',
    'worker_pending_requests',
    'cache_operations_total',
    'cache_evictions_total',
    'cache_entries_total',
    'cache_size_bytes',
]
