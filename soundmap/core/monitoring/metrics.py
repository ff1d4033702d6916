"""
Pipeline metrics collection using Prometheus.

Tracks key performance indicators:
- Analysis duration and fallback rate
- Worker request outcomes
- Cache hit/miss rate, writes and evictions
- Batch progress
"""

from prometheus_client import Counter, Histogram, Gauge, Info
import time
from functools import wraps
from typing import Callable, Any

# =============================================================================
# Analysis Performance Metrics
# =============================================================================

analysis_duration_seconds = Histogram(
    'analysis_duration_seconds',
    'Clip analysis duration in seconds',
    ['stage'],  # decode, engine
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60]
)

analysis_fallbacks_total = Counter(
    'analysis_fallbacks_total',
    'Synthetic analysis results handed out instead of measured ones',
    ['reason']  # uninitialized, timeout, worker_error, terminated, decode_failed
)

# =============================================================================
# Worker Metrics
# =============================================================================

worker_requests_total = Counter(
    'worker_requests_total',
    'Total requests sent to the analysis worker',
    ['message_type', 'status']  # status: success, error, timeout, terminated
)

worker_pending_requests = Gauge(
    'worker_pending_requests',
    'Requests awaiting a worker response'
)

# =============================================================================
# Cache Metrics
# =============================================================================

cache_operations_total = Counter(
    'cache_operations_total',
    'Total cache operations',
    ['operation', 'result']  # operation: get, set, save; result: hit, miss, ok, error
)

cache_evictions_total = Counter(
    'cache_evictions_total',
    'Cache entries evicted by pruning'
)

cache_entries_total = Gauge(
    'cache_entries_total',
    'Entries in the analysis cache'
)

cache_size_bytes = Gauge(
    'cache_size_bytes',
    'Serialized size of the analysis cache store'
)

# =============================================================================
# Batch Metrics
# =============================================================================

batch_files_total = Gauge(
    'batch_files_total',
    'Files in the current batch'
)

batch_files_processed = Gauge(
    'batch_files_processed',
    'Files of the current batch with an analysis attached'
)

batch_files_cached = Gauge(
    'batch_files_cached',
    'Files of the current batch served from the cache'
)

# =============================================================================
# Info Metrics
# =============================================================================

app_info = Info(
    'app',
    'Application version and environment info'
)

# =============================================================================
# Decorators for Automatic Metrics
# =============================================================================

def track_duration(metric: Histogram, labels: dict = None):
    """
    Decorator to track function execution duration.

    Usage:
        @track_duration(analysis_duration_seconds, {'stage': 'engine'})
        def analyze(signal):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                duration = time.time() - start_time
                if labels:
                    metric.labels(**labels).observe(duration)
                else:
                    metric.observe(duration)
        return wrapper
    return decorator


# =============================================================================
# Helper Functions
# =============================================================================

def record_cache_hit():
    """Record a cache hit."""
    cache_operations_total.labels(operation='get', result='hit').inc()


def record_cache_miss():
    """Record a cache miss."""
    cache_operations_total.labels(operation='get', result='miss').inc()


def record_worker_request(message_type: str, status: str):
    """Record the outcome of one worker request."""
    worker_requests_total.labels(message_type=message_type, status=status).inc()


def record_fallback(reason: str):
    """Record a synthetic fallback result."""
    analysis_fallbacks_total.labels(reason=reason).inc()


def update_batch_metrics(current: int, total: int, cached: int):
    """Mirror the batch processing status into gauges."""
    batch_files_processed.set(current)
    batch_files_total.set(total)
    batch_files_cached.set(cached)


def set_app_info(version: str, environment: str, python_version: str):
    """Set application info metric."""
    app_info.info({
        'version': version,
        'environment': environment,
        'python_version': python_version
    })
