"""
Worker - isolated execution of the analysis engine.

- protocol.py  - message types and builders
- process.py   - worker process loop (engine side)
- transport.py - multiprocessing pipe to the worker process
- channel.py   - host-side request/response channel
"""

from .channel import AnalysisWorkerChannel, PendingRequest, DEFAULT_REQUEST_TIMEOUT_SEC
from .process import WorkerState, handle_request, worker_main
from .transport import ProcessTransport

__all__ = [
    'AnalysisWorkerChannel',
    'PendingRequest',
    'DEFAULT_REQUEST_TIMEOUT_SEC',
    'ProcessTransport',
    'WorkerState',
    'handle_request',
    'worker_main',
]
