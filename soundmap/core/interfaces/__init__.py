"""
Interfaces - Protocols for dependency injection.

- StorageProtocol: persistence backend of the analysis cache
- WorkerTransportProtocol: message pipe to the analysis worker
"""

from .storage_protocol import StorageProtocol
from .worker_protocol import WorkerTransportProtocol, Message

__all__ = [
    'StorageProtocol',
    'WorkerTransportProtocol',
    'Message',
]
