"""
Worker Transport Protocol - Interface between the worker channel and the
isolated execution context that runs the analysis engine.

Implementations:
- ProcessTransport (soundmap.modules.analysis.worker.transport)
"""

from typing import Any, Callable, Dict, Protocol, runtime_checkable


Message = Dict[str, Any]


@runtime_checkable
class WorkerTransportProtocol(Protocol):
    """Bidirectional message pipe to an isolated worker."""

    def start(self, on_message: Callable[[Message], None]) -> None:
        """
        Start the worker.

        on_message is called for every inbound message and may be called
        from a thread other than the event loop's.
        """
        ...

    def post(self, message: Message) -> None:
        """Send one message to the worker. Raises on a broken pipe."""
        ...

    def close(self) -> None:
        """Stop the worker and release the pipe. Idempotent."""
        ...
