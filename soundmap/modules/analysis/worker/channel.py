"""
Analysis Worker Channel - request/response over the worker transport.

Every request gets a fresh integer id and a PendingRequest holding the
future its caller awaits. Replies are matched by id in handle_message(),
the single dispatcher. A request that is not answered within
request_timeout seconds fails with RequestTimeoutError and its id is
forgotten, so a late reply is dropped.

analyze() never raises: any failure (no worker, timeout, worker error,
terminated channel) yields a synthetic result flagged synthetic=True.

Usage:
    async with AnalysisWorkerChannel() as channel:
        result = await channel.analyze(signal, "kick.wav")
"""

import asyncio
import functools
import itertools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import numpy as np

from soundmap.common.logging import get_logger
from soundmap.common.types import AnalysisResult
from soundmap.core.errors import (
    ChannelTerminatedError,
    RequestTimeoutError,
    WorkerAnalysisError,
    WorkerChannelError,
    WorkerUnavailableError,
)
from soundmap.core.interfaces import Message, WorkerTransportProtocol
from soundmap.core.monitoring import metrics
from soundmap.modules.analysis.engine import synthetic_analysis
from .protocol import MSG_ANALYZE, MSG_ERROR, MSG_INIT, is_valid_response, make_message
from .transport import ProcessTransport

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT_SEC = 60.0

_FALLBACK_REASONS = {
    RequestTimeoutError: "timeout",
    ChannelTerminatedError: "terminated",
    WorkerUnavailableError: "unavailable",
    WorkerAnalysisError: "worker_error",
}


@dataclass
class PendingRequest:
    """In-flight request awaiting its reply."""
    id: int
    message_type: str
    future: asyncio.Future
    created_at: float
    timer: Optional[asyncio.TimerHandle] = None


class AnalysisWorkerChannel:
    """
    Host side of the worker protocol.

    All bookkeeping runs on the event loop that called initialize();
    transports deliver replies from their own threads through
    call_soon_threadsafe.
    """

    def __init__(
        self,
        transport_factory: Callable[[], WorkerTransportProtocol] = ProcessTransport,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SEC,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize channel.

        Args:
            transport_factory: Builds the transport started by initialize()
            request_timeout: Seconds before an unanswered request fails
            rng: Generator for synthetic results
        """
        self._transport_factory = transport_factory
        self.request_timeout = request_timeout
        self._rng = rng if rng is not None else np.random.default_rng()
        self._ids = itertools.count()
        self._pending: Dict[int, PendingRequest] = {}
        self._transport: Optional[WorkerTransportProtocol] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.is_initialized = False

    @classmethod
    def from_settings(cls, settings=None) -> 'AnalysisWorkerChannel':
        """Channel with a ProcessTransport configured from Settings."""
        from soundmap.core.config import get_settings

        settings = settings or get_settings()
        factory = functools.partial(
            ProcessTransport,
            sample_rate=settings.sample_rate,
            max_duration_sec=settings.analysis_max_seconds,
            log_level=settings.log_level.value,
        )
        return cls(transport_factory=factory, request_timeout=settings.worker_timeout_sec)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def __aenter__(self) -> 'AnalysisWorkerChannel':
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aterminate()

    # ============== Lifecycle ==============

    async def initialize(self) -> bool:
        """
        Start the worker and run the init handshake.

        Returns:
            True if the worker reported a successful init
        """
        if self.is_initialized:
            return True

        self._loop = asyncio.get_running_loop()
        logger.info("Initializing analysis worker")
        try:
            transport = self._transport_factory()
            transport.start(self._on_transport_message)
        except Exception as e:
            logger.error("Failed to start analysis worker", data={"error": str(e)})
            return False
        self._transport = transport

        try:
            result = await self.send_message(MSG_INIT, {})
        except WorkerChannelError as e:
            logger.error("Worker init handshake failed", data={"error": str(e)})
            await self._aclose_transport()
            return False

        if not result.get("success"):
            logger.warning("Worker initialization failed", data={"error": result.get("error")})
            await self._aclose_transport()
            return False

        self.is_initialized = True
        logger.info("Analysis worker initialized")
        return True

    def terminate(self) -> None:
        """
        Fail every pending request and stop the worker.

        Joins the worker on the calling thread; use aterminate() from a
        running event loop.
        """
        rejected = self._reject_pending()
        self._close_transport()
        self._terminated(rejected)

    async def aterminate(self) -> None:
        """Like terminate(), with the worker joined in the default executor."""
        rejected = self._reject_pending()
        await self._aclose_transport()
        self._terminated(rejected)

    def _reject_pending(self) -> int:
        pending = list(self._pending.values())
        self._pending.clear()
        metrics.worker_pending_requests.set(0)

        for request in pending:
            if request.timer is not None:
                request.timer.cancel()
            if not request.future.done():
                request.future.set_exception(ChannelTerminatedError(
                    "Worker terminated",
                    data={"id": request.id, "type": request.message_type},
                ))
            metrics.record_worker_request(request.message_type, "terminated")
        return len(pending)

    def _terminated(self, rejected: int) -> None:
        if self.is_initialized:
            logger.info("Analysis worker terminated", data={"rejected": rejected})
        self.is_initialized = False

    def _close_transport(self) -> None:
        if self._transport is not None:
            transport, self._transport = self._transport, None
            transport.close()

    async def _aclose_transport(self) -> None:
        if self._transport is not None:
            transport, self._transport = self._transport, None
            await asyncio.get_running_loop().run_in_executor(None, transport.close)

    # ============== Request / Response ==============

    def _on_transport_message(self, message: Message) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self.handle_message, message)

    async def send_message(self, msg_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send a request and wait for its reply payload.

        Raises:
            WorkerUnavailableError: no transport is running
            WorkerAnalysisError: worker answered with an error message
            RequestTimeoutError: no reply within request_timeout
            ChannelTerminatedError: channel terminated while waiting
        """
        if self._transport is None:
            raise WorkerUnavailableError("Worker is not running", data={"type": msg_type})

        loop = asyncio.get_running_loop()
        msg_id = next(self._ids)
        request = PendingRequest(
            id=msg_id,
            message_type=msg_type,
            future=loop.create_future(),
            created_at=loop.time(),
        )
        self._pending[msg_id] = request
        request.timer = loop.call_later(self.request_timeout, self._expire, msg_id)
        metrics.worker_pending_requests.set(len(self._pending))

        try:
            self._transport.post(make_message(msg_type, payload, msg_id))
        except WorkerUnavailableError:
            self._discard(msg_id)
            metrics.record_worker_request(msg_type, "unavailable")
            raise

        return await request.future

    def _discard(self, msg_id: int) -> Optional[PendingRequest]:
        request = self._pending.pop(msg_id, None)
        if request is not None and request.timer is not None:
            request.timer.cancel()
        metrics.worker_pending_requests.set(len(self._pending))
        return request

    def _expire(self, msg_id: int) -> None:
        request = self._pending.pop(msg_id, None)
        if request is None:
            return
        metrics.worker_pending_requests.set(len(self._pending))
        metrics.record_worker_request(request.message_type, "timeout")
        if not request.future.done():
            request.future.set_exception(RequestTimeoutError(
                "Worker message timeout",
                data={"id": msg_id, "type": request.message_type, "timeout_sec": self.request_timeout},
            ))

    def handle_message(self, message: Message) -> None:
        """Resolve or reject the pending request a reply belongs to."""
        if not is_valid_response(message):
            logger.warning("Dropping malformed worker message", data={"message": repr(message)[:200]})
            return

        msg_id = message["id"]
        request = self._discard(msg_id)
        if request is None:
            logger.warning(
                "Received message with unknown id",
                data={"id": msg_id, "type": message["type"]},
            )
            return

        if request.future.done():
            # Caller went away (cancelled)
            return

        payload = message["payload"]
        if message["type"] == MSG_ERROR:
            metrics.record_worker_request(request.message_type, "error")
            request.future.set_exception(WorkerAnalysisError(
                str(payload.get("error", "Unknown worker error")),
                data={"id": msg_id, "type": request.message_type},
            ))
        else:
            metrics.record_worker_request(request.message_type, "success")
            request.future.set_result(payload)

    # ============== Analysis ==============

    async def analyze(self, signal: np.ndarray, label: str = "unknown") -> AnalysisResult:
        """
        Analyze a decoded clip in the worker.

        Args:
            signal: Mono float signal
            label: File name for logs

        Returns:
            Measured AnalysisResult, or a synthetic one on any failure
        """
        if not self.is_initialized:
            logger.warning("Worker not initialized, using synthetic analysis", data={"file": label})
            metrics.record_fallback("uninitialized")
            return self.generate_synthetic_analysis()

        try:
            payload = await self.send_message(MSG_ANALYZE, {
                "audio_buffer": np.ascontiguousarray(signal, dtype=np.float32),
                "file_name": label,
            })
            result = AnalysisResult.from_dict(payload["analysis"])
            logger.debug("Worker analysis complete", data={"file": label})
            return result
        except WorkerChannelError as e:
            reason = _FALLBACK_REASONS.get(type(e), "worker_error")
            error = str(e)
        except (KeyError, ValueError, TypeError) as e:
            reason = "malformed_response"
            error = str(e)

        logger.warning(
            "Worker analysis failed, using synthetic analysis",
            data={"file": label, "reason": reason, "error": error},
        )
        metrics.record_fallback(reason)
        return self.generate_synthetic_analysis()

    def generate_synthetic_analysis(self) -> AnalysisResult:
        """Synthetic result from the channel's generator."""
        return synthetic_analysis(self._rng)
