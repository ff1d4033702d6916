"""
Process transport - runs the worker in a separate OS process.

A spawn-context Pipe carries pickled message dicts both ways. A daemon
reader thread receives replies and hands each one to the on_message
callback; the channel wraps that callback with call_soon_threadsafe so
all correlation bookkeeping happens on the event loop.
"""

import multiprocessing
import threading
from typing import Callable, Optional

from soundmap.common.logging import get_logger
from soundmap.core.errors import WorkerUnavailableError
from soundmap.core.interfaces import Message
from .process import worker_main
from .protocol import MSG_SHUTDOWN, make_message

logger = get_logger(__name__)

# Seconds to wait for the worker to exit on close before killing it
JOIN_TIMEOUT_SEC = 2.0


class ProcessTransport:
    """
    WorkerTransportProtocol over multiprocessing.

    Usage:
        transport = ProcessTransport()
        transport.start(on_message)
        transport.post({"type": "init", "payload": {}, "id": 0})
        ...
        transport.close()
    """

    def __init__(self, sample_rate: int = 44100, max_duration_sec: float = 15.0,
                 log_level: str = "INFO"):
        self.sample_rate = sample_rate
        self.max_duration_sec = max_duration_sec
        self.log_level = log_level
        self._ctx = multiprocessing.get_context("spawn")
        self._conn = None
        self._process = None
        self._reader: Optional[threading.Thread] = None
        self._send_lock = threading.Lock()
        self._closed = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.is_alive()

    def start(self, on_message: Callable[[Message], None]) -> None:
        """Spawn the worker process and the reader thread."""
        if self._process is not None:
            raise RuntimeError("Transport already started")

        parent_conn, child_conn = self._ctx.Pipe(duplex=True)
        self._process = self._ctx.Process(
            target=worker_main,
            args=(child_conn, self.sample_rate, self.max_duration_sec, self.log_level),
            name="soundmap-analysis-worker",
            daemon=True,
        )
        self._process.start()
        # Child end lives in the worker now
        child_conn.close()
        self._conn = parent_conn
        self._closed.clear()

        self._reader = threading.Thread(
            target=self._read_loop,
            args=(on_message,),
            name="soundmap-worker-reader",
            daemon=True,
        )
        self._reader.start()
        logger.info("Worker process started", data={"pid": self._process.pid})

    def _read_loop(self, on_message: Callable[[Message], None]) -> None:
        while not self._closed.is_set():
            try:
                message = self._conn.recv()
            except (EOFError, OSError):
                break
            on_message(message)

        if not self._closed.is_set():
            logger.warning("Worker pipe closed unexpectedly")

    def post(self, message: Message) -> None:
        """Send one message to the worker."""
        if self._conn is None or self._closed.is_set():
            raise WorkerUnavailableError("Worker transport is not running")
        try:
            with self._send_lock:
                self._conn.send(message)
        except (BrokenPipeError, OSError) as e:
            raise WorkerUnavailableError(
                "Failed to post message to worker",
                data={"type": message.get("type"), "id": message.get("id")},
                cause=e,
            )

    def close(self) -> None:
        """Stop the worker process and the reader thread. Idempotent."""
        if self._process is None:
            return
        self._closed.set()

        try:
            with self._send_lock:
                self._conn.send(make_message(MSG_SHUTDOWN, None, None))
        except (BrokenPipeError, OSError):
            pass

        self._process.join(JOIN_TIMEOUT_SEC)
        if self._process.is_alive():
            self._process.terminate()
            self._process.join(JOIN_TIMEOUT_SEC)

        self._conn.close()
        if self._reader is not None and self._reader is not threading.current_thread():
            self._reader.join(JOIN_TIMEOUT_SEC)

        logger.info("Worker process stopped", data={"exitcode": self._process.exitcode})
        self._process = None
        self._conn = None
        self._reader = None
