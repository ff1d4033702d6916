"""
Worker process - the isolated execution context of the analysis engine.

worker_main() is the target of the spawned process: it receives requests
from its end of the pipe, answers through handle_request() and exits on
EOF or a shutdown message.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from soundmap.common.logging import get_logger, setup_logging, suppress_audio_warnings
from soundmap.core.interfaces import Message
from soundmap.modules.analysis.engine import AnalysisEngine
from .protocol import (
    MSG_ANALYSIS_COMPLETE,
    MSG_ANALYZE,
    MSG_INIT,
    MSG_INIT_COMPLETE,
    MSG_SHUTDOWN,
    make_error,
    make_message,
)

logger = get_logger(__name__)


@dataclass
class WorkerState:
    """Per-process worker state."""
    engine: AnalysisEngine = field(default_factory=AnalysisEngine)
    initialized: bool = False


def handle_request(state: WorkerState, message: Message) -> Optional[Message]:
    """
    Answer one request.

    Args:
        state: Worker state (mutated by init)
        message: Request dict

    Returns:
        Reply message, or None for shutdown
    """
    msg_id = message.get("id") if isinstance(message, dict) else None
    try:
        msg_type = message["type"]
        payload = message.get("payload") or {}

        if msg_type == MSG_INIT:
            result = state.engine.initialize()
            state.initialized = bool(result.get("success"))
            return make_message(MSG_INIT_COMPLETE, result, msg_id)

        if msg_type == MSG_ANALYZE:
            if not state.initialized:
                return make_error(msg_id, "Worker is not initialized")
            signal = np.asarray(payload["audio_buffer"], dtype=np.float32)
            analysis = state.engine.analyze(signal)
            return make_message(
                MSG_ANALYSIS_COMPLETE,
                {"analysis": analysis.to_dict(), "file_name": payload.get("file_name", "unknown")},
                msg_id,
            )

        if msg_type == MSG_SHUTDOWN:
            return None

        logger.warning("Unknown message type", data={"type": msg_type, "id": msg_id})
        return make_error(msg_id, f"Unknown message type: {msg_type}")

    except Exception as e:
        logger.error("Error handling message", data={"id": msg_id, "error": str(e)})
        return make_error(msg_id, str(e))


def worker_main(conn, sample_rate: int = 44100, max_duration_sec: float = 15.0,
                log_level: str = "INFO") -> None:
    """
    Worker process entry point.

    Args:
        conn: Worker end of a multiprocessing Pipe
        sample_rate: Engine sample rate
        max_duration_sec: Seconds analyzed per clip
        log_level: Log level of the worker process
    """
    setup_logging(level=log_level, component="worker")
    suppress_audio_warnings()
    state = WorkerState(engine=AnalysisEngine(sample_rate, max_duration_sec))
    logger.info("Analysis worker started")

    try:
        while True:
            try:
                message = conn.recv()
            except (EOFError, OSError):
                break

            reply = handle_request(state, message)
            if reply is None:
                break
            try:
                conn.send(reply)
            except (BrokenPipeError, OSError):
                break
    finally:
        conn.close()
        logger.info("Analysis worker stopped")
