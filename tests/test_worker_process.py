"""Tests for the worker side of the protocol.

Tests:
    - handle_request replies for every message type
    - worker_main receive loop over a real Pipe
    - End-to-end channel → spawned worker process (integration)
"""

import multiprocessing
import threading

import numpy as np
import pytest

from soundmap.common.types import AnalysisResult
from soundmap.modules.analysis.worker import WorkerState, handle_request, worker_main
from soundmap.modules.analysis.worker import process as worker_process


RESULT = AnalysisResult(
    energy=0.6, mood=0.2, key='G', scale='major', tempo=100.0,
    key_strength=0.9, structure='hook', loudness=12.0,
)


class StubEngine:
    """Engine double with scripted init outcome and analysis."""

    def __init__(self, init_ok: bool = True, error: Exception = None):
        self.init_ok = init_ok
        self.error = error
        self.signals = []

    def initialize(self):
        if self.init_ok:
            return {"success": True}
        return {"success": False, "error": "backend missing"}

    def analyze(self, signal):
        if self.error is not None:
            raise self.error
        self.signals.append(signal)
        return RESULT


def _msg(msg_type, payload=None, msg_id=1):
    return {"type": msg_type, "payload": payload or {}, "id": msg_id}


def _initialized_state(**kwargs) -> WorkerState:
    state = WorkerState(engine=StubEngine(**kwargs))
    handle_request(state, _msg("init", msg_id=0))
    return state


# =============================================================================
# HANDLE REQUEST
# =============================================================================

@pytest.mark.unit
class TestHandleRequest:
    """Tests for the worker message handler."""

    def test_init_success(self):
        state = WorkerState(engine=StubEngine())

        reply = handle_request(state, _msg("init", msg_id=5))

        assert reply == {"type": "init-complete", "payload": {"success": True}, "id": 5}
        assert state.initialized

    def test_init_failure(self):
        state = WorkerState(engine=StubEngine(init_ok=False))

        reply = handle_request(state, _msg("init"))

        assert reply["type"] == "init-complete"
        assert reply["payload"] == {"success": False, "error": "backend missing"}
        assert not state.initialized

    def test_analyze(self):
        state = _initialized_state()
        buffer = np.linspace(-1, 1, 100, dtype=np.float64)

        reply = handle_request(state, _msg("analyze", {"audio_buffer": buffer, "file_name": "x.wav"}, 7))

        assert reply["type"] == "analysis-complete"
        assert reply["id"] == 7
        assert reply["payload"] == {"analysis": RESULT.to_dict(), "file_name": "x.wav"}
        assert state.engine.signals[0].dtype == np.float32

    def test_analyze_before_init(self):
        """ЧТО ПРОВЕРЯЕМ:
            analyze without a successful init → error reply, engine untouched
        """
        state = WorkerState(engine=StubEngine())

        reply = handle_request(state, _msg("analyze", {"audio_buffer": np.zeros(4)}))

        assert reply["type"] == "error"
        assert "not initialized" in reply["payload"]["error"]
        assert state.engine.signals == []

    def test_engine_exception_becomes_error_reply(self):
        state = _initialized_state(error=RuntimeError("dsp exploded"))

        reply = handle_request(state, _msg("analyze", {"audio_buffer": np.zeros(4)}, 3))

        assert reply == {"type": "error", "payload": {"error": "dsp exploded"}, "id": 3}

    def test_missing_buffer_is_error(self):
        reply = handle_request(_initialized_state(), _msg("analyze", {"file_name": "x"}))
        assert reply["type"] == "error"

    def test_unknown_type(self):
        reply = handle_request(WorkerState(engine=StubEngine()), _msg("transcode", msg_id=9))
        assert reply["type"] == "error"
        assert reply["id"] == 9

    def test_message_without_type(self):
        reply = handle_request(WorkerState(engine=StubEngine()), {"id": 4})
        assert reply["type"] == "error"
        assert reply["id"] == 4

    def test_shutdown_has_no_reply(self):
        assert handle_request(WorkerState(engine=StubEngine()), _msg("shutdown")) is None


# =============================================================================
# RECEIVE LOOP
# =============================================================================

@pytest.mark.unit
class TestWorkerMain:
    """Tests for the worker receive loop over a Pipe."""

    @pytest.fixture(autouse=True)
    def no_logging_setup(self, monkeypatch):
        monkeypatch.setattr(worker_process, "setup_logging", lambda **kwargs: None)

    def test_replies_until_shutdown(self):
        parent, child = multiprocessing.Pipe()
        thread = threading.Thread(target=worker_main, args=(child,), daemon=True)
        thread.start()

        parent.send(_msg("bogus", msg_id=1))
        reply = parent.recv()
        parent.send(_msg("shutdown", msg_id=2))
        thread.join(timeout=5)

        assert reply["type"] == "error"
        assert reply["id"] == 1
        assert not thread.is_alive()

    def test_exits_on_closed_pipe(self):
        parent, child = multiprocessing.Pipe()
        thread = threading.Thread(target=worker_main, args=(child,), daemon=True)
        thread.start()

        parent.close()
        thread.join(timeout=5)

        assert not thread.is_alive()


# =============================================================================
# END-TO-END
# =============================================================================

@pytest.mark.integration
@pytest.mark.slow
class TestSpawnedWorker:
    """Channel talking to a real spawned worker process."""

    @pytest.mark.asyncio
    async def test_analyze_in_worker_process(self, synthetic_sine):
        from soundmap.modules.analysis.worker import AnalysisWorkerChannel, ProcessTransport

        y, sr = synthetic_sine
        channel = AnalysisWorkerChannel(
            transport_factory=lambda: ProcessTransport(sample_rate=sr, max_duration_sec=15.0),
            request_timeout=120.0,
        )
        try:
            assert await channel.initialize() is True
            result = await channel.analyze(y, "sine.wav")
        finally:
            await channel.aterminate()

        assert result.synthetic is False
        assert 0.0 <= result.energy <= 1.0
        assert result.key in ('A', 'D', 'E')
