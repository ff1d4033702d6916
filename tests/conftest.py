"""
Pytest configuration for soundmap tests.

Automatically adds project root to sys.path so that 'from soundmap...'
imports work without installing the package.
Defines markers and shared fixtures.
"""
import sys
import asyncio
import numpy as np
import pytest
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from soundmap.common.types import AudioFileRecord
from soundmap.core.config import reset_settings
from soundmap.core.connectors import InMemoryStorage
from soundmap.core.errors import WorkerUnavailableError


# =============================================================================
# Pytest Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "asyncio: Async tests")
    config.addinivalue_line("markers", "integration: Integration tests (spawns the worker process)")
    config.addinivalue_line("markers", "slow: Slow tests (real DSP backend)")


# =============================================================================
# Constants
# =============================================================================

SR = 44100

ANALYSIS_DICT = {
    'energy': 0.8,
    'mood': 0.4,
    'key': 'A',
    'scale': 'minor',
    'tempo': 128.0,
    'key_strength': 0.7,
    'structure': 'chorus',
    'loudness': 75.0,
}

SETTINGS_ENV_VARS = (
    'CACHE_BACKEND', 'CACHE_DIR', 'CACHE_MAX_ENTRIES', 'CACHE_MAX_BYTES',
    'CACHE_VERSION', 'STORAGE_QUOTA_BYTES', 'WORKER_ENABLED', 'WORKER_TIMEOUT_SEC',
    'SAMPLE_RATE', 'ANALYSIS_MAX_SECONDS', 'LOG_LEVEL', 'LOG_JSON',
)


# =============================================================================
# Test Doubles
# =============================================================================

class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 1.0) -> float:
        self.now += seconds
        return self.now


def engine_responder(message: Dict) -> Optional[Dict]:
    """Answers like a healthy worker: init succeeds, analyze returns ANALYSIS_DICT."""
    msg_type, msg_id = message['type'], message['id']
    payload = message.get('payload') or {}
    if msg_type == 'init':
        return {'type': 'init-complete', 'payload': {'success': True}, 'id': msg_id}
    if msg_type == 'analyze':
        return {
            'type': 'analysis-complete',
            'payload': {'analysis': dict(ANALYSIS_DICT), 'file_name': payload.get('file_name')},
            'id': msg_id,
        }
    return {'type': 'error', 'payload': {'error': f'unknown type {msg_type}'}, 'id': msg_id}


class FakeTransport:
    """
    In-process WorkerTransportProtocol.

    Every posted message is recorded; if a responder is set, its reply is
    delivered right away through the channel callback (which schedules the
    dispatch on the loop, like the real reader thread does).
    """

    def __init__(self, responder: Optional[Callable[[Dict], Optional[Dict]]] = engine_responder):
        self.responder = responder
        self.posted: List[Dict] = []
        self.started = False
        self.closed = False
        self._on_message = None

    def start(self, on_message) -> None:
        self.started = True
        self._on_message = on_message

    def post(self, message: Dict) -> None:
        if self.closed:
            raise WorkerUnavailableError("Fake transport closed")
        self.posted.append(message)
        if self.responder is not None:
            reply = self.responder(message)
            if reply is not None:
                self.deliver(reply)

    def deliver(self, message: Dict) -> None:
        self._on_message(message)

    def close(self) -> None:
        self.closed = True

    def posted_types(self) -> List[str]:
        return [m['type'] for m in self.posted]


class FakeDecoder:
    """Decoder returning preset signals by record path (None = decode failure)."""

    def __init__(self, signals: Optional[Dict[str, Optional[np.ndarray]]] = None,
                 default: Optional[np.ndarray] = None):
        self.signals = signals or {}
        self.default = default if default is not None else np.full(SR, 0.1, dtype=np.float32)
        self.calls: List[str] = []

    async def decode(self, record: AudioFileRecord) -> Optional[np.ndarray]:
        self.calls.append(record.path)
        await asyncio.sleep(0)
        return self.signals.get(record.path, self.default)


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate every test from the developer's environment and the settings singleton."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def project_root() -> Path:
    """Return project root path."""
    return PROJECT_ROOT


@pytest.fixture
def make_record() -> Callable[..., AudioFileRecord]:
    """Factory for AudioFileRecords: make_record('a.wav', size=1000)."""
    def _make(path: str, size: int = 1000, **kwargs) -> AudioFileRecord:
        return AudioFileRecord(path=path, size=size, **kwargs)
    return _make


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def synthetic_sine() -> Tuple[np.ndarray, int]:
    """3 seconds of a 440 Hz sine at 44.1 kHz, amplitude 0.5."""
    t = np.arange(int(SR * 3.0), dtype=np.float32) / SR
    y = (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
    return y, SR


@pytest.fixture
def synthetic_noise() -> Tuple[np.ndarray, int]:
    """3 seconds of seeded white noise at 44.1 kHz."""
    rng = np.random.default_rng(42)
    y = (0.3 * rng.standard_normal(int(SR * 3.0))).astype(np.float32)
    return y, SR


@pytest.fixture
def synthetic_audio_with_beats() -> Tuple[np.ndarray, int]:
    """Create synthetic audio with clear beat pattern (120 BPM, 10 sec)."""
    duration = 10.0
    beat_duration = 60.0 / 120.0

    t = np.arange(int(SR * duration), dtype=np.float32) / SR
    y = np.zeros_like(t)

    # Add kicks at beat positions
    decay_samples = int(0.1 * SR)
    for i in range(int(duration / beat_duration)):
        beat_sample = int(i * beat_duration * SR)
        end_sample = min(beat_sample + decay_samples, len(y))
        window = np.arange(end_sample - beat_sample)
        y[beat_sample:end_sample] += (
            np.exp(-window / (0.02 * SR)) *
            np.sin(2 * np.pi * 100 * window / SR)
        )

    y += 0.1 * np.sin(2 * np.pi * 440 * t)
    return y.astype(np.float32), SR


@pytest.fixture
def analysis_dict() -> Dict:
    """Serialized measured analysis as a worker returns it."""
    return dict(ANALYSIS_DICT)


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    """FakeTransport class; pass responder=None for a worker that never answers."""
    return FakeTransport


@pytest.fixture
def worker_reply() -> Callable[[Dict], Optional[Dict]]:
    """Reply function of a healthy worker."""
    return engine_responder


@pytest.fixture
def make_decoder() -> Callable[..., FakeDecoder]:
    """FakeDecoder class: make_decoder({'bad.wav': None})."""
    return FakeDecoder
