"""
Analysis Engine - scalar music features of one audio clip.

Runs inside the worker process. Each feature step falls back to a neutral
default on failure, so a clip that decodes always gets a complete
AnalysisResult:

    energy        min(rms * 3, 1)
    mood          min(spectral_centroid / 5000 Hz, 1)
    key/scale     Krumhansl-Schmuckler over the chromagram
    tempo         beat tracker BPM
    loudness      Stevens' power law on signal energy
    structure     rule over energy and normalized loudness

synthetic_analysis() produces the random stand-in handed out whenever a
measured result is not available.
"""

import numpy as np
from typing import Any, Dict, Optional

from soundmap.common.logging import get_logger
from soundmap.common.primitives import (
    compute_key,
    compute_loudness,
    compute_rms,
    compute_spectral_centroid,
)
from soundmap.common.types import AnalysisResult, PITCH_CLASSES, SCALES, STRUCTURES, TEMPO_RANGE
from soundmap.core.errors import AnalysisError, EngineUnavailableError
from soundmap.core.monitoring.metrics import analysis_duration_seconds, track_duration

logger = get_logger(__name__)

# Neutral defaults used when a feature step fails
DEFAULT_ENERGY = 0.5
DEFAULT_MOOD = 0.5
DEFAULT_KEY = ('C', 'major', 0.5)
DEFAULT_TEMPO = 120.0

# Centroid frequency that maps to mood 1.0
MOOD_CENTROID_HZ = 5000.0

# Synthetic loudness range (dB)
SYNTHETIC_LOUDNESS_RANGE = (-40.0, -10.0)


def estimate_structure(energy: float, loudness: Optional[float]) -> str:
    """
    Map energy and loudness to a song-structure label.

    Loudness is normalized as min(loudness / 100, 1); a missing loudness
    counts as 0.
    """
    level = min(loudness / 100.0, 1.0) if loudness is not None else 0.0

    if energy > 0.7 and level > 0.6:
        return 'chorus'
    if energy > 0.5 and level > 0.4:
        return 'pre-chorus'
    if energy < 0.3:
        return 'outro'
    if energy > 0.6:
        return 'hook'
    return 'verse'


def synthetic_analysis(rng: Optional[np.random.Generator] = None) -> AnalysisResult:
    """
    Random AnalysisResult with every field inside its domain.

    Args:
        rng: numpy Generator (a fresh default_rng() if None)

    Returns:
        AnalysisResult flagged synthetic=True
    """
    rng = rng if rng is not None else np.random.default_rng()
    return AnalysisResult(
        energy=float(rng.random()),
        mood=float(rng.random()),
        key=PITCH_CLASSES[int(rng.integers(len(PITCH_CLASSES)))],
        scale=SCALES[int(rng.integers(len(SCALES)))],
        tempo=float(rng.uniform(*TEMPO_RANGE)),
        key_strength=float(rng.random()),
        structure=STRUCTURES[int(rng.integers(len(STRUCTURES)))],
        loudness=float(rng.uniform(*SYNTHETIC_LOUDNESS_RANGE)),
        synthetic=True,
    )


class AnalysisEngine:
    """
    Feature extractor over a decoded mono signal.

    Usage:
        engine = AnalysisEngine()
        if engine.initialize()["success"]:
            result = engine.analyze(signal)
    """

    def __init__(self, sample_rate: int = 44100, max_duration_sec: float = 15.0):
        """
        Initialize engine.

        Args:
            sample_rate: Sample rate of incoming signals
            max_duration_sec: Only the first max_duration_sec seconds are analyzed
        """
        self.sample_rate = sample_rate
        self.max_duration_sec = max_duration_sec
        self._loader = None

    @property
    def is_initialized(self) -> bool:
        return self._loader is not None

    def initialize(self) -> Dict[str, Any]:
        """
        Load the DSP backend.

        Returns:
            {"success": True} or {"success": False, "error": str}
        """
        if self._loader is not None:
            return {"success": True}
        try:
            from soundmap.common.primitives import audio_loader
        except ImportError as e:
            logger.error("Failed to load DSP backend", data={"error": str(e)})
            return {"success": False, "error": str(e)}

        self._loader = audio_loader
        logger.info("Analysis engine initialized", data={"sample_rate": self.sample_rate})
        return {"success": True}

    @track_duration(analysis_duration_seconds, {'stage': 'engine'})
    def analyze(self, signal: np.ndarray) -> AnalysisResult:
        """
        Analyze a clip.

        Args:
            signal: Mono signal at self.sample_rate

        Returns:
            AnalysisResult (synthetic=False)

        Raises:
            EngineUnavailableError: initialize() has not succeeded
            AnalysisError: signal is empty or not one-dimensional
        """
        if self._loader is None:
            raise EngineUnavailableError("Analysis engine is not initialized")

        y = np.ascontiguousarray(signal, dtype=np.float32)
        if y.ndim != 1 or y.size == 0:
            raise AnalysisError(
                "Expected a non-empty mono signal",
                data={"shape": list(y.shape)},
            )

        max_samples = int(self.sample_rate * self.max_duration_sec)
        y = y[:max_samples]
        sr = self.sample_rate

        try:
            energy = min(compute_rms(y) * 3.0, 1.0)
        except Exception as e:
            logger.warning("Energy extraction failed, using default", data={"error": str(e)})
            energy = DEFAULT_ENERGY

        try:
            mood = min(compute_spectral_centroid(y, sr) / MOOD_CENTROID_HZ, 1.0)
        except Exception as e:
            logger.warning("Mood extraction failed, using default", data={"error": str(e)})
            mood = DEFAULT_MOOD

        try:
            key, scale, key_strength = compute_key(self._loader.get_chroma(y, sr))
        except Exception as e:
            logger.warning("Key detection failed, using default", data={"error": str(e)})
            key, scale, key_strength = DEFAULT_KEY

        try:
            tempo = self._loader.get_beat_tempo(y, sr)
        except Exception as e:
            logger.warning("Tempo detection failed, using default", data={"error": str(e)})
            tempo = DEFAULT_TEMPO
        if not tempo > 0:
            # No beats found (silence, drones)
            tempo = DEFAULT_TEMPO

        try:
            loudness = compute_loudness(y)
        except Exception as e:
            logger.warning("Loudness extraction failed, omitting", data={"error": str(e)})
            loudness = None

        result = AnalysisResult(
            energy=float(energy),
            mood=float(mood),
            key=key,
            scale=scale,
            tempo=float(tempo),
            key_strength=float(key_strength),
            structure=estimate_structure(energy, loudness),
            loudness=loudness,
        )
        logger.debug("Analysis complete", data=result.to_dict())
        return result
