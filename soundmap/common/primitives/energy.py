"""
Energy and spectral primitives computed directly on a signal.

Pure numpy, no librosa.
"""

import numpy as np


def compute_rms(y: np.ndarray) -> float:
    """
    Root-mean-square level of the whole signal.

    Args:
        y: Audio signal

    Returns:
        RMS (0.0 for an empty signal)
    """
    y = np.ascontiguousarray(y, dtype=np.float32)
    if y.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(y, dtype=np.float64))))


def compute_spectral_centroid(y: np.ndarray, sr: int) -> float:
    """
    Spectral centroid (Hz) of the magnitude spectrum of the whole signal.

    Args:
        y: Audio signal
        sr: Sample rate

    Returns:
        Centroid frequency in Hz (0.0 for silence)
    """
    y = np.ascontiguousarray(y, dtype=np.float32)
    if y.size == 0:
        return 0.0
    magnitude = np.abs(np.fft.rfft(y))
    total = float(np.sum(magnitude))
    if total <= 0.0:
        return 0.0
    freqs = np.fft.rfftfreq(y.size, d=1.0 / sr)
    return float(np.sum(freqs * magnitude) / total)


def compute_loudness(y: np.ndarray) -> float:
    """
    Stevens' power law loudness: signal energy raised to 0.67.

    Args:
        y: Audio signal

    Returns:
        Loudness (unbounded, 0.0 for silence)
    """
    y = np.ascontiguousarray(y, dtype=np.float32)
    energy = float(np.sum(np.square(y, dtype=np.float64)))
    return float(energy ** 0.67)
