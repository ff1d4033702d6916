"""
Audio Loader - the only module in the project that imports librosa.

Every librosa call goes through here; other modules work on numpy arrays.

Provides:
- load_audio() - decode a file into a mono float32 signal
- get_beat_tempo() - global tempo estimate
- get_chroma() - chromagram for key estimation
"""

import numpy as np
import librosa
from typing import Optional, Tuple


def load_audio(
    path: str,
    sr: Optional[int] = 44100,
    mono: bool = True,
    duration: Optional[float] = None,
    offset: float = 0.0,
) -> Tuple[np.ndarray, int]:
    """
    Load audio file using librosa.

    Args:
        path: Path to audio file
        sr: Target sample rate (None = native)
        mono: Convert to mono
        duration: Duration to load in seconds (None = entire file)
        offset: Start offset in seconds

    Returns:
        Tuple of (y, sr) where:
        - y: Audio signal (float32, contiguous)
        - sr: Sample rate
    """
    y, actual_sr = librosa.load(
        path, sr=sr, mono=mono, duration=duration, offset=offset
    )
    return np.ascontiguousarray(y, dtype=np.float32), int(actual_sr)


def get_beat_tempo(y: np.ndarray, sr: int, hop_length: int = 512) -> float:
    """
    Estimate global tempo in BPM with librosa's beat tracker.

    Args:
        y: Audio signal
        sr: Sample rate
        hop_length: Hop length

    Returns:
        Tempo in BPM (0.0 when no beat was found)
    """
    tempo, _ = librosa.beat.beat_track(y=y, sr=sr, hop_length=hop_length)
    # librosa >= 0.10 returns a one-element array
    tempo = np.atleast_1d(np.asarray(tempo, dtype=np.float64))
    return float(tempo[0]) if tempo.size > 0 else 0.0


def get_chroma(
    y: np.ndarray,
    sr: int,
    n_fft: int = 4096,
    hop_length: int = 2048,
) -> np.ndarray:
    """
    Compute STFT chromagram.

    Args:
        y: Audio signal
        sr: Sample rate
        n_fft: FFT window size
        hop_length: Hop length

    Returns:
        Chromagram (12, n_frames), float32
    """
    chroma = librosa.feature.chroma_stft(y=y, sr=sr, n_fft=n_fft, hop_length=hop_length)
    return np.ascontiguousarray(chroma, dtype=np.float32)
