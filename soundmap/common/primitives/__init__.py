"""
Primitives - signal math used by the analysis engine.

- energy.py       - RMS, spectral centroid, loudness (numpy only)
- harmonic.py     - Krumhansl-Schmuckler key estimation (numpy only)
- audio_loader.py - librosa wrappers (imported lazily, it pulls in librosa)
"""

from .energy import compute_rms, compute_spectral_centroid, compute_loudness
from .harmonic import compute_key, MAJOR_PROFILE, MINOR_PROFILE

__all__ = [
    'compute_rms',
    'compute_spectral_centroid',
    'compute_loudness',
    'compute_key',
    'MAJOR_PROFILE',
    'MINOR_PROFILE',
]
