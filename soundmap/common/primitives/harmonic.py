"""
Harmonic primitives - key estimation from a chromagram.

Pure numpy; the chromagram itself comes from audio_loader.get_chroma().
"""

import numpy as np
from typing import Tuple

from soundmap.common.types import PITCH_CLASSES


# Krumhansl-Schmuckler key profiles
MAJOR_PROFILE = np.array([6.35, 2.23, 3.48, 2.33, 4.38, 4.09,
                          2.52, 5.19, 2.39, 3.66, 2.29, 2.88], dtype=np.float32)
MINOR_PROFILE = np.array([6.33, 2.68, 3.52, 5.38, 2.60, 3.53,
                          2.54, 4.75, 3.98, 2.69, 3.34, 3.17], dtype=np.float32)


def _profile_correlations(profile: np.ndarray, chroma_avg: np.ndarray) -> np.ndarray:
    """Pearson correlation of chroma_avg with all 12 rotations of profile."""
    indices = np.arange(12)
    roll_indices = (indices[np.newaxis, :] - indices[:, np.newaxis]) % 12
    rotations = profile[roll_indices]  # row i == np.roll(profile, i)

    chroma_centered = chroma_avg - np.mean(chroma_avg)
    chroma_std = np.std(chroma_avg) + 1e-10

    rot_centered = rotations - np.mean(rotations, axis=1, keepdims=True)
    rot_std = np.std(rotations, axis=1) + 1e-10

    return np.dot(rot_centered, chroma_centered) / (12 * rot_std * chroma_std)


def compute_key(chroma: np.ndarray) -> Tuple[str, str, float]:
    """
    Estimate musical key from chromagram.

    Args:
        chroma: Chromagram (12, n_frames)

    Returns:
        Tuple of (pitch_class, scale, strength) where strength is the winning
        correlation clipped to [0, 1]
    """
    chroma = np.asarray(chroma, dtype=np.float32)
    if chroma.ndim != 2 or chroma.shape[0] != 12 or chroma.shape[1] == 0:
        raise ValueError(f"Expected chromagram of shape (12, n_frames), got {chroma.shape}")

    chroma_avg = np.mean(chroma, axis=1)

    major_corrs = _profile_correlations(MAJOR_PROFILE, chroma_avg)
    minor_corrs = _profile_correlations(MINOR_PROFILE, chroma_avg)

    best_major_idx = int(np.argmax(major_corrs))
    best_minor_idx = int(np.argmax(minor_corrs))

    if major_corrs[best_major_idx] >= minor_corrs[best_minor_idx]:
        pitch, scale, corr = PITCH_CLASSES[best_major_idx], 'major', major_corrs[best_major_idx]
    else:
        pitch, scale, corr = PITCH_CLASSES[best_minor_idx], 'minor', minor_corrs[best_minor_idx]

    return pitch, scale, float(np.clip(corr, 0.0, 1.0))
