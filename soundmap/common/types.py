"""
Shared data contracts for the analysis pipeline.

- AnalysisResult: scalar features of one audio clip
- AudioFileRecord: one discovered file and its (eventual) analysis

All models have to_dict() and from_dict() for serialization.
"""

import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


PITCH_CLASSES = ('C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B')
SCALES = ('major', 'minor')
STRUCTURES = ('hook', 'verse', 'pre-chorus', 'chorus', 'outro')

# Nominal tempo range; values outside it are kept as produced
TEMPO_RANGE = (60.0, 180.0)


def _unit_interval(d: Dict[str, Any], name: str) -> float:
    value = float(d[name])
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")
    return value


@dataclass
class AnalysisResult:
    """
    Feature analysis of one audio clip.

    Produced atomically by the analysis engine (or the synthetic fallback).
    `synthetic` marks fallback results; it is never serialized, so a result
    read back from storage is always a measured one.
    """
    energy: float
    mood: float
    key: str
    scale: str
    tempo: float
    key_strength: float
    structure: str
    loudness: Optional[float] = None
    synthetic: bool = field(default=False, compare=False)

    @property
    def key_label(self) -> str:
        """Key as shown to users, e.g. 'A minor'."""
        return f"{self.key} {self.scale}"

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'energy': float(self.energy),
            'mood': float(self.mood),
            'key': self.key,
            'scale': self.scale,
            'tempo': float(self.tempo),
            'key_strength': float(self.key_strength),
            'structure': self.structure,
        }
        if self.loudness is not None:
            d['loudness'] = float(self.loudness)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'AnalysisResult':
        """
        Build from a serialized dict.

        Raises:
            ValueError: unknown key/scale/structure label or out-of-range value
            KeyError: required field missing
        """
        key = d['key']
        if key not in PITCH_CLASSES:
            raise ValueError(f"Unknown key: {key!r}")
        scale = d['scale']
        if scale not in SCALES:
            raise ValueError(f"Unknown scale: {scale!r}")
        structure = d['structure']
        if structure not in STRUCTURES:
            raise ValueError(f"Unknown structure: {structure!r}")

        tempo = float(d['tempo'])
        if not math.isfinite(tempo):
            raise ValueError(f"tempo must be finite, got {tempo}")

        loudness = d.get('loudness')
        return cls(
            energy=_unit_interval(d, 'energy'),
            mood=_unit_interval(d, 'mood'),
            key=key,
            scale=scale,
            tempo=tempo,
            key_strength=_unit_interval(d, 'key_strength'),
            structure=structure,
            loudness=float(loudness) if loudness is not None else None,
        )


@dataclass
class AudioFileRecord:
    """
    One audio file of a dataset snapshot.

    Identity is (path, size); size doubles as a cheap integrity check, so a
    re-uploaded file with a new size is a different record.
    """
    path: str
    size: int
    name: str = ""
    location: Optional[str] = None  # what the decoder reads; defaults to path
    analysis: Optional[AnalysisResult] = None

    def __post_init__(self):
        if not self.name:
            self.name = os.path.basename(self.path) or self.path
        if self.location is None:
            self.location = self.path

    @property
    def is_analyzed(self) -> bool:
        return self.analysis is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'size': self.size,
            'name': self.name,
            'location': self.location,
            'analysis': self.analysis.to_dict() if self.analysis else None,
        }
