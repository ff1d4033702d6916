"""
Audio Decoder - file location to mono signal for the batch processor.

Decoding runs in the loop's default executor so the event loop stays
responsive. A file that cannot be decoded yields None; the batch processor
treats that as a decode failure.
"""

import asyncio
import time
from pathlib import Path
from typing import Optional

import numpy as np

from soundmap.common.logging import get_logger, suppress_audio_warnings
from soundmap.common.types import AudioFileRecord
from soundmap.core.errors import AudioLoadError
from soundmap.core.monitoring.metrics import analysis_duration_seconds

logger = get_logger(__name__)


class AudioDecoder:
    """Decodes local audio files with librosa."""

    def __init__(self, sample_rate: int = 44100, max_duration_sec: Optional[float] = 15.0):
        """
        Initialize decoder.

        Args:
            sample_rate: Target sample rate
            max_duration_sec: Seconds decoded from the start of each file
                              (None = entire file)
        """
        self.sample_rate = sample_rate
        self.max_duration_sec = max_duration_sec
        suppress_audio_warnings()

    @classmethod
    def from_settings(cls, settings=None) -> 'AudioDecoder':
        from soundmap.core.config import get_settings

        settings = settings or get_settings()
        return cls(settings.sample_rate, settings.analysis_max_seconds)

    def load(self, location: str) -> np.ndarray:
        """
        Decode synchronously.

        Raises:
            AudioLoadError: file missing or not decodable
        """
        path = Path(location)
        if not path.is_file():
            raise AudioLoadError("Audio file not found", data={"path": str(path)})

        from soundmap.common.primitives.audio_loader import load_audio

        try:
            y, _ = load_audio(
                str(path), sr=self.sample_rate, mono=True, duration=self.max_duration_sec
            )
        except Exception as e:
            raise AudioLoadError(
                "Failed to decode audio file",
                data={"path": str(path)},
                cause=e,
            )

        if y.size == 0:
            raise AudioLoadError("Decoded audio is empty", data={"path": str(path)})
        return y

    async def decode(self, record: AudioFileRecord) -> Optional[np.ndarray]:
        """
        Decode a record's location off the event loop.

        Returns:
            Mono float32 signal, or None if decoding failed
        """
        loop = asyncio.get_running_loop()
        start = time.time()
        try:
            signal = await loop.run_in_executor(None, self.load, record.location)
        except AudioLoadError:
            return None
        finally:
            analysis_duration_seconds.labels(stage='decode').observe(time.time() - start)

        logger.debug(
            "Decoded audio",
            data={"file": record.name, "seconds": round(signal.size / self.sample_rate, 2)},
        )
        return signal
