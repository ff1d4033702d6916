"""
Batch Processor - incremental analysis of a dataset on the event loop.

Drives every file through cache lookup → decode → worker analysis → cache
write, one file at a time, yielding to the event loop between sub-steps so
a render loop on the same loop keeps running.

Order of work:
1. prepare(): cached files get their analysis attached up front
2. file 0 is processed, status.current = 1, `ready` is set
3. files 1..N-1 strictly sequentially, progress after each

Synthetic results (decode failure, worker unavailable or failing) are
attached to the record but never written to the cache.
"""

import asyncio
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Protocol

import numpy as np

from soundmap.common.logging import get_logger, job_context
from soundmap.common.types import AnalysisResult, AudioFileRecord
from soundmap.core.cache import AnalysisCache
from soundmap.core.monitoring import metrics

logger = get_logger(__name__)


class Decoder(Protocol):
    async def decode(self, record: AudioFileRecord) -> Optional[np.ndarray]:
        ...


class Analyzer(Protocol):
    async def analyze(self, signal: np.ndarray, label: str = "unknown") -> AnalysisResult:
        ...

    def generate_synthetic_analysis(self) -> AnalysisResult:
        ...


@dataclass
class ProcessingStatus:
    """Progress of a batch: files with an analysis, total files, cache hits."""
    current: int = 0
    total: int = 0
    cached: int = 0

    @property
    def done(self) -> bool:
        return self.current >= self.total

    def to_dict(self) -> Dict[str, int]:
        return {'current': self.current, 'total': self.total, 'cached': self.cached}


@dataclass
class BatchResult:
    """
    Result of batch processing.

    Contains all records plus aggregate statistics.
    """
    records: List[AudioFileRecord]
    total_files: int
    cached: int
    analyzed: int
    synthetic: int
    total_time_sec: float
    job_id: Optional[str] = None
    structure_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'job_id': self.job_id,
            'total_files': self.total_files,
            'cached': self.cached,
            'analyzed': self.analyzed,
            'synthetic': self.synthetic,
            'total_time_sec': self.total_time_sec,
            'structure_counts': self.structure_counts,
            'records': [r.to_dict() for r in self.records],
        }


class BatchProcessor:
    """
    Sequential, cooperative batch processor.

    Usage:
        processor = BatchProcessor(channel, cache, decoder, on_progress=print)
        task = asyncio.create_task(processor.run(records))
        await processor.wait_ready()   # first file has its analysis
        ...
        result = await task
    """

    def __init__(
        self,
        channel: Analyzer,
        cache: AnalysisCache,
        decoder: Decoder,
        on_progress: Optional[Callable[[ProcessingStatus], None]] = None,
        on_file_ready: Optional[Callable[[int, AudioFileRecord], None]] = None,
    ):
        """
        Initialize batch processor.

        Args:
            channel: Worker channel (analyze never raises)
            cache: Analysis cache; this processor is its only writer
            decoder: Produces a signal for a record, None on failure
            on_progress: Callback(status snapshot) after each file
            on_file_ready: Callback(index, record) once a record has its analysis
        """
        self.channel = channel
        self.cache = cache
        self.decoder = decoder
        self.on_progress = on_progress
        self.on_file_ready = on_file_ready
        self.status = ProcessingStatus()
        self.ready = asyncio.Event()
        self.files: List[AudioFileRecord] = []
        self._synthetic = 0
        self._analyzed = 0

    async def wait_ready(self) -> None:
        """Wait until the first file has an analysis (or the dataset is empty)."""
        await self.ready.wait()

    def prepare(self, files: List[AudioFileRecord]) -> int:
        """
        Attach cached analyses and reset the status.

        Returns:
            Number of cache hits
        """
        self.files = list(files)
        self.status = ProcessingStatus(current=0, total=len(self.files), cached=0)
        self._synthetic = 0
        self._analyzed = 0

        for record in self.files:
            if self.cache.has(record):
                record.analysis = self.cache.get(record)
                self.status.cached += 1

        logger.info(
            "Batch prepared",
            data={
                "total": self.status.total,
                "cached": self.status.cached,
                "to_analyze": self.status.total - self.status.cached,
            },
        )
        metrics.update_batch_metrics(0, self.status.total, self.status.cached)
        return self.status.cached

    async def _decode(self, record: AudioFileRecord) -> Optional[np.ndarray]:
        try:
            return await self.decoder.decode(record)
        except Exception as e:
            logger.error("Decoder raised", data={"file": record.name, "error": str(e)})
            return None

    def _store(self, record: AudioFileRecord, analysis: AnalysisResult) -> None:
        try:
            self.cache.set(record, analysis)
        except Exception as e:
            logger.error("Cache write raised", data={"file": record.name, "error": str(e)})

    async def process_file(self, index: int) -> AnalysisResult:
        """
        Give files[index] an analysis.

        Returns:
            The attached AnalysisResult
        """
        record = self.files[index]
        if record.analysis is not None:
            logger.debug("Using cached analysis", data={"index": index, "file": record.name})
            return record.analysis

        logger.info("Analyzing", data={"index": index, "total": self.status.total, "file": record.name})
        signal = await self._decode(record)
        await asyncio.sleep(0)

        if signal is None:
            logger.warning("Decode failed, using synthetic analysis", data={"file": record.name})
            metrics.record_fallback("decode_failed")
            record.analysis = self.channel.generate_synthetic_analysis()
            self._synthetic += 1
            return record.analysis

        analysis = await self.channel.analyze(signal, record.name)
        record.analysis = analysis
        await asyncio.sleep(0)

        if analysis.synthetic:
            self._synthetic += 1
        else:
            self._analyzed += 1
            self._store(record, analysis)
            await asyncio.sleep(0)

        return analysis

    def _file_done(self, index: int) -> None:
        self.status.current = index + 1
        metrics.update_batch_metrics(self.status.current, self.status.total, self.status.cached)
        if self.on_file_ready is not None:
            self.on_file_ready(index, self.files[index])
        if self.on_progress is not None:
            self.on_progress(replace(self.status))

    async def run(self, files: List[AudioFileRecord]) -> BatchResult:
        """
        Process a whole dataset.

        Args:
            files: Records with path/size/location set

        Returns:
            BatchResult
        """
        start = time.time()
        with job_context() as job_id:
            try:
                self.prepare(files)
                if not self.files:
                    logger.info("Empty dataset, nothing to process")
                    self.ready.set()
                    return self._result(start, job_id)

                await self.process_file(0)
                self._file_done(0)
                self.ready.set()
                logger.info("First file ready, processing the rest", data={"remaining": len(self.files) - 1})

                for index in range(1, len(self.files)):
                    await asyncio.sleep(0)
                    await self.process_file(index)
                    self._file_done(index)
            finally:
                # Never leave wait_ready() hanging
                self.ready.set()

            result = self._result(start, job_id)
            logger.info(
                "All audio files processed",
                data={
                    "total": result.total_files,
                    "cached": result.cached,
                    "analyzed": result.analyzed,
                    "synthetic": result.synthetic,
                    "time_sec": round(result.total_time_sec, 2),
                },
            )
            return result

    def _result(self, start: float, job_id: Optional[str]) -> BatchResult:
        structure_counts: Dict[str, int] = {}
        for record in self.files:
            if record.analysis is not None:
                structure = record.analysis.structure
                structure_counts[structure] = structure_counts.get(structure, 0) + 1

        return BatchResult(
            records=self.files,
            total_files=self.status.total,
            cached=self.status.cached,
            analyzed=self._analyzed,
            synthetic=self._synthetic,
            total_time_sec=time.time() - start,
            job_id=job_id,
            structure_counts=structure_counts,
        )
