"""
AnalysisService - composition root of the analysis pipeline.

Wires settings, worker channel, cache and decoder together and runs
batches on the current event loop.

Architecture:
    - The service exposes the cache READ-ONLY (ICacheStatusProvider)
    - BatchProcessor owns cache writes
    - The channel owns the worker process lifetime

Usage:
    async with AnalysisService() as service:
        processor = await service.start(records, on_progress=print)
        # first record has its analysis, the rest keeps processing
        result = await service.finish()
"""

import asyncio
from typing import Callable, List, Optional

from soundmap.common.logging import get_logger
from soundmap.common.types import AudioFileRecord
from soundmap.core.cache import AnalysisCache, ICacheStatusProvider
from soundmap.core.config import Settings, get_settings
from .pipelines import AudioDecoder, BatchProcessor, BatchResult, ProcessingStatus
from .worker import AnalysisWorkerChannel

logger = get_logger(__name__)


class AnalysisService:
    """
    Async context manager around one worker channel.

    The channel is initialized on enter (unless the worker is disabled in
    settings) and terminated on exit. One batch runs at a time.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        channel: Optional[AnalysisWorkerChannel] = None,
        cache: Optional[AnalysisCache] = None,
        decoder: Optional[AudioDecoder] = None,
    ):
        self.settings = settings or get_settings()
        self.channel = channel or AnalysisWorkerChannel.from_settings(self.settings)
        self.cache = cache or AnalysisCache.from_settings(self.settings)
        self.decoder = decoder or AudioDecoder.from_settings(self.settings)
        self.processor: Optional[BatchProcessor] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def cache_status(self) -> ICacheStatusProvider:
        """Read-only view of the cache."""
        return self.cache

    async def __aenter__(self) -> 'AnalysisService':
        if self.settings.worker_enabled:
            if not await self.channel.initialize():
                logger.warning("Analysis worker unavailable, results will be synthetic")
        else:
            logger.info("Analysis worker disabled, results will be synthetic")
        stats = self.cache.stats()
        logger.info(
            "Cache stats",
            data={"entries": stats.total_entries, "size_mb": stats.cache_size_mb},
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.info("Batch cancelled")
        await self.channel.aterminate()

    async def start(
        self,
        files: List[AudioFileRecord],
        on_progress: Optional[Callable[[ProcessingStatus], None]] = None,
        on_file_ready: Optional[Callable[[int, AudioFileRecord], None]] = None,
    ) -> BatchProcessor:
        """
        Start a batch in the background and wait until it is ready.

        Returns:
            The running BatchProcessor (status/ready/files are live)
        """
        if self._task is not None and not self._task.done():
            raise RuntimeError("A batch is already running")

        self.processor = BatchProcessor(
            self.channel, self.cache, self.decoder,
            on_progress=on_progress, on_file_ready=on_file_ready,
        )
        self._task = asyncio.create_task(self.processor.run(files))
        await self.processor.wait_ready()
        return self.processor

    async def finish(self) -> BatchResult:
        """Wait for the running batch to complete."""
        if self._task is None:
            raise RuntimeError("No batch was started")
        return await self._task

    async def process(
        self,
        files: List[AudioFileRecord],
        on_progress: Optional[Callable[[ProcessingStatus], None]] = None,
    ) -> BatchResult:
        """Run a batch to completion."""
        await self.start(files, on_progress=on_progress)
        return await self.finish()


def create_analysis_service(settings: Optional[Settings] = None, **kwargs) -> AnalysisService:
    """Factory for AnalysisService (kwargs: channel, cache, decoder)."""
    return AnalysisService(settings=settings, **kwargs)
