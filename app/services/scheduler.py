# app/services/scheduler.py
"""
Periodic ingestion trigger.

Fires one run immediately at start, then one per interval. Each tick starts
an independent task and does not wait for the previous run; overlapping ticks
are dropped by the job's single-flight lock.
"""

import asyncio
from typing import Optional
from app.services.ingestion import IngestionJob
from app.utils.logger import get_logger

logger = get_logger(__name__)


class IngestionScheduler:
    def __init__(self, job: IngestionJob, interval_seconds: float):
        self.job = job
        self.interval_seconds = interval_seconds
        self._loop_task: Optional[asyncio.Task] = None
        self._runs: set[asyncio.Task] = set()

    @property
    def is_started(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def _fire(self):
        task = asyncio.create_task(self.job.run(), name="ingestion-run")
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)

    async def _loop(self):
        self._fire()
        while True:
            await asyncio.sleep(self.interval_seconds)
            self._fire()

    def start(self):
        """Start ticking on the running event loop. Idempotent."""
        if self.is_started:
            return
        logger.info(f"⏰ Ingestion scheduler started (every {self.interval_seconds}s)")
        self._loop_task = asyncio.create_task(self._loop(), name="ingestion-scheduler")

    async def stop(self):
        """Stop ticking and wait for an in-flight run to finish."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        if self._runs:
            await asyncio.gather(*self._runs, return_exceptions=True)
        logger.info("⏰ Ingestion scheduler stopped")
