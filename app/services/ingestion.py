# app/services/ingestion.py
"""
Ingestion job: provider -> event store.

Single-flight: every entry point (scheduler tick, manual trigger, backfill)
goes through one lock acquired without blocking. A trigger that finds a run in
progress is dropped, not queued. State is IDLE -> RUNNING -> IDLE; a failed
run simply returns to IDLE and the next trigger starts from scratch.

Outcome notification (one per run):
  - success with counts, only if at least one new movement was stored
  - failure with the error message on any exception
"""

import asyncio
import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional
from sqlalchemy.orm import Session
from app.config import settings
from app.database import SessionLocal
from app.services import event_store
from app.services.notifier import SlackNotifier
from app.services.provider_client import ProviderClient, get_provider_client
from app.utils.dates import date_range, today_string
from app.utils.logger import get_logger

logger = get_logger(__name__)

COMPLETED = "completed"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class IngestionOutcome:
    status: str                      # completed | skipped | failed
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    fetched: int = 0
    inserted: int = 0
    currently_parked: Optional[int] = None
    error: Optional[str] = None


class IngestionJob:
    def __init__(
        self,
        client: Optional[ProviderClient] = None,
        session_factory: Callable[[], Session] = SessionLocal,
        notifier: Optional[SlackNotifier] = None,
    ):
        self._client = client
        self._session_factory = session_factory
        self._notifier = notifier or SlackNotifier()
        self._running = threading.Lock()

    @property
    def client(self) -> ProviderClient:
        return self._client or get_provider_client()

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    async def _ingest_range(self, start_date: str, end_date: str) -> tuple[int, int]:
        """Fetch one range and store it. Returns (fetched, inserted)."""
        movements = await self.client.fetch_movements(start_date, end_date)
        if not movements:
            return 0, 0
        db = self._session_factory()
        try:
            inserted = event_store.append(db, movements)
        finally:
            db.close()
        return len(movements), inserted

    def _current_stats(self) -> event_store.EventStats:
        db = self._session_factory()
        try:
            return event_store.stats(db)
        finally:
            db.close()

    async def run(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> IngestionOutcome:
        """Fetch and store one date range (default: today)."""
        if not self._running.acquire(blocking=False):
            logger.info("⏭  Ingestion already running — trigger dropped")
            return IngestionOutcome(status=SKIPPED)

        start_date = start_date or today_string()
        end_date = end_date or start_date
        try:
            logger.info(f"🚗 Ingestion started: {start_date} ~ {end_date}")
            try:
                fetched, inserted = await self._ingest_range(start_date, end_date)
                logger.info(f"Fetched {fetched} movement(s), {inserted} new")

                stats = self._current_stats()
                logger.info(
                    f"📊 Events: {stats.total_events} total, {stats.today_event_count} today | "
                    f"Parked now: {stats.currently_parked_count}"
                )
                if inserted > 0:
                    await self._notifier.notify(
                        "Ingestion succeeded\n"
                        f"• Fetched: {fetched}\n"
                        f"• New: {inserted}\n"
                        f"• Parked now: {stats.currently_parked_count}"
                    )
                return IngestionOutcome(
                    status=COMPLETED, start_date=start_date, end_date=end_date,
                    fetched=fetched, inserted=inserted, currently_parked=stats.currently_parked_count,
                )
            except Exception as e:
                logger.error(f"❌ Ingestion failed: {e}", exc_info=True)
                await self._notifier.notify(f"Ingestion failed\n• Error: {e}", is_error=True)
                return IngestionOutcome(status=FAILED, start_date=start_date, end_date=end_date, error=str(e))
        finally:
            self._running.release()

    async def backfill(self, start_date: str, end_date: str,
                       delay_seconds: Optional[float] = None) -> IngestionOutcome:
        """
        Ingest day by day from start_date to end_date, pausing between days
        to spare the provider. Holds the same single-flight lock; stops at
        the first failing day. No notification is sent.
        """
        delay = settings.BACKFILL_DELAY_SECONDS if delay_seconds is None else delay_seconds
        if not self._running.acquire(blocking=False):
            logger.info("⏭  Ingestion already running — backfill not started")
            return IngestionOutcome(status=SKIPPED)

        days = date_range(start_date, end_date)
        outcome = IngestionOutcome(status=COMPLETED, start_date=start_date, end_date=end_date)
        try:
            logger.info(f"📥 Backfill {start_date} ~ {end_date} ({len(days)} days)")
            for i, day in enumerate(days, start=1):
                try:
                    fetched, inserted = await self._ingest_range(day, day)
                except Exception as e:
                    logger.error(f"❌ Backfill stopped at {day}: {e}", exc_info=True)
                    outcome.status = FAILED
                    outcome.error = f"{day}: {e}"
                    break
                outcome.fetched += fetched
                outcome.inserted += inserted
                logger.info(f"[{i}/{len(days)}] {day}: {fetched} fetched, {inserted} new")
                if i < len(days) and delay > 0:
                    await asyncio.sleep(delay)

            outcome.currently_parked = self._current_stats().currently_parked_count
            logger.info(f"Backfill done: {outcome.fetched} fetched, {outcome.inserted} new")
            return outcome
        finally:
            self._running.release()


@lru_cache()
def get_ingestion_job() -> IngestionJob:
    """Process-wide job shared by the scheduler and manual triggers."""
    return IngestionJob()
