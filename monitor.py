#!/usr/bin/env python3
"""
Background monitoring task
Polls the disclosure source and drives each new filing through
extraction, validation, storage and notification
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from broadcaster import EventBroadcaster
from config import CHECK_INTERVAL
from elasticsearch_client import FilingStore
from errors import FetchFailure, ExtractionFailure, ValidationRejection, PersistenceFailure
from models import (LifecycleEvent, MonitorState, STATUS_ALERT, STATUS_ERROR, STATUS_FINISHED,
                    utc_now_iso)
from retry import RetryController
from source_fetcher import SourceFetcher
from validation import validate

logger = logging.getLogger(__name__)

MESSAGE_NO_FILINGS = "No filings found."
MESSAGE_NO_NEW_FILINGS = "No new filings found."
MESSAGE_NEW_FILING = "New filing data found!"
MESSAGE_PROCESSING_ERROR = "Error processing filing data correctly after multiple attempts."
MESSAGE_STORAGE_ERROR = "Error storing filing data."


def log_timings(start_time: float, timings: Dict[str, float]):
    lines = [f"    {'Total':<20} {time.time() - start_time:.2f}s"]
    lines += [f"    {name:<20} {seconds:.2f}s" for name, seconds in timings.items()]
    logger.info("Process Times:\n" + "\n".join(lines))


class FilingMonitor:
    """
    Pipeline orchestrator

    Owns the dedup state (the URL of the last filing that was stored and
    announced). Cycles run one at a time; the scheduler waits a fixed interval
    after each cycle ends before starting the next.
    """

    def __init__(
        self,
        fetcher: SourceFetcher,
        retry_controller: RetryController,
        store: FilingStore,
        broadcaster: EventBroadcaster,
        interval: float = CHECK_INTERVAL,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.retry_controller = retry_controller
        self.store = store
        self.broadcaster = broadcaster
        self.interval = interval
        self.clock = clock
        self.sleep = sleep
        self.state = MonitorState()
        self._cycle_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    def _publish(self, status: str, message: str, **fields):
        self.broadcaster.publish(LifecycleEvent(status=status, message=message, **fields))

    def _report_failure(self, message: str = MESSAGE_PROCESSING_ERROR):
        logger.error("❌ Filing processing failed")
        self._publish(STATUS_ERROR, message)

    async def run_cycle(self):
        """
        Perform one full check for a new filing

        Raises:
            ExtractionFailure: Every extraction attempt failed
            ValidationRejection: The extracted record did not match the source
            PersistenceFailure: The accepted record could not be stored
        """
        start_time = time.time()
        timings = {}
        self.state.last_check = utc_now_iso()

        logger.info("=" * 63)
        logger.info("🔍 Checking for new filings")
        if self.state.last_document_url is None:
            logger.info("First run - will process latest filing")

        year = self.clock().year
        step_start = time.time()
        try:
            candidates = await asyncio.to_thread(self.fetcher.fetch, year)
        except FetchFailure as e:
            logger.error(f"❌ Could not fetch filings, will retry in next cycle: {e}")
            return
        timings["Fetch Latest"] = time.time() - step_start

        if not candidates:
            logger.info("📭 No filings found")
            self._publish(STATUS_FINISHED, MESSAGE_NO_FILINGS, time=utc_now_iso())
            log_timings(start_time, timings)
            return

        latest = candidates[0]
        if latest.document_url == self.state.last_document_url:
            logger.info("📭 No new filings found")
            self._publish(STATUS_FINISHED, MESSAGE_NO_NEW_FILINGS, time=utc_now_iso())
            log_timings(start_time, timings)
            return

        logger.info(f"📝 Processing filing from {latest.name} ({latest.office}): {latest.document_url}")

        step_start = time.time()
        record = await self.retry_controller.extract_with_retry(latest.document_url)
        timings["PDF Processing"] = time.time() - step_start
        if record is None:
            self._report_failure()
            raise ExtractionFailure("After multiple attempts, could not process filing data.")

        step_start = time.time()
        outcome = validate(record, latest.name, latest.office)
        timings["Validation"] = time.time() - step_start
        if not outcome.is_accepted:
            self._report_failure()
            raise ValidationRejection(f"Filing {latest.document_url} rejected: {outcome.reason}")

        step_start = time.time()
        try:
            await asyncio.to_thread(self.store.store, record, latest.document_url, outcome)
        except PersistenceFailure:
            self._report_failure(MESSAGE_STORAGE_ERROR)
            raise
        timings["Store"] = time.time() - step_start

        step_start = time.time()
        logger.info("🔔 New filing detected, notifying clients")
        self._publish(
            STATUS_ALERT,
            MESSAGE_NEW_FILING,
            time=utc_now_iso(),
            pdf_url=latest.document_url,
            transaction=record.to_dict(),
        )
        timings["Notify Clients"] = time.time() - step_start

        self.state.last_document_url = latest.document_url
        self.state.total_processed += 1
        logger.info("✅ Filing check completed")
        log_timings(start_time, timings)

    async def run_exclusive_cycle(self):
        async with self._cycle_lock:
            await self.run_cycle()

    async def run_forever(self):
        """Scheduler loop; a failed cycle never stops it"""
        logger.info("🔄 Starting continuous monitoring...")

        while self.state.is_running:
            try:
                await self.run_exclusive_cycle()
            except Exception as e:
                logger.error(f"❌ Error in monitoring loop: {e}")
                self.state.record_error(e)

            if not self.state.is_running:
                break
            await self.sleep(self.interval)

        logger.info("🛑 Monitoring stopped")

    def start(self) -> asyncio.Task:
        """
        Start the scheduler, or resume the existing one

        A loop that was stopped while waiting out its interval is still alive;
        it is resumed instead of starting a second scheduler beside it.
        """
        self.state.is_running = True
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        else:
            logger.info("Resuming existing monitoring task")
        return self._task

    def stop(self):
        """Stop scheduling further cycles; an in-flight cycle is allowed to finish"""
        self.state.is_running = False

    async def shutdown(self):
        self.stop()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
