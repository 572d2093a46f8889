#!/usr/bin/env python3
"""
Extraction retry policy
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from config import RETRY_DELAYS, EXTRACTION_TIMEOUT
from models import ExtractedRecord

logger = logging.getLogger(__name__)


def describe_delay(seconds: float) -> str:
    if seconds >= 60:
        return f"{int(seconds // 60)} minutes"
    return f"{seconds:g} seconds"


class RetryController:
    """
    Runs an extraction on a fixed delay schedule

    The schedule [0, 3m, 7m, 30m, 8h] gives five attempts: one immediately
    and four retries, each preceded by the next delay. After the last failed
    attempt extract_with_retry returns None instead of raising.
    """

    def __init__(
        self,
        extract: Callable[[str], Awaitable[ExtractedRecord]],
        delays: Optional[List[float]] = None,
        attempt_timeout: Optional[float] = EXTRACTION_TIMEOUT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.extract = extract
        self.delays = list(RETRY_DELAYS if delays is None else delays)
        self.attempt_timeout = attempt_timeout
        self.sleep = sleep

    @property
    def max_attempts(self) -> int:
        return len(self.delays)

    async def _attempt(self, document_url: str) -> ExtractedRecord:
        if self.attempt_timeout:
            return await asyncio.wait_for(self.extract(document_url), timeout=self.attempt_timeout)
        return await self.extract(document_url)

    async def extract_with_retry(self, document_url: str) -> Optional[ExtractedRecord]:
        """
        Extract a document, retrying on failure

        Returns:
            The extracted record, or None once every attempt has failed
        """
        for attempt, delay in enumerate(self.delays):
            if delay > 0:
                logger.info(f"⏳ Retrying in {describe_delay(delay)}...")
                await self.sleep(delay)

            logger.info(f"🔄 Attempt {attempt + 1}/{self.max_attempts} to process {document_url}")
            try:
                return await self._attempt(document_url)
            except asyncio.CancelledError:
                raise
            except asyncio.TimeoutError:
                logger.error(f"❌ Attempt {attempt + 1} timed out after {self.attempt_timeout}s")
            except Exception as e:
                logger.error(f"❌ Processing failed on attempt {attempt + 1}: {e}")

        logger.error(f"❌ All {self.max_attempts} attempts failed for {document_url}")
        return None
