"""Shared fixtures and fakes for filing monitor tests."""

import asyncio
from datetime import datetime
from typing import List, Optional

import pytest

from broadcaster import EventBroadcaster
from errors import PersistenceFailure
from models import ExtractedRecord, FilingDescriptor, FilingInfo, TransactionEntry
from monitor import FilingMonitor
from retry import RetryController

BASE_URL = "https://disclosures-clerk.house.gov/public_disc/ptr-pdfs/2025"


def make_record(
    name: str = "Doe, Jane A",
    office: str = "California District 05 (CA05)",
    transactions: int = 1,
) -> ExtractedRecord:
    entries = tuple(
        TransactionEntry(
            owner_id="SP",
            asset=f"Apple Inc. (AAPL) [ST] #{i}",
            transaction_type="P",
            date="2025-01-15",
            amount="$1,001 - $15,000",
        )
        for i in range(transactions)
    )
    return ExtractedRecord(
        filing_info=FilingInfo(name=name, status="Member", state_district=office),
        transactions=entries,
    )


def make_filing(filing_id: int = 20026537, name: str = "Hon. Jane A. Doe",
                office: str = "CA05") -> FilingDescriptor:
    return FilingDescriptor(
        id=filing_id,
        name=name,
        office=office,
        filing_year="2025",
        document_url=f"{BASE_URL}/{filing_id}.pdf",
    )


class FakeFetcher:
    """Returns scripted candidate lists, one per call (last one repeats)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.years: List[int] = []

    def fetch(self, year: int) -> List[FilingDescriptor]:
        self.years.append(year)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return list(response)


class FakeExtractor:
    """Async extractor returning scripted records or raising scripted errors."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls: List[str] = []

    async def __call__(self, document_url: str) -> ExtractedRecord:
        self.calls.append(document_url)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeStore:
    def __init__(self, fail_times: int = 0):
        self.fail_times = fail_times
        self.stored = []

    def store(self, record, document_url, outcome=None) -> str:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise PersistenceFailure("database unavailable")
        self.stored.append((record, document_url, outcome))
        return str(len(self.stored))

    def fetch_latest(self) -> Optional[dict]:
        if not self.stored:
            return None
        record, document_url, _ = self.stored[-1]
        document = record.to_dict()
        document["pdfUrl"] = document_url
        return document

    def stats(self) -> dict:
        return {"total_filings": len(self.stored)}


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


def drain(subscriber) -> list:
    """All events currently queued for a subscriber."""
    events = []
    while not subscriber.queue.empty():
        events.append(subscriber.queue.get_nowait())
    return events


def build_monitor(fetcher, extractor, store=None, broadcaster=None, sleep=None) -> FilingMonitor:
    retry_sleep = sleep or RecordingSleep()
    return FilingMonitor(
        fetcher=fetcher,
        retry_controller=RetryController(extractor, sleep=retry_sleep, attempt_timeout=None),
        store=store or FakeStore(),
        broadcaster=broadcaster or EventBroadcaster(),
        interval=0,
        clock=lambda: datetime(2025, 3, 1),
        sleep=retry_sleep,
    )


@pytest.fixture
def record() -> ExtractedRecord:
    return make_record()


@pytest.fixture
def filing() -> FilingDescriptor:
    return make_filing()


@pytest.fixture
def broadcaster() -> EventBroadcaster:
    return EventBroadcaster()


@pytest.fixture
def run():
    """Run a coroutine to completion."""
    return asyncio.run

