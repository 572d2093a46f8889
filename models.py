#!/usr/bin/env python3
"""
Data models and type definitions
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

# === Event statuses ===
STATUS_ALERT = "alert"
STATUS_ERROR = "error"
STATUS_FINISHED = "finished checking"

# === Validation statuses ===
ACCEPTED = "accepted"
ACCEPTED_WITH_WARNING = "accepted_with_warning"
REJECTED = "rejected"

MAX_TRACKED_ERRORS = 10


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class FilingDescriptor:
    """One candidate filing listed by the disclosure source"""
    id: int
    name: str
    office: str
    filing_year: str
    document_url: str


@dataclass(frozen=True)
class FilingInfo:
    name: str
    status: str
    state_district: str


@dataclass(frozen=True)
class TransactionEntry:
    owner_id: str
    asset: str
    transaction_type: str
    date: str
    amount: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "ID_Owner": self.owner_id,
            "Asset": self.asset,
            "Transaction_Type": self.transaction_type,
            "Date": self.date,
            "Amount": self.amount,
        }


@dataclass(frozen=True)
class ExtractedRecord:
    """
    Structured content of one filing document

    Serializes with the field names used on the wire and in the store.
    """
    filing_info: FilingInfo
    transactions: Tuple[TransactionEntry, ...] = ()

    @property
    def has_transactions(self) -> bool:
        return len(self.transactions) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Filing_Information": {
                "Name": self.filing_info.name,
                "Status": self.filing_info.status,
                "State_District": self.filing_info.state_district,
            },
            "Transactions": [t.to_dict() for t in self.transactions],
        }


@dataclass(frozen=True)
class ValidationOutcome:
    status: str
    reason: Optional[str] = None

    @classmethod
    def accepted(cls) -> "ValidationOutcome":
        return cls(ACCEPTED)

    @classmethod
    def accepted_with_warning(cls, reason: str) -> "ValidationOutcome":
        return cls(ACCEPTED_WITH_WARNING, reason)

    @classmethod
    def rejected(cls, reason: str) -> "ValidationOutcome":
        return cls(REJECTED, reason)

    @property
    def is_accepted(self) -> bool:
        return self.status != REJECTED


@dataclass(frozen=True)
class LifecycleEvent:
    """Unit published to live subscribers"""
    status: str
    message: str
    time: Optional[str] = None
    pdf_url: Optional[str] = None
    transaction: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {"status": self.status, "message": self.message}
        if self.time is not None:
            payload["time"] = self.time
        if self.pdf_url is not None:
            payload["pdfUrl"] = self.pdf_url
        if self.transaction is not None:
            payload["transaction"] = self.transaction
        return payload


@dataclass
class MonitorState:
    """
    State owned by a single FilingMonitor

    last_document_url is only advanced after a filing has been stored and
    announced, so an interrupted cycle retries the same filing.
    """
    last_document_url: Optional[str] = None
    is_running: bool = False
    last_check: Optional[str] = None
    total_processed: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)

    def record_error(self, error: Exception):
        self.errors.append({
            "timestamp": utc_now_iso(),
            "error": str(error)
        })
        # Keep only last 10 errors
        self.errors = self.errors[-MAX_TRACKED_ERRORS:]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "last_check": self.last_check,
            "last_document_url": self.last_document_url,
            "total_processed": self.total_processed,
            "recent_errors": self.errors[-5:]
        }
