#!/usr/bin/env python3
"""
Elasticsearch client operations
Append-only storage of accepted filings plus a "most recent" query
"""

from elasticsearch import Elasticsearch
from typing import Any, Dict, Optional
import time
import logging

from config import ES_HOST, ES_INDEX_NAME, MAX_RETRIES, RETRY_DELAY
from errors import PersistenceFailure
from models import ExtractedRecord, ValidationOutcome, ACCEPTED_WITH_WARNING, utc_now_iso

logger = logging.getLogger(__name__)

FILINGS_MAPPING = {
    "properties": {
        "pdfUrl": {"type": "keyword"},
        "stored_at": {"type": "date"},
        "validation_warning": {"type": "keyword"},
        "Filing_Information": {
            "properties": {
                "Name": {"type": "text", "fields": {"raw": {"type": "keyword"}}},
                "Status": {"type": "keyword"},
                "State_District": {"type": "keyword"}
            }
        },
        "Transactions": {
            "properties": {
                "ID_Owner": {"type": "keyword"},
                "Asset": {"type": "text"},
                "Transaction_Type": {"type": "keyword"},
                "Date": {"type": "keyword"},
                "Amount": {"type": "keyword"}
            }
        }
    }
}


def connect_to_elasticsearch(retry: bool = True, host: str = ES_HOST,
                             index_name: str = ES_INDEX_NAME) -> Optional[Elasticsearch]:
    """Connect to Elasticsearch with retry logic, creating the filings index if needed"""
    retries = 0
    delay = RETRY_DELAY

    while True:
        try:
            es = Elasticsearch(host)
            if not es.ping():
                raise ConnectionError("Failed to ping Elasticsearch")

            if not es.indices.exists(index=index_name):
                es.indices.create(index=index_name, mappings=FILINGS_MAPPING)
                logger.info(f"Created index '{index_name}'")

            logger.info("✅ Connected to Elasticsearch successfully")
            return es

        except Exception as e:
            retries += 1
            if not retry or retries >= MAX_RETRIES:
                logger.error(f"❌ Error connecting to Elasticsearch after {retries} attempts: {e}")
                return None

            logger.warning(f"⚠️ Failed to connect to Elasticsearch (attempt {retries}/{MAX_RETRIES}): {e}")
            logger.info(f"🔄 Retrying in {delay} seconds...")
            time.sleep(delay)
            delay *= 2  # Exponential backoff


def build_filing_document(record: ExtractedRecord, document_url: str,
                          outcome: Optional[ValidationOutcome] = None) -> Dict[str, Any]:
    """Stored form of an accepted record"""
    document = record.to_dict()
    document["pdfUrl"] = document_url
    document["stored_at"] = utc_now_iso()
    if outcome is not None and outcome.status == ACCEPTED_WITH_WARNING:
        document["validation_warning"] = outcome.reason
    return document


class FilingStore:
    """
    Persistence gateway for accepted filings

    The client is created on first use so the service can start while
    Elasticsearch is still coming up.
    """

    def __init__(self, es: Optional[Elasticsearch] = None, index_name: str = ES_INDEX_NAME):
        self._es = es
        self.index_name = index_name

    @property
    def es(self) -> Elasticsearch:
        if self._es is None:
            self._es = connect_to_elasticsearch(retry=True, index_name=self.index_name)
            if self._es is None:
                raise PersistenceFailure("Failed to connect to database")
        return self._es

    def store(self, record: ExtractedRecord, document_url: str,
              outcome: Optional[ValidationOutcome] = None) -> str:
        """
        Append an accepted record

        Returns:
            The stored document id

        Raises:
            PersistenceFailure: If the write does not succeed
        """
        document = build_filing_document(record, document_url, outcome)
        try:
            result = self.es.index(index=self.index_name, document=document, refresh="wait_for")
        except PersistenceFailure:
            raise
        except Exception as e:
            logger.error(f"❌ Error storing filing {document_url}: {e}")
            raise PersistenceFailure(f"Failed to store filing: {e}") from e

        logger.info(f"💾 Stored filing {document_url} as document {result['_id']}")
        return result["_id"]

    def fetch_latest(self) -> Optional[Dict[str, Any]]:
        """Most recently stored filing, or None when the store is empty"""
        try:
            response = self.es.search(
                index=self.index_name,
                size=1,
                sort=[{"stored_at": {"order": "desc"}}],
                query={"match_all": {}}
            )
        except PersistenceFailure:
            raise
        except Exception as e:
            logger.error(f"❌ Error fetching latest filing: {e}")
            raise PersistenceFailure(f"Failed to fetch latest filing: {e}") from e

        hits = response["hits"]["hits"]
        if not hits:
            logger.info("📭 No transaction data found")
            return None

        document = dict(hits[0]["_source"])
        document["id"] = hits[0]["_id"]
        return document

    def stats(self) -> Dict[str, Any]:
        """Get statistics from Elasticsearch"""
        try:
            total_count = self.es.count(index=self.index_name)["count"]
            return {"total_filings": total_count}
        except Exception as e:
            logger.error(f"Error getting Elasticsearch stats: {e}")
            return {"total_filings": 0, "error": "statistics unavailable"}
