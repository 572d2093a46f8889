#!/usr/bin/env python3
"""
Filing Validator
Compares an extracted record against the name and office shown by the
disclosure source before the record is trusted
"""

import logging
import re
from typing import Optional

from models import ExtractedRecord, ValidationOutcome

logger = logging.getLogger(__name__)

HONORIFIC_TOKENS = {"hon", "dr", "mr", "mrs"}
SUFFIX_PATTERN = re.compile(r"^(jr|sr|[ivx]+|[1-9](?:st|nd|rd|th))$")

REASON_NO_TRANSACTIONS = "no transactions"
REASON_MISMATCH = "data mismatch between reference and filing"
REASON_SIMILAR_NAMES = "names are similar enough"


def normalize_name(name: str) -> str:
    """
    Normalize a person's name for comparison

    Lower-cases, drops titles (Hon., Dr., Mr., Mrs.), punctuation and
    generational suffixes (Jr, Sr, III, 2nd), then sorts the remaining parts
    so "Doe, Jane" and "Jane Doe" compare equal.
    """
    cleaned = re.sub(r"[.,]", "", (name or "").lower())
    parts = [
        part for part in cleaned.split()
        if part not in HONORIFIC_TOKENS and not SUFFIX_PATTERN.match(part)
    ]
    return " ".join(sorted(parts))


def office_matches(record_office: str, reference_office: str) -> bool:
    """Filings often wrap the district code in extra text, e.g. 'California District 05 (CA05)'"""
    return reference_office.lower() in (record_office or "").lower()


def validate(record: ExtractedRecord,
             reference_name: Optional[str],
             reference_office: Optional[str]) -> ValidationOutcome:
    """
    Validate an extracted record against the source's reference identity

    Args:
        record: Structured record returned by the extractor
        reference_name: Filer name listed by the disclosure source
        reference_office: Office/district listed by the disclosure source

    Returns:
        ValidationOutcome (accepted, accepted_with_warning or rejected)
    """
    if not reference_name or not reference_office:
        logger.warning("⚠️ Missing reference data - limited validation possible")
        if not record.has_transactions:
            logger.error("❌ Validation failed: no transactions found in processed data")
            return ValidationOutcome.rejected(REASON_NO_TRANSACTIONS)
        return ValidationOutcome.accepted()

    normalized_reference = normalize_name(reference_name)
    normalized_record = normalize_name(record.filing_info.name)
    name_match = normalized_reference == normalized_record
    office_match = office_matches(record.filing_info.state_district, reference_office)

    logger.info(f"{'✅' if name_match else '❌'} Name match")
    logger.info(f"{'✅' if office_match else '❌'} Office match")

    outcome = ValidationOutcome.accepted()
    if not (name_match and office_match):
        logger.info("Data mismatch detected")
        logger.info(f"  Reference: {reference_name!r} -> {normalized_reference!r}")
        logger.info(f"  Filing:    {record.filing_info.name!r} -> {normalized_record!r}")
        logger.info(f"  Office:    {reference_office!r} vs {record.filing_info.state_district!r}")

        similar = bool(normalized_reference and normalized_record) and (
            normalized_reference in normalized_record
            or normalized_record in normalized_reference
        )
        if office_match and similar:
            logger.warning("⚠️ Names are similar enough to proceed with caution")
            outcome = ValidationOutcome.accepted_with_warning(REASON_SIMILAR_NAMES)
        else:
            logger.error(f"❌ Validation failed: {REASON_MISMATCH}")
            return ValidationOutcome.rejected(REASON_MISMATCH)

    if not record.has_transactions:
        logger.error("❌ Validation failed: no transactions found in processed data")
        return ValidationOutcome.rejected(REASON_NO_TRANSACTIONS)

    logger.info(f"✅ Found {len(record.transactions)} transaction(s)")
    return outcome
