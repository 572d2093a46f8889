#!/usr/bin/env python3
"""
Extraction Response Parser
Turns the extraction model's text reply into an ExtractedRecord
"""

import json
import logging
import re
from typing import Any, Optional

from errors import ExtractionFailure
from models import ExtractedRecord, FilingInfo, TransactionEntry

logger = logging.getLogger(__name__)

JSON_BLOCK_PATTERN = re.compile(r"```json\s*([\s\S]*?)```")
ANY_BLOCK_PATTERN = re.compile(r"```([\s\S]*?)```")
CONTROL_CHARS_PATTERN = re.compile(r"[\uFFFD\u0000-\u001F]")

FILING_INFO_FIELDS = ["Name", "Status", "State_District"]
TRANSACTION_FIELDS = ["ID_Owner", "Asset", "Transaction_Type", "Date", "Amount"]


def _try_parse(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def extract_json_block(text: str) -> Optional[Any]:
    """
    Locate the JSON payload in a model reply

    Tries, in order: the whole reply, the first ```json fenced block, then
    any other fenced block that parses. Prose blocks starting with "The" or
    "Given" are skipped.

    Returns:
        The decoded payload, or None if nothing parses
    """
    if not isinstance(text, str):
        return None

    payload = _try_parse(text.strip())
    if payload is not None:
        return payload

    json_match = JSON_BLOCK_PATTERN.search(text)
    if json_match:
        payload = _try_parse(json_match.group(1).strip())
        if payload is not None:
            return payload
        logger.debug("Found JSON block but content is not valid JSON, trying other blocks")

    for match in ANY_BLOCK_PATTERN.finditer(text):
        content = match.group(1).strip()
        if content.startswith("The") or content.startswith("Given"):
            continue
        payload = _try_parse(content)
        if payload is not None:
            return payload

    logger.error(f"❌ Could not find valid JSON in response: {text[:200]}")
    return None


def normalize_amount(amount: str) -> str:
    """Remove line breaks and make sure the amount starts with '$'"""
    amount = re.sub(r"[\r\n]", "", amount).strip()
    if not amount.startswith("$"):
        amount = "$" + amount
    return amount


def clean_asset(asset: str) -> str:
    """Strip garbled/control characters and collapse whitespace"""
    asset = asset.replace("\n", " ")
    asset = CONTROL_CHARS_PATTERN.sub("", asset)
    return re.sub(r"\s+", " ", asset).strip()


def record_from_payload(payload: Any) -> ExtractedRecord:
    """
    Validate the structure of a decoded payload and build an ExtractedRecord

    Raises:
        ExtractionFailure: If a required section or field is missing
    """
    if not isinstance(payload, dict):
        raise ExtractionFailure("Invalid data format: payload must be an object")

    filing_information = payload.get("Filing_Information")
    if not isinstance(filing_information, dict):
        raise ExtractionFailure("Missing or invalid Filing_Information")

    for name in FILING_INFO_FIELDS:
        if not filing_information.get(name):
            raise ExtractionFailure(f"Missing required field in Filing_Information: {name}")

    transactions = payload.get("Transactions")
    if not isinstance(transactions, list) or len(transactions) == 0:
        raise ExtractionFailure("Missing or invalid Transactions array")

    entries = []
    for transaction in transactions:
        if not isinstance(transaction, dict):
            raise ExtractionFailure("Invalid transaction entry")
        for name in TRANSACTION_FIELDS:
            if not transaction.get(name):
                raise ExtractionFailure(f"Missing required field in Transaction: {name}")

        entries.append(TransactionEntry(
            owner_id=str(transaction["ID_Owner"]),
            asset=clean_asset(str(transaction["Asset"])),
            transaction_type=str(transaction["Transaction_Type"]),
            date=str(transaction["Date"]),
            amount=normalize_amount(str(transaction["Amount"])),
        ))

    return ExtractedRecord(
        filing_info=FilingInfo(
            name=str(filing_information["Name"]),
            status=str(filing_information["Status"]),
            state_district=str(filing_information["State_District"]),
        ),
        transactions=tuple(entries),
    )


def parse_extraction_response(text: str) -> ExtractedRecord:
    """Parse a raw model reply into a record, raising ExtractionFailure on any problem"""
    payload = extract_json_block(text)
    if payload is None:
        raise ExtractionFailure("Extraction service did not return a JSON object")
    return record_from_payload(payload)
