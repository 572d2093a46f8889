"""Tests for parsing extraction replies."""

import json

import pytest

from errors import ExtractionFailure
from extraction_parser import (clean_asset, extract_json_block, normalize_amount,
                               parse_extraction_response, record_from_payload)


def sample_payload(**overrides) -> dict:
    payload = {
        "Filing_Information": {
            "Name": "Hon. Jane A. Doe",
            "Status": "Member",
            "State_District": "CA05",
        },
        "Transactions": [
            {
                "ID_Owner": "SP",
                "Asset": "Apple Inc. (AAPL)\n[ST]",
                "Transaction_Type": "P",
                "Date": "2025-01-15",
                "Amount": "1,001 - $15,000\n",
            }
        ],
    }
    payload.update(overrides)
    return payload


class TestExtractJsonBlock:
    """Tests for locating JSON in a model reply."""

    def test_plain_json(self):
        assert extract_json_block('{"a": 1}') == {"a": 1}

    def test_json_fenced_block(self):
        text = 'Here is the data:\n```json\n{"a": 1}\n```\nDone.'
        assert extract_json_block(text) == {"a": 1}

    def test_falls_back_to_untagged_block(self):
        text = '```json\n{not valid}\n```\nRetry:\n```\n{"b": 2}\n```'
        assert extract_json_block(text) == {"b": 2}

    def test_skips_prose_blocks(self):
        text = '```\nThe document shows {"x": 1}\n```\n```\n{"c": 3}\n```'
        assert extract_json_block(text) == {"c": 3}

    def test_no_json_returns_none(self):
        assert extract_json_block("I could not read the PDF.") is None

    def test_non_string_returns_none(self):
        assert extract_json_block(None) is None


class TestFieldCleanup:
    """Tests for amount and asset normalization."""

    def test_amount_gets_dollar_prefix_and_no_newlines(self):
        assert normalize_amount("1,001 - $15,000\n") == "$1,001 - $15,000"

    def test_amount_drops_carriage_returns_and_outer_spaces(self):
        assert normalize_amount(" $1,001 -\r\n $15,000 ") == "$1,001 - $15,000"

    def test_amount_keeps_existing_prefix(self):
        assert normalize_amount("$50,001 - $100,000") == "$50,001 - $100,000"

    def test_asset_strips_control_characters(self):
        assert clean_asset("Apple\ufffd Inc.\x00\x07  (AAPL)\n[ST] ") == "Apple Inc. (AAPL) [ST]"


class TestRecordFromPayload:
    """Tests for structural validation of decoded payloads."""

    def test_builds_cleaned_record(self):
        record = record_from_payload(sample_payload())

        assert record.filing_info.name == "Hon. Jane A. Doe"
        assert record.filing_info.state_district == "CA05"
        assert len(record.transactions) == 1
        assert record.transactions[0].asset == "Apple Inc. (AAPL) [ST]"
        assert record.transactions[0].amount == "$1,001 - $15,000"

    def test_serializes_with_wire_field_names(self):
        data = record_from_payload(sample_payload()).to_dict()

        assert set(data) == {"Filing_Information", "Transactions"}
        assert set(data["Transactions"][0]) == {"ID_Owner", "Asset", "Transaction_Type", "Date", "Amount"}

    def test_missing_filing_information(self):
        payload = sample_payload()
        del payload["Filing_Information"]

        with pytest.raises(ExtractionFailure, match="Filing_Information"):
            record_from_payload(payload)

    def test_missing_filing_field(self):
        payload = sample_payload()
        payload["Filing_Information"]["Status"] = ""

        with pytest.raises(ExtractionFailure, match="Status"):
            record_from_payload(payload)

    def test_empty_transactions(self):
        with pytest.raises(ExtractionFailure, match="Transactions"):
            record_from_payload(sample_payload(Transactions=[]))

    def test_missing_transaction_field(self):
        payload = sample_payload()
        del payload["Transactions"][0]["Date"]

        with pytest.raises(ExtractionFailure, match="Date"):
            record_from_payload(payload)

    def test_non_object_payload(self):
        with pytest.raises(ExtractionFailure):
            record_from_payload([1, 2, 3])


class TestParseExtractionResponse:
    def test_fenced_reply(self):
        text = "```json\n" + json.dumps(sample_payload()) + "\n```"

        record = parse_extraction_response(text)

        assert record.filing_info.name == "Hon. Jane A. Doe"

    def test_reply_without_json(self):
        with pytest.raises(ExtractionFailure, match="JSON"):
            parse_extraction_response("Sorry, I cannot help with that.")
