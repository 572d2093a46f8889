"""Tests for the document extractor."""

import asyncio
import json
import threading
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest

from document_extractor import DocumentExtractor, cleanup_pdf, document_id_from_url
from errors import ExtractionFailure

PDF_URL = "https://disclosures-clerk.house.gov/public_disc/ptr-pdfs/2025/20026537.pdf"

REPLY = {
    "Filing_Information": {"Name": "Hon. Jane A. Doe", "Status": "Member", "State_District": "CA05"},
    "Transactions": [{
        "ID_Owner": "SP",
        "Asset": "Apple Inc. (AAPL) [ST]",
        "Transaction_Type": "P",
        "Date": "2025-01-15",
        "Amount": "$1,001 - $15,000",
    }],
}


def mock_session(status_code: int = 200, content: bytes = b"%PDF-1.7 fake") -> Mock:
    session = Mock()
    session.headers = {}
    session.get.return_value = Mock(status_code=status_code, content=content)
    return session


def mock_client(text: str) -> Mock:
    response = Mock()
    response.content = [Mock(text=text)]
    response.usage = Mock(input_tokens=1200, output_tokens=300)
    client = Mock()
    client.messages.create = AsyncMock(return_value=response)
    return client


class TestHelpers:
    def test_document_id_from_url(self):
        assert document_id_from_url(PDF_URL) == "20026537"

    def test_cleanup_removes_file_and_empty_directory(self, tmp_path: Path):
        directory = tmp_path / "pdfs"
        directory.mkdir()
        pdf = directory / "1.pdf"
        pdf.write_bytes(b"x")

        cleanup_pdf(pdf)

        assert not pdf.exists()
        assert not directory.exists()

    def test_cleanup_keeps_non_empty_directory(self, tmp_path: Path):
        pdf = tmp_path / "1.pdf"
        pdf.write_bytes(b"x")
        (tmp_path / "other.pdf").write_bytes(b"y")

        cleanup_pdf(pdf)

        assert not pdf.exists()
        assert tmp_path.exists()


class TestDocumentExtractor:
    """Tests for DocumentExtractor.extract."""

    def make_extractor(self, tmp_path: Path, session=None, client=None) -> DocumentExtractor:
        return DocumentExtractor(
            api_key="test-key",
            download_dir=str(tmp_path / "pdfs"),
            session=session or mock_session(),
            client=client or mock_client("```json\n" + json.dumps(REPLY) + "\n```"),
        )

    def test_extract_returns_record_and_cleans_up(self, tmp_path: Path, run):
        extractor = self.make_extractor(tmp_path)

        with patch("document_extractor.read_pdf_text", return_value="PERIODIC TRANSACTION REPORT"):
            record = run(extractor.extract(PDF_URL))

        assert record.filing_info.state_district == "CA05"
        assert len(record.transactions) == 1
        assert not (tmp_path / "pdfs" / "20026537.pdf").exists()
        prompt = extractor.client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert prompt.endswith("PERIODIC TRANSACTION REPORT")

    def test_download_http_error(self, tmp_path: Path, run):
        extractor = self.make_extractor(tmp_path, session=mock_session(status_code=404))

        with pytest.raises(ExtractionFailure, match="404"):
            run(extractor.extract(PDF_URL))

    def test_oversized_pdf_rejected(self, tmp_path: Path, run):
        with patch("document_extractor.MAX_PDF_SIZE", 4):
            extractor = self.make_extractor(tmp_path)
            with pytest.raises(ExtractionFailure, match="size"):
                run(extractor.extract(PDF_URL))

    def test_unparseable_reply_fails_and_cleans_up(self, tmp_path: Path, run):
        extractor = self.make_extractor(tmp_path, client=mock_client("I cannot read this document."))

        with patch("document_extractor.read_pdf_text", return_value="text"):
            with pytest.raises(ExtractionFailure):
                run(extractor.extract(PDF_URL))

        assert not (tmp_path / "pdfs" / "20026537.pdf").exists()

    def test_blank_pdf_text_fails(self, tmp_path: Path, run):
        extractor = self.make_extractor(tmp_path)

        with patch("document_extractor.read_pdf_text", return_value="   "):
            with pytest.raises(ExtractionFailure, match="no extractable text"):
                run(extractor.extract(PDF_URL))

        extractor.client.messages.create.assert_not_called()

    def test_missing_api_key(self):
        extractor = DocumentExtractor(api_key=None, session=mock_session())

        with pytest.raises(ExtractionFailure, match="API key"):
            extractor.client

    def test_download_abandoned_by_timeout_is_cleaned_up(self, tmp_path: Path, run):
        release = threading.Event()
        session = mock_session()
        response = session.get.return_value

        def slow_get(url, timeout):
            release.wait(5)
            return response

        session.get.side_effect = slow_get
        extractor = self.make_extractor(tmp_path, session=session)
        written = threading.Event()
        download_pdf = extractor.download_pdf

        def tracked_download(url):
            try:
                return download_pdf(url)
            finally:
                written.set()

        extractor.download_pdf = tracked_download
        pdf = tmp_path / "pdfs" / "20026537.pdf"

        async def time_out_then_finish():
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(extractor.extract(PDF_URL), timeout=0.05)
            release.set()
            for _ in range(200):
                if written.is_set() and not pdf.exists():
                    break
                await asyncio.sleep(0.01)

        run(time_out_then_finish())

        assert written.is_set()
        assert not pdf.exists()
        extractor.client.messages.create.assert_not_called()
