#!/usr/bin/env python3
"""
Document Extractor
Downloads a filing PDF, reads its text and asks Claude for the structured
filing information and transactions
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import anthropic
import fitz  # pymupdf
import requests

from config import (ANTHROPIC_API_KEY, EXTRACTION_MODEL, EXTRACTION_MAX_TOKENS, PDF_DOWNLOAD_DIR,
                    MAX_PDF_SIZE, REQUEST_TIMEOUT, USER_AGENT)
from errors import ExtractionFailure
from extraction_parser import parse_extraction_response
from models import ExtractedRecord

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You extract structured data from U.S. House Periodic Transaction Reports. Reply with JSON only."

EXTRACTION_INSTRUCTIONS = """
Please analyze this PTR document and extract the following information in a structured JSON format:

1. Filing Information:
   - Name of the politician
   - Filing Status
   - State/District

2. Transaction Details (for each transaction):
   - Owner ID (who made the transaction)
   - Asset name/description
   - Transaction type (Purchase, Sale, Exchange)
   - Transaction date
   - Amount of transaction (in ranges if specified)

Please format the output as a JSON object with two main sections:
1. "Filing_Information" containing the filing details
2. "Transactions" as an array of individual transaction objects

Example format:
{
  "Filing_Information": {
    "Name": "Last, First",
    "Status": "Filed",
    "State_District": "XX00"
  },
  "Transactions": [
    {
      "ID_Owner": "Self",
      "Asset": "Company Stock",
      "Transaction_Type": "Purchase",
      "Date": "2023-01-01",
      "Amount": "$1,001 - $15,000"
    }
  ]
}

Important notes:
- Maintain exact field names as shown
- Include all transactions found in the document
- Preserve original text formatting for asset names
- Use consistent date format (YYYY-MM-DD)
- Include dollar signs in amount ranges

Document text:
"""


def document_id_from_url(url: str) -> str:
    """'.../ptr-pdfs/2025/20026537.pdf' -> '20026537'"""
    return Path(urlparse(url).path).stem


def cleanup_pdf(path: Path):
    """Remove a downloaded PDF and its directory once empty; failures are only logged"""
    try:
        if path.exists():
            path.unlink()
            logger.debug(f"Deleted temporary PDF: {path}")
            directory = path.parent
            if not any(directory.iterdir()):
                directory.rmdir()
                logger.debug(f"Removed empty directory: {directory}")
    except OSError as e:
        logger.warning(f"⚠️ Failed to cleanup PDF file: {e}")


def _cleanup_after_download(download: asyncio.Future, path: Path):
    if not download.cancelled() and download.exception() is not None:
        logger.debug(f"Abandoned download failed: {download.exception()}")
    cleanup_pdf(path)


def read_pdf_text(path: Path) -> str:
    doc = fitz.open(str(path))
    try:
        return "\n".join(page.get_text() for page in doc)
    finally:
        doc.close()


class DocumentExtractor:
    """
    Turns a filing document URL into an ExtractedRecord

    Every call downloads the document again, so repeated attempts are
    independent of each other.
    """

    def __init__(
        self,
        api_key: Optional[str] = ANTHROPIC_API_KEY,
        model: str = EXTRACTION_MODEL,
        download_dir: str = PDF_DOWNLOAD_DIR,
        session: Optional[requests.Session] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.download_dir = Path(download_dir)
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.api_key:
                raise ExtractionFailure("Anthropic API key not found. Please add it to the .env file.")
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    def pdf_path(self, url: str) -> Path:
        return self.download_dir / f"{document_id_from_url(url)}.pdf"

    def download_pdf(self, url: str) -> Path:
        """Download a PDF into the download directory and return its path"""
        if not url:
            raise ExtractionFailure("No URL provided for PDF download")

        logger.info(f"📥 Downloading PDF {url}")
        try:
            response = self.session.get(url, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise ExtractionFailure(f"PDF download failed: {e}") from e

        if response.status_code != 200:
            raise ExtractionFailure(f"Failed to download PDF: HTTP {response.status_code}")
        if len(response.content) > MAX_PDF_SIZE:
            raise ExtractionFailure("PDF file exceeds maximum size limit")

        self.download_dir.mkdir(parents=True, exist_ok=True)
        path = self.pdf_path(url)
        path.write_bytes(response.content)
        logger.info(f"✅ PDF saved to {path}")
        return path

    async def convert_text(self, text: str) -> ExtractedRecord:
        """Send document text to Claude and parse the reply"""
        if not text.strip():
            raise ExtractionFailure("PDF contains no extractable text")

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=EXTRACTION_MAX_TOKENS,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": EXTRACTION_INSTRUCTIONS + text}],
            )
        except anthropic.APIError as e:
            raise ExtractionFailure(f"Extraction API error: {e}") from e

        if not response.content:
            raise ExtractionFailure("Empty response from extraction service")

        logger.info(f"✓ Extraction complete ({response.usage.input_tokens:,} in / "
                    f"{response.usage.output_tokens:,} out)")
        return parse_extraction_response(response.content[0].text)

    async def extract(self, document_url: str) -> ExtractedRecord:
        """
        Download, read and convert a filing document

        Raises:
            ExtractionFailure: On any download, read or conversion problem
        """
        start_time = time.time()
        path = self.pdf_path(document_url)
        download = asyncio.ensure_future(asyncio.to_thread(self.download_pdf, document_url))
        try:
            await asyncio.shield(download)
            try:
                text = await asyncio.to_thread(read_pdf_text, path)
            except (RuntimeError, ValueError) as e:
                raise ExtractionFailure(f"Invalid or corrupted PDF file: {e}") from e

            record = await self.convert_text(text)
            logger.info(f"✅ Extracted {len(record.transactions)} transaction(s) "
                        f"in {time.time() - start_time:.2f}s")
            return record
        finally:
            if download.done():
                cleanup_pdf(path)
            else:
                # Cancelled mid-download: the worker thread still writes the file
                download.add_done_callback(lambda finished: _cleanup_after_download(finished, path))
