#!/usr/bin/env python3
"""
Disclosure source client
Fetches the House Clerk member search results and lists PTR filings
"""

import logging
import re
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from config import (SOURCE_BASE_URL, SOURCE_SEARCH_PATH, FILING_TYPE, DOCUMENT_PATH_MARKER,
                    REQUEST_TIMEOUT, USER_AGENT)
from errors import FetchFailure
from models import FilingDescriptor

logger = logging.getLogger(__name__)

DOCUMENT_ID_PATTERN = re.compile(r"/(\d+)\.pdf$")


def parse_filings(html: str, base_url: str = SOURCE_BASE_URL) -> List[FilingDescriptor]:
    """
    Parse the search results table into filing descriptors

    Only PTR rows linking to a numbered PDF are kept. Results are ordered
    by numeric document id, highest (most recent) first.
    """
    soup = BeautifulSoup(html, "html.parser")
    filings = []

    for row in soup.select("tbody tr"):
        name_element = row.select_one('td[data-label="Name"] a')
        office_element = row.select_one('td[data-label="Office"]')
        filing_year_element = row.select_one('td[data-label="Filing Year"]')
        filing_type_element = row.select_one('td[data-label="Filing"]')

        if not filing_type_element or FILING_TYPE not in filing_type_element.get_text():
            continue
        if not name_element or not office_element or not filing_year_element:
            continue

        href = name_element.get("href")
        if not href or DOCUMENT_PATH_MARKER not in href:
            continue

        match = DOCUMENT_ID_PATTERN.search(href)
        if not match:
            logger.debug(f"Could not extract numeric ID from href: {href}")
            continue

        clean_href = href if href.startswith("/") else "/" + href
        filings.append(FilingDescriptor(
            id=int(match.group(1)),
            name=name_element.get_text(strip=True),
            office=office_element.get_text(strip=True),
            filing_year=filing_year_element.get_text(strip=True),
            document_url=urljoin(base_url, clean_href),
        ))

    filings.sort(key=lambda filing: filing.id, reverse=True)
    return filings


class SourceFetcher:
    """Lists candidate filings for a given year"""

    def __init__(self, base_url: str = SOURCE_BASE_URL, session: Optional[requests.Session] = None):
        self.base_url = base_url
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def fetch_search_results(self, year: int) -> str:
        """Raw HTML of the search results page for a filing year"""
        try:
            response = self.session.post(
                f"{self.base_url}{SOURCE_SEARCH_PATH}",
                params={"filingYear": year},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            return response.text
        except requests.RequestException as e:
            logger.error(f"❌ Failed to fetch filings for {year}: {e}")
            raise FetchFailure(f"Failed to fetch filings for {year}") from e

    def fetch(self, year: int) -> List[FilingDescriptor]:
        """
        Candidate PTR filings for a year, most recent first

        Raises:
            FetchFailure: If the source cannot be reached
        """
        html = self.fetch_search_results(year)
        try:
            filings = parse_filings(html, self.base_url)
        except Exception as e:
            logger.error(f"❌ Error parsing search results: {e}")
            return []

        logger.info(f"Found {len(filings)} {FILING_TYPE} filings for {year}")
        return filings

    def fetch_latest(self, year: int) -> Optional[FilingDescriptor]:
        filings = self.fetch(year)
        return filings[0] if filings else None
