#!/usr/bin/env python3
"""
Configuration settings for the Filing Monitor
"""

import os

from dotenv import load_dotenv

from errors import ConfigurationError

load_dotenv()

# Time constants (seconds)
SECOND = 1
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

# === Disclosure Source Configuration ===
SOURCE_BASE_URL = os.getenv("SOURCE_BASE_URL", "https://disclosures-clerk.house.gov")
SOURCE_SEARCH_PATH = "/FinancialDisclosure/ViewMemberSearchResult"
FILING_TYPE = "PTR"  # Periodic Transaction Report
DOCUMENT_PATH_MARKER = "ptr-pdfs"
REQUEST_TIMEOUT = 30
USER_AGENT = os.getenv("USER_AGENT", "filing-monitor/1.0")

# === Extraction Configuration ===
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
EXTRACTION_MODEL = os.getenv("EXTRACTION_MODEL", "claude-sonnet-4-5")
EXTRACTION_MAX_TOKENS = 8000
EXTRACTION_TIMEOUT = 5 * MINUTE  # Per attempt
PDF_DOWNLOAD_DIR = os.getenv("PDF_DOWNLOAD_DIR", "pdfs")
MAX_PDF_SIZE = 25 * 1024 * 1024  # 25MB

# === Retry Configuration ===
RETRY_DELAYS = [
    0,            # Immediate
    3 * MINUTE,
    7 * MINUTE,
    30 * MINUTE,
    8 * HOUR,
]

# === Monitoring Configuration ===
CHECK_INTERVAL = int(os.getenv("SCRAPER_FREQUENCY_MINUTES", "60")) * MINUTE
AUTO_START_MONITOR = os.getenv("AUTO_START_MONITOR", "true").lower() == "true"

# === Elasticsearch Configuration ===
ES_HOST = os.getenv("ES_HOST", "http://localhost:9200")
ES_INDEX_NAME = os.getenv("ES_INDEX_NAME", "politician-transactions")
MAX_RETRIES = 5  # Maximum number of connection retry attempts
RETRY_DELAY = 5  # Initial delay between retries in seconds (will increase exponentially)

# === API Configuration ===
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("PORT", "3000"))
API_TITLE = "Filing Monitor API"
API_DESCRIPTION = "Monitors House PTR disclosures, extracts transactions and streams alerts"
API_VERSION = "1.0.0"
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# === Logging Configuration ===
LOG_FILE = os.getenv("LOG_FILE", "filing_monitor.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

REQUIRED_ENV_VARS = ["ANTHROPIC_API_KEY"]


def validate_config():
    """Fail fast if a required environment variable is missing"""
    for name in REQUIRED_ENV_VARS:
        if not os.getenv(name):
            raise ConfigurationError(f"Missing required environment variable: {name}")
