"""Core constants used across tracker modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".covid-tracker")
DEFAULT_SOURCE_NAME = "dashboard-csv"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 120
DEFAULT_UTC_OFFSET = "-03:00"
DEFAULT_READ_ME_URL = "https://apify.com/pocesar/covid-brazil"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; covid-br-tracker/1.0)"
DEFAULT_FETCH_ATTEMPTS = 3
EXPECTED_FEDERATIVE_UNITS = 27
REGION_CODE_PATTERN = r"^[A-Z]{2}$"
EPOCH_MILLISECONDS_THRESHOLD = 100_000_000_000
EPOCH_MINIMUM_SECONDS = 1_000_000_000
SOURCES_DIR_NAME = "sources"
DIAGNOSTICS_DIR_NAME = "diagnostics"
LATEST_FILE_NAME = "latest.json"
HISTORY_FILE_NAME = "history.jsonl"
PUBLISHED_FILE_NAME = "published.jsonl"
S3_LATEST_OBJECT_NAME = "latest.json"
DIAGNOSTIC_KEY_LENGTH = 12
