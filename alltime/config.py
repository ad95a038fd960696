from __future__ import annotations

from datetime import timedelta
from pathlib import Path


ALLTIME_BASE_URL = "https://www.alltime-athletics.com"

USER_AGENT = "Mozilla/5.0 (compatible; AthleticsApp/1.0)"
FETCH_TIMEOUT_S = 30

# Cached event pages are considered fresh for this long before a re-fetch.
CACHE_MAX_AGE = timedelta(days=7)

# Pause between upstream requests when refreshing every event.
POLITE_DELAY_S = 0.5


def default_data_dir() -> Path:
    return Path("data")


def default_cache_dir() -> Path:
    return default_data_dir() / "cache" / "alltime"


def default_cache_db_path() -> Path:
    return default_data_dir() / "alltime_cache.sqlite3"
