"""
Environment variable loading for alias-server history sync.

- CHRONIK_URL: Chronik indexer base URL
- TX_HISTORY_PAGE_SIZE: page size shared by the provider and the reconciler
- CHRONIK_TIMEOUT_SEC: per-request HTTP timeout
- CHRONIK_MAX_CONCURRENT_PAGES: cap on in-flight history page requests
- ALIAS_REGISTRATION_HASH160: hash160 of the alias registration address
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is alias_server/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_CHRONIK_URL = "https://chronik.be.cash/xec"
DEFAULT_TX_HISTORY_PAGE_SIZE = 25
DEFAULT_CHRONIK_TIMEOUT_SEC = 10.0
DEFAULT_CHRONIK_MAX_CONCURRENT_PAGES = 8
DEFAULT_REGISTRATION_HASH160 = "d37c4c809fe9840e7bfa77b86bd47163f6fb6c60"


def load_alias_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    load_dotenv(_ENV_PATH, override=False)


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_chronik_url() -> str:
    """Return CHRONIK_URL without trailing slash."""
    load_alias_env()
    url = (os.getenv("CHRONIK_URL") or "").strip()
    return (url or DEFAULT_CHRONIK_URL).rstrip("/")


def get_tx_history_page_size() -> int:
    """Return TX_HISTORY_PAGE_SIZE, at least 1."""
    load_alias_env()
    return max(1, _int_env("TX_HISTORY_PAGE_SIZE", DEFAULT_TX_HISTORY_PAGE_SIZE))


def get_chronik_timeout_sec() -> float:
    load_alias_env()
    value = _float_env("CHRONIK_TIMEOUT_SEC", DEFAULT_CHRONIK_TIMEOUT_SEC)
    return value if value > 0 else DEFAULT_CHRONIK_TIMEOUT_SEC


def get_chronik_max_concurrent_pages() -> int:
    """Return CHRONIK_MAX_CONCURRENT_PAGES, at least 1."""
    load_alias_env()
    return max(1, _int_env("CHRONIK_MAX_CONCURRENT_PAGES", DEFAULT_CHRONIK_MAX_CONCURRENT_PAGES))


def get_registration_hash160() -> str:
    load_alias_env()
    raw = (os.getenv("ALIAS_REGISTRATION_HASH160") or "").strip().lower()
    return raw or DEFAULT_REGISTRATION_HASH160
