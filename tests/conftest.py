"""
Pytest fixtures for alias-server tests. Isolates configuration from the host environment.
"""

from __future__ import annotations

import pytest

CONFIG_ENV_VARS = (
    "CHRONIK_URL",
    "TX_HISTORY_PAGE_SIZE",
    "CHRONIK_TIMEOUT_SEC",
    "CHRONIK_MAX_CONCURRENT_PAGES",
    "ALIAS_REGISTRATION_HASH160",
)


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch):
    """Unset config env vars so each test starts from defaults."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


