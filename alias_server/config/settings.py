"""
Application settings.

Typed, immutable snapshot of the environment (see config/env.py) for use by
the history provider, the reconciler and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass

from alias_server.config import env


@dataclass(frozen=True)
class Settings:
    """
    chronik_url: Chronik indexer base URL.
    tx_history_page_size: Txs per history page; shared by provider and reconciler.
    chronik_timeout_sec: HTTP timeout per request.
    chronik_max_concurrent_pages: Cap on in-flight history page requests.
    registration_hash160: Default identifier whose history is reconciled.
    """

    chronik_url: str
    tx_history_page_size: int
    chronik_timeout_sec: float
    chronik_max_concurrent_pages: int
    registration_hash160: str


def get_settings() -> Settings:
    """Return the current application settings, read fresh from the environment."""
    return Settings(
        chronik_url=env.get_chronik_url(),
        tx_history_page_size=env.get_tx_history_page_size(),
        chronik_timeout_sec=env.get_chronik_timeout_sec(),
        chronik_max_concurrent_pages=env.get_chronik_max_concurrent_pages(),
        registration_hash160=env.get_registration_hash160(),
    )
