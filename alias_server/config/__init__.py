"""
Configuration management for alias-server history sync.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for indexer URL, page size and timeouts.
"""

from alias_server.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
