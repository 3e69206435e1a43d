"""
Structured logging for reconciliation runs.

Every record carries an ISO-8601 UTC timestamp, the level, the emitting module
(`logger`) and an `event_type`; reconciliation code adds identifier and page
context as keyword arguments. Records go to stderr so the CLI can keep stdout
for its JSON result.

LOG_FORMAT=json (default) renders one JSON object per line; any other value
uses structlog's console renderer.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog


def _event_to_event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Store structlog's positional 'event' under event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_structlog(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure structlog for alias_server.

    level and fmt default to LOG_LEVEL (INFO) and LOG_FORMAT (json).
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    log_format = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors.append(_event_to_event_type)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # ConsoleRenderer prints the 'event' key as the headline
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name, logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("chronik_history_page_fetched", identifier=h160, page_index=2, tx_count=25)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_identifier(identifier: str) -> structlog.BoundLogger:
    """Return a logger with the reconciled identifier bound to every record."""
    return get_logger("alias_server.reconcile").bind(identifier=identifier)
