"""
Structured logging for alias-server history sync.

JSON logs with timestamp, identifier, event_type and page context.
Use get_logger() in all modules for aggregation-friendly output.
"""

from alias_server.alias_logging.logger import bind_identifier, get_logger

__all__ = ["bind_identifier", "get_logger"]
