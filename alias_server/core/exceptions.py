"""
Application-level exceptions.

Raised by the history provider and reconciler; callers decide whether to
retry. Nothing in this package retries on its own.
"""

from __future__ import annotations

from typing import Any


class AliasServerError(Exception):
    """Base class for errors raised by alias_server."""


class MalformedHistoryRecord(AliasServerError):
    """A transaction record does not have the shape the reconciler relies on."""

    def __init__(self, tx: Any, reason: str) -> None:
        self.tx = tx
        self.reason = reason
        txid = tx.get("txid") if isinstance(tx, dict) else None
        super().__init__(f"Malformed tx history record (txid={txid}): {reason}")


class HistoryFetchFailed(AliasServerError):
    """A page of tx history could not be fetched from the indexer."""

    def __init__(self, page_index: int, reason: str) -> None:
        self.page_index = page_index
        self.reason = reason
        super().__init__(f"Failed to fetch tx history page {page_index}: {reason}")


class NonStationaryHistory(AliasServerError):
    """
    Remote history changed between page fetches of one reconciliation.

    expected/actual hold the drifting value (numPages or tip hash) as seen on
    page 1 and on page_index respectively.
    """

    def __init__(self, field: str, expected: Any, actual: Any, page_index: int) -> None:
        self.field = field
        self.expected = expected
        self.actual = actual
        self.page_index = page_index
        super().__init__(
            f"Tx history changed during reconciliation: {field} was {expected!r} "
            f"on page 1 but {actual!r} on page {page_index}"
        )
