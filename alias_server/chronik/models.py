"""
Data models for Chronik tx history and reconciliation results.

Tx records stay plain dicts (the indexer's JSON); only `block.height` is read,
through tx_blockheight(). Results are a tagged variant: SufficientHistory when
page 1 alone covered every unprocessed tx, InsufficientHistory when more pages
were fetched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from alias_server.core.exceptions import MalformedHistoryRecord

Tx = dict[str, Any]


def tx_blockheight(tx: Any) -> int | None:
    """
    Return the blockheight of a tx record, or None if it is unconfirmed.

    Raises MalformedHistoryRecord when the record is not a dict or its block
    has no integer height.
    """
    if not isinstance(tx, dict):
        raise MalformedHistoryRecord(tx, f"expected a dict, got {type(tx).__name__}")
    block = tx.get("block")
    if block is None:
        return None
    if not isinstance(block, dict):
        raise MalformedHistoryRecord(tx, "block is not an object")
    height = block.get("height")
    # bool is an int subclass; a True height is not a blockheight
    if isinstance(height, bool) or not isinstance(height, int):
        raise MalformedHistoryRecord(tx, f"block.height must be an integer, got {height!r}")
    return height


@dataclass(frozen=True)
class HistoryPage:
    """
    One page of an address's tx history, newest-first.

    num_pages is the total page count at fetch time. tip_hash is an optional
    consistency token (chain tip when the page was served); None when the
    provider does not track it.
    """

    txs: list[Tx]
    num_pages: int
    tip_hash: str | None = None

    @classmethod
    def from_response(cls, data: Any, tip_hash: str | None = None) -> "HistoryPage":
        """Build from a Chronik history JSON body ({"txs": [...], "numPages": n})."""
        if not isinstance(data, dict):
            raise ValueError("history response is not an object")
        txs = data.get("txs")
        num_pages = data.get("numPages")
        if not isinstance(txs, list):
            raise ValueError("history response has no txs list")
        if isinstance(num_pages, bool) or not isinstance(num_pages, int) or num_pages < 0:
            raise ValueError(f"history response has invalid numPages: {num_pages!r}")
        return cls(txs=list(txs), num_pages=num_pages, tip_hash=tip_hash)


@dataclass(frozen=True)
class SufficientHistory:
    """Page 1 already held every potentially unprocessed tx; nothing else fetched."""

    kind: ClassVar[str] = "sufficient"

    unprocessed_txs: list[Tx] = field(default_factory=list)

    @property
    def already_have_all_potentially_unprocessed_txs(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "maxTxs": None,
            "maxUnprocessedTxCount": None,
            "numPagesToFetch": None,
            "alreadyHaveAllPotentiallyUnprocessedTxs": True,
            "unprocessedTxs": list(self.unprocessed_txs),
        }


@dataclass(frozen=True)
class InsufficientHistory:
    """
    Page 1 was not enough; pages 2..num_pages_to_fetch were fetched too.

    max_txs: page_size * numPages, upper bound on remote tx count.
    max_unprocessed_tx_count: max_txs - processed_tx_count.
    num_pages_to_fetch: pages needed to cover max_unprocessed_tx_count.
    """

    kind: ClassVar[str] = "insufficient"

    max_txs: int
    max_unprocessed_tx_count: int
    num_pages_to_fetch: int
    unprocessed_txs: list[Tx] = field(default_factory=list)

    @property
    def already_have_all_potentially_unprocessed_txs(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "maxTxs": self.max_txs,
            "maxUnprocessedTxCount": self.max_unprocessed_tx_count,
            "numPagesToFetch": self.num_pages_to_fetch,
            "alreadyHaveAllPotentiallyUnprocessedTxs": False,
            "unprocessedTxs": list(self.unprocessed_txs),
        }


ReconciliationResult = Union[SufficientHistory, InsufficientHistory]
