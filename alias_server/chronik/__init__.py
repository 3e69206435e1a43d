"""
Chronik indexer package.

Fetches paginated tx history for an address from a Chronik indexer and
reconciles it against locally processed state.
"""

from alias_server.chronik.client import ChronikHistoryProvider, HistoryProvider
from alias_server.chronik.history import get_all_tx_history, get_unprocessed_tx_history
from alias_server.chronik.models import (
    HistoryPage,
    InsufficientHistory,
    ReconciliationResult,
    SufficientHistory,
    tx_blockheight,
)

__all__ = [
    "ChronikHistoryProvider",
    "HistoryPage",
    "HistoryProvider",
    "InsufficientHistory",
    "ReconciliationResult",
    "SufficientHistory",
    "get_all_tx_history",
    "get_unprocessed_tx_history",
    "tx_blockheight",
]
