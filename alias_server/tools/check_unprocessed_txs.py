"""
Check which txs at the alias registration address are still unprocessed.

Runs one reconciliation against Chronik and prints the result as JSON.
Persisting the new processed state is left to the caller.

Usage:
    python -m alias_server.tools.check_unprocessed_txs --processed-blockheight 785000 --processed-tx-count 120
    python -m alias_server.tools.check_unprocessed_txs --all
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from alias_server.alias_logging import get_logger
from alias_server.chronik import (
    ChronikHistoryProvider,
    get_all_tx_history,
    get_unprocessed_tx_history,
)
from alias_server.config import get_settings
from alias_server.core.exceptions import AliasServerError

logger = get_logger(__name__)


def _summarize(result: dict[str, Any], full: bool) -> dict[str, Any]:
    """Replace unprocessedTxs with txids unless full output is requested."""
    if full:
        return result
    out = dict(result)
    out["unprocessedTxs"] = [tx.get("txid") for tx in result["unprocessedTxs"]]
    return out


async def run(args: argparse.Namespace) -> dict[str, Any]:
    settings = get_settings()
    identifier = args.identifier or settings.registration_hash160
    page_size = settings.tx_history_page_size if args.page_size is None else args.page_size
    async with ChronikHistoryProvider(
        args.chronik_url or settings.chronik_url,
        page_size=page_size,
        timeout_sec=settings.chronik_timeout_sec,
        track_tip=args.track_tip,
    ) as provider:
        if args.all:
            txs = await get_all_tx_history(
                identifier, provider, max_concurrent_pages=settings.chronik_max_concurrent_pages
            )
            return {"identifier": identifier, "txCount": len(txs)}
        result = await get_unprocessed_tx_history(
            identifier,
            args.processed_blockheight,
            args.processed_tx_count,
            provider,
            page_size=page_size,
            max_concurrent_pages=settings.chronik_max_concurrent_pages,
        )
    out = _summarize(result.to_dict(), args.full)
    out["identifier"] = identifier
    return out


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Reconcile processed alias-server state against Chronik tx history. "
            "The indexer must answer in Chronik's protobuf format or in JSON "
            "({\"txs\": [...], \"numPages\": n}); other content types fail the fetch."
        ),
    )
    parser.add_argument("--identifier", default=None, help="hash160 to query (default: ALIAS_REGISTRATION_HASH160)")
    parser.add_argument("--processed-blockheight", type=int, default=None, help="Highest processed blockheight (omit if nothing processed)")
    parser.add_argument("--processed-tx-count", type=int, default=0, help="Number of txs already processed (default: 0)")
    parser.add_argument("--page-size", type=int, default=None, help="Txs per page (default: TX_HISTORY_PAGE_SIZE)")
    parser.add_argument("--chronik-url", default=None, help="Chronik base URL serving protobuf or JSON history (default: CHRONIK_URL)")
    parser.add_argument("--track-tip", action="store_true", help="Fail if the chain tip moves between page fetches")
    parser.add_argument("--all", action="store_true", help="Fetch the full history and print its tx count")
    parser.add_argument("--full", action="store_true", help="Print full tx records instead of txids")
    args = parser.parse_args(argv)
    try:
        out = asyncio.run(run(args))
    except (AliasServerError, ValueError) as e:
        logger.error("check_unprocessed_txs_failed", error=str(e))
        print("ERROR:", e, file=sys.stderr)
        return 1
    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
