"""
Tx history reconciliation against a paginated Chronik history.

Given what the caller has already processed (highest processed blockheight and
processed tx count), work out which remote txs are still unprocessed while
fetching as few pages as possible:

1. Fetch page 1. If its oldest tx is confirmed at or below the processed
   blockheight, page 1 already holds every unprocessed tx (SufficientHistory).
2. Otherwise assume the worst case (every page full), compute how many pages
   can hold the unprocessed txs, fetch pages 2..n concurrently (at most
   max_concurrent_pages in flight) and reassemble them in page order
   (InsufficientHistory).

In both cases the result is the newest-first prefix of txs that are
unconfirmed or above the processed blockheight. Txs are not deduplicated by
txid across calls; a tx that confirms after being returned unconfirmed is
returned again.

All state is local to the call, so reconciliations for different identifiers
can run concurrently.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any

from alias_server.alias_logging import bind_identifier
from alias_server.chronik.client import HistoryProvider
from alias_server.chronik.models import (
    HistoryPage,
    InsufficientHistory,
    ReconciliationResult,
    SufficientHistory,
    Tx,
    tx_blockheight,
)
from alias_server.config.env import get_chronik_max_concurrent_pages, get_tx_history_page_size
from alias_server.core.exceptions import (
    AliasServerError,
    HistoryFetchFailed,
    NonStationaryHistory,
)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _resolve_page_size(provider: HistoryProvider, page_size: int | None) -> int:
    """
    Page size shared with the provider: the provider's own page_size wins over
    TX_HISTORY_PAGE_SIZE; an explicit page_size must agree with it.
    """
    provider_page_size = getattr(provider, "page_size", None)
    if not _is_int(provider_page_size):
        provider_page_size = None
    if page_size is None:
        page_size = provider_page_size if provider_page_size is not None else get_tx_history_page_size()
    if not _is_int(page_size) or page_size < 1:
        raise ValueError(f"page_size must be a positive integer, got {page_size!r}")
    if provider_page_size is not None and provider_page_size != page_size:
        raise ValueError(
            f"page_size {page_size} does not match the provider's page_size {provider_page_size}"
        )
    return page_size


def _resolve_max_concurrent_pages(max_concurrent_pages: int | None) -> int:
    if max_concurrent_pages is None:
        return get_chronik_max_concurrent_pages()
    if not _is_int(max_concurrent_pages) or max_concurrent_pages < 1:
        raise ValueError(
            f"max_concurrent_pages must be a positive integer, got {max_concurrent_pages!r}"
        )
    return max_concurrent_pages


async def _fetch_page_checked(
    provider: HistoryProvider, identifier: str, page_index: int
) -> HistoryPage:
    """Fetch one page; wrap foreign provider errors in HistoryFetchFailed."""
    try:
        page = await provider.fetch_page(identifier, page_index)
    except AliasServerError:
        raise
    except Exception as e:
        raise HistoryFetchFailed(page_index, f"{type(e).__name__}: {e}") from e
    if not isinstance(page, HistoryPage):
        raise HistoryFetchFailed(
            page_index, f"provider returned {type(page).__name__}, expected HistoryPage"
        )
    return page


def _check_stationary(first_page: HistoryPage, page: HistoryPage, page_index: int) -> None:
    if page.num_pages != first_page.num_pages:
        raise NonStationaryHistory("numPages", first_page.num_pages, page.num_pages, page_index)
    if (
        first_page.tip_hash is not None
        and page.tip_hash is not None
        and page.tip_hash != first_page.tip_hash
    ):
        raise NonStationaryHistory("tipHash", first_page.tip_hash, page.tip_hash, page_index)


async def _fetch_remaining_pages(
    provider: HistoryProvider,
    identifier: str,
    first_page: HistoryPage,
    last_page_index: int,
    max_concurrent_pages: int,
) -> list[Tx]:
    """
    Fetch pages 2..last_page_index, at most max_concurrent_pages at a time, and
    return page 1 plus those pages' txs, concatenated in page order.
    """
    sem = asyncio.Semaphore(max_concurrent_pages)

    async def fetch(page_index: int) -> HistoryPage:
        async with sem:
            return await _fetch_page_checked(provider, identifier, page_index)

    page_indexes = list(range(2, last_page_index + 1))
    pages = await asyncio.gather(*(fetch(i) for i in page_indexes))
    txs: list[Tx] = list(first_page.txs)
    for page_index, page in sorted(zip(page_indexes, pages), key=lambda item: item[0]):
        _check_stationary(first_page, page, page_index)
        txs.extend(page.txs)
    return txs


def _first_page_is_sufficient(
    first_page: HistoryPage, processed_blockheight: int | None
) -> bool:
    """True when page 1 is known to contain every potentially unprocessed tx."""
    if processed_blockheight is None:
        # Nothing processed yet: only a single-page history is complete
        return first_page.num_pages <= 1
    if not first_page.txs:
        return True
    oldest_height = tx_blockheight(first_page.txs[-1])
    if oldest_height is None:
        # Unconfirmed txs have no height to compare against
        return False
    return oldest_height <= processed_blockheight


def _trim_unprocessed(
    txs: list[Tx], processed_blockheight: int | None
) -> tuple[list[Tx], bool]:
    """
    Return (newest-first prefix of unprocessed txs, whether the processed boundary was reached).
    """
    unprocessed: list[Tx] = []
    for tx in txs:
        height = tx_blockheight(tx)
        if (
            processed_blockheight is not None
            and height is not None
            and height <= processed_blockheight
        ):
            return unprocessed, True
        unprocessed.append(tx)
    return unprocessed, False


async def get_unprocessed_tx_history(
    identifier: str,
    processed_blockheight: int | None,
    processed_tx_count: int,
    provider: HistoryProvider,
    page_size: int | None = None,
    max_concurrent_pages: int | None = None,
) -> ReconciliationResult:
    """
    Return the txs at identifier not yet accounted for by the processed state.

    Args:
        identifier: Key scoping the provider query (registration hash160).
        processed_blockheight: Highest blockheight fully processed; None if nothing
            has been processed yet.
        processed_tx_count: Number of txs already processed.
        provider: Paginated history source (see HistoryProvider).
        page_size: Txs per provider page; defaults to the provider's page_size, then
            TX_HISTORY_PAGE_SIZE. Must match the provider's page_size when it has one.
        max_concurrent_pages: Cap on in-flight page fetches; defaults to
            CHRONIK_MAX_CONCURRENT_PAGES.

    Returns:
        SufficientHistory when page 1 was enough, otherwise InsufficientHistory
        with the page arithmetic used.

    Raises:
        HistoryFetchFailed: A page could not be fetched.
        NonStationaryHistory: numPages or the chain tip changed between pages.
        MalformedHistoryRecord: A tx record has a malformed block.
    """
    page_size = _resolve_page_size(provider, page_size)
    max_concurrent_pages = _resolve_max_concurrent_pages(max_concurrent_pages)
    if not _is_int(processed_tx_count) or processed_tx_count < 0:
        raise ValueError(
            f"processed_tx_count must be a non-negative integer, got {processed_tx_count!r}"
        )
    if processed_blockheight is not None and not _is_int(processed_blockheight):
        raise ValueError(
            f"processed_blockheight must be an integer or None, got {processed_blockheight!r}"
        )

    log = bind_identifier(identifier)
    first_page = await _fetch_page_checked(provider, identifier, 1)

    if _first_page_is_sufficient(first_page, processed_blockheight):
        unprocessed_txs, _ = _trim_unprocessed(first_page.txs, processed_blockheight)
        log.info(
            "tx_history_first_page_sufficient",
            num_pages=first_page.num_pages,
            unprocessed_tx_count=len(unprocessed_txs),
        )
        return SufficientHistory(unprocessed_txs=unprocessed_txs)

    max_txs = page_size * first_page.num_pages
    max_unprocessed_tx_count = max_txs - processed_tx_count
    # Page 1 is always fetched, even when the local count exceeds the remote bound
    num_pages_to_fetch = max(1, math.ceil(max_unprocessed_tx_count / page_size))
    last_page_index = min(num_pages_to_fetch, max(first_page.num_pages, 1))

    log.info(
        "tx_history_fetching_pages",
        num_pages=first_page.num_pages,
        max_txs=max_txs,
        max_unprocessed_tx_count=max_unprocessed_tx_count,
        num_pages_to_fetch=num_pages_to_fetch,
    )
    txs = await _fetch_remaining_pages(
        provider, identifier, first_page, last_page_index, max_concurrent_pages
    )
    unprocessed_txs, reached_boundary = _trim_unprocessed(txs, processed_blockheight)

    if (
        processed_blockheight is not None
        and not reached_boundary
        and last_page_index < first_page.num_pages
    ):
        log.warning(
            "tx_history_processed_boundary_not_reached",
            processed_blockheight=processed_blockheight,
            processed_tx_count=processed_tx_count,
            fetched_pages=last_page_index,
            num_pages=first_page.num_pages,
        )

    log.info(
        "tx_history_reconciled",
        fetched_pages=last_page_index,
        unprocessed_tx_count=len(unprocessed_txs),
    )
    return InsufficientHistory(
        max_txs=max_txs,
        max_unprocessed_tx_count=max_unprocessed_tx_count,
        num_pages_to_fetch=num_pages_to_fetch,
        unprocessed_txs=unprocessed_txs,
    )


async def get_all_tx_history(
    identifier: str,
    provider: HistoryProvider,
    max_concurrent_pages: int | None = None,
) -> list[Tx]:
    """
    Fetch every page of identifier's history and return all txs, newest-first.

    Raises NonStationaryHistory if numPages or the chain tip drifts between pages.
    """
    max_concurrent_pages = _resolve_max_concurrent_pages(max_concurrent_pages)
    first_page = await _fetch_page_checked(provider, identifier, 1)
    txs = await _fetch_remaining_pages(
        provider, identifier, first_page, first_page.num_pages, max_concurrent_pages
    )
    bind_identifier(identifier).info(
        "tx_history_all_fetched", num_pages=first_page.num_pages, tx_count=len(txs)
    )
    return txs
