"""
Chronik tx history provider — paginated history over HTTP.

Responsibilities:
- Define the HistoryProvider protocol the reconciler consumes.
- Fetch one page of an address's tx history from the Chronik HTTP API. Chronik
  answers in protobuf (application/x-protobuf), decoded by chronik/proto.py;
  JSON bodies (application/json, e.g. from a JSON-serving proxy) are accepted too.
  Any other content type is rejected.
- Optionally read the chain tip alongside each page as a consistency token.
- Surface transport, status and payload errors as HistoryFetchFailed. No retries;
  retry policy belongs to the caller.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol, runtime_checkable

import httpx

from alias_server.alias_logging import get_logger
from alias_server.chronik import proto
from alias_server.chronik.models import HistoryPage
from alias_server.core.exceptions import HistoryFetchFailed

logger = get_logger(__name__)


@runtime_checkable
class HistoryProvider(Protocol):
    """
    Paginated, newest-first tx history source.

    Page indexes are 1-based. Every page except the last holds exactly the
    provider's page size; num_pages should stay stable within one reconciliation.
    """

    async def fetch_page(self, identifier: str, page_index: int) -> HistoryPage:
        ...


class ChronikHistoryProvider:
    """
    HistoryProvider backed by a Chronik indexer.

    Queries GET {chronik_url}/script/p2pkh/{identifier}/history with Chronik's
    0-based `page` and `page_size`. With track_tip, GET {chronik_url}/blockchain-info
    is read concurrently with each page and its tipHash stored on the HistoryPage.
    Bodies are decoded by Content-Type: protobuf (Chronik's native format) or JSON.
    """

    def __init__(
        self,
        chronik_url: str,
        *,
        page_size: int,
        timeout_sec: float = 10.0,
        track_tip: bool = False,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            chronik_url: Chronik base URL (e.g. https://chronik.be.cash/xec).
            page_size: Txs per page; must match the reconciler's page size.
            timeout_sec: HTTP timeout per request; ignored when client is given.
            track_tip: Attach the chain tip hash to every fetched page.
            client: Optional pre-built AsyncClient (closed by its owner, not by us).
        """
        if not chronik_url.strip():
            raise ValueError("chronik_url must be non-empty")
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        if timeout_sec <= 0:
            raise ValueError("timeout_sec must be positive")

        self._base_url = chronik_url.strip().rstrip("/")
        self._page_size = page_size
        self._timeout = timeout_sec
        self._track_tip = track_tip
        self._client = client
        self._owns_client = client is None

    @property
    def page_size(self) -> int:
        return self._page_size

    async def __aenter__(self) -> "ChronikHistoryProvider":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this provider created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
            self._owns_client = True
        return self._client

    async def fetch_page(self, identifier: str, page_index: int) -> HistoryPage:
        """Fetch one 1-based page of history for identifier; raise HistoryFetchFailed on any failure."""
        if page_index < 1:
            raise ValueError("page_index is 1-based and must be at least 1")
        try:
            if self._track_tip:
                body, tip_hash = await asyncio.gather(
                    self._get_history(identifier, page_index),
                    self._get_tip_hash(),
                )
            else:
                body = await self._get_history(identifier, page_index)
                tip_hash = None
            page = HistoryPage.from_response(body, tip_hash=tip_hash)
        except httpx.HTTPError as e:
            logger.warning(
                "chronik_history_fetch_failed",
                identifier=identifier,
                page_index=page_index,
                error=str(e),
            )
            raise HistoryFetchFailed(page_index, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            logger.warning(
                "chronik_history_bad_response",
                identifier=identifier,
                page_index=page_index,
                error=str(e),
            )
            raise HistoryFetchFailed(page_index, f"invalid response: {e}") from e

        logger.debug(
            "chronik_history_page_fetched",
            identifier=identifier,
            page_index=page_index,
            tx_count=len(page.txs),
            num_pages=page.num_pages,
        )
        return page

    async def _get_history(self, identifier: str, page_index: int) -> Any:
        resp = await self._get_client().get(
            f"{self._base_url}/script/p2pkh/{identifier}/history",
            params={"page": page_index - 1, "page_size": self._page_size},
        )
        resp.raise_for_status()
        return _decode_body(resp, proto.decode_tx_history_page)

    async def _get_tip_hash(self) -> str:
        resp = await self._get_client().get(f"{self._base_url}/blockchain-info")
        resp.raise_for_status()
        data = _decode_body(resp, proto.decode_blockchain_info)
        tip_hash = data.get("tipHash") if isinstance(data, dict) else None
        if not isinstance(tip_hash, str) or not tip_hash:
            raise ValueError("blockchain-info response has no tipHash")
        return tip_hash


def _decode_body(resp: httpx.Response, decode_proto: Callable[[bytes], dict[str, Any]]) -> Any:
    """Decode a protobuf or JSON response body; raise ValueError for anything else."""
    content_type = resp.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type in ("application/x-protobuf", "application/protobuf"):
        return decode_proto(resp.content)
    if content_type == "application/json":
        return resp.json()
    raise ValueError(f"unexpected content-type {content_type or 'none'!r}")
