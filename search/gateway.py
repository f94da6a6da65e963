"""
Search backend gateway.

Defines the contract the analytics services use to run queries, plus an
Elasticsearch-backed implementation. Services receive a gateway instance
explicitly; nothing here is a module-level client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from elasticsearch import (
    ApiError,
    AsyncElasticsearch,
    ConnectionTimeout,
    TransportError,
)

from config import (
    ELASTIC_CLOUD_ID,
    ELASTIC_PASSWORD,
    ELASTIC_URL,
    ELASTIC_USERNAME,
    SEARCH_MAX_RETRIES,
    SEARCH_TIMEOUT_MS,
)
from core.exceptions import SearchBackendError, SearchTimeoutError
from core.retry import retry_async

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResponse:
    """Raw search result: hits in backend order plus aggregation buckets."""

    hits: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    aggregations: dict[str, Any] = field(default_factory=dict)
    took_ms: int = 0
    timed_out: bool = False

    @classmethod
    def from_body(cls, body: Any) -> SearchResponse:
        """Parse an Elasticsearch search response body.

        Raises:
            SearchBackendError: If the body lacks a usable ``hits`` section.
        """
        if not isinstance(body, dict):
            msg = "Unexpected response format from search backend"
            raise SearchBackendError(msg, {"type": type(body).__name__})

        hits_section = body.get("hits")
        if not isinstance(hits_section, dict):
            msg = "Search response is missing the hits section"
            raise SearchBackendError(msg, {"keys": sorted(body)})

        raw_hits = hits_section.get("hits") or []
        if not isinstance(raw_hits, list):
            msg = "Search response hits are not a list"
            raise SearchBackendError(msg)

        total_value = hits_section.get("total")
        if isinstance(total_value, dict):
            total_value = total_value.get("value")
        try:
            total = int(total_value) if total_value is not None else len(raw_hits)
        except (TypeError, ValueError):
            total = len(raw_hits)

        aggregations = body.get("aggregations")
        if not isinstance(aggregations, dict):
            aggregations = {}

        return cls(
            hits=raw_hits,
            total=total,
            aggregations=aggregations,
            took_ms=int(body.get("took") or 0),
            timed_out=bool(body.get("timed_out", False)),
        )


class SearchGateway(Protocol):
    """Anything that can execute a query body against a named index."""

    async def search(
        self,
        index: str,
        body: dict[str, Any],
        *,
        timeout_ms: int = SEARCH_TIMEOUT_MS,
    ) -> SearchResponse: ...


class ElasticsearchGateway:
    """SearchGateway backed by ``AsyncElasticsearch``."""

    def __init__(
        self,
        client: AsyncElasticsearch,
        *,
        max_retries: int = SEARCH_MAX_RETRIES,
        retry_delay: float = 0.5,
    ) -> None:
        self._client = client
        self._max_retries = max(0, max_retries)
        self._retry_delay = retry_delay

    async def search(
        self,
        index: str,
        body: dict[str, Any],
        *,
        timeout_ms: int = SEARCH_TIMEOUT_MS,
    ) -> SearchResponse:
        timeout_s = timeout_ms / 1000.0

        @retry_async(max_retries=self._max_retries, retry_delay=self._retry_delay)
        async def _execute() -> Any:
            response = await self._client.options(request_timeout=timeout_s).search(
                index=index,
                **body,
            )
            return response.body

        try:
            raw = await _execute()
        except ConnectionTimeout as e:
            msg = f"Search on {index} timed out after {timeout_ms} ms"
            raise SearchTimeoutError(msg, {"index": index}) from e
        except ApiError as e:
            msg = f"Search on {index} failed: {e.message}"
            raise SearchBackendError(
                msg,
                {"index": index, "status": e.meta.status},
            ) from e
        except TransportError as e:
            msg = f"Search on {index} failed: {e}"
            raise SearchBackendError(msg, {"index": index}) from e

        response = SearchResponse.from_body(raw)
        if response.timed_out:
            logger.warning("Search on %s returned partial results (timed_out)", index)
        logger.debug(
            "Search on %s took %d ms, %d total hits",
            index,
            response.took_ms,
            response.total,
        )
        return response

    async def close(self) -> None:
        await self._client.close()


def build_elasticsearch_gateway() -> ElasticsearchGateway:
    """Construct a gateway from environment configuration."""
    basic_auth = None
    if ELASTIC_USERNAME and ELASTIC_PASSWORD:
        basic_auth = (ELASTIC_USERNAME, ELASTIC_PASSWORD)

    if ELASTIC_CLOUD_ID:
        client = AsyncElasticsearch(cloud_id=ELASTIC_CLOUD_ID, basic_auth=basic_auth)
    else:
        client = AsyncElasticsearch(hosts=[ELASTIC_URL], basic_auth=basic_auth)
    # Retries are handled by the gateway so the count stays in one place.
    client = client.options(max_retries=0)
    return ElasticsearchGateway(client)
