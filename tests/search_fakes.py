from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from search.gateway import SearchResponse


@dataclass
class SearchCall:
    index: str
    body: dict[str, Any]
    timeout_ms: int


def hit(source: dict[str, Any] | None, hit_id: str = "doc-1") -> dict[str, Any]:
    result: dict[str, Any] = {"_index": "test", "_id": hit_id}
    if source is not None:
        result["_source"] = source
    return result


def response(
    hits: list[dict[str, Any]] | None = None,
    *,
    total: int | None = None,
    aggregations: dict[str, Any] | None = None,
    took_ms: int = 5,
    timed_out: bool = False,
) -> SearchResponse:
    hits = hits or []
    return SearchResponse(
        hits=hits,
        total=len(hits) if total is None else total,
        aggregations=aggregations or {},
        took_ms=took_ms,
        timed_out=timed_out,
    )


@dataclass
class FakeSearchGateway:
    """Records search calls and replays queued responses or exceptions."""

    responses: list[SearchResponse | Exception] = field(default_factory=list)
    calls: list[SearchCall] = field(default_factory=list)
    default: SearchResponse | None = None

    def queue(self, *items: SearchResponse | Exception) -> None:
        self.responses.extend(items)

    async def search(
        self,
        index: str,
        body: dict[str, Any],
        *,
        timeout_ms: int = 30_000,
    ) -> SearchResponse:
        self.calls.append(SearchCall(index=index, body=body, timeout_ms=timeout_ms))
        if self.responses:
            item = self.responses.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            item = response()
        if isinstance(item, Exception):
            raise item
        return item


class FakeElasticClient:
    """Minimal stand-in for AsyncElasticsearch used by gateway tests."""

    def __init__(self, *results: Any) -> None:
        self._results = list(results)
        self.search_calls: list[dict[str, Any]] = []
        self.option_calls: list[dict[str, Any]] = []
        self.closed = False

    def options(self, **kwargs: Any) -> FakeElasticClient:
        self.option_calls.append(kwargs)
        return self

    async def search(self, **kwargs: Any) -> Any:
        self.search_calls.append(kwargs)
        item = self._results.pop(0)
        if isinstance(item, Exception):
            raise item
        return _Body(item)

    async def close(self) -> None:
        self.closed = True


@dataclass
class _Body:
    body: Any
