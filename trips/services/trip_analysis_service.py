"""Business logic for trip search, analytics and polyline auditing."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import Any

from config import (
    ANALYTICS_TIMEOUT_MS,
    POLYLINE_VALIDATION_CONCURRENCY,
    QUERY_CACHE_TTL_MS,
    SEARCH_TIMEOUT_MS,
    TRIPS_INDEX,
)
from core.api import ServiceResult, service_result
from core.cache import QueryCache, make_cache_key
from core.exceptions import (
    ResourceNotFoundError,
    RideInsightsError,
    ValidationError,
)
from search.gateway import SearchGateway, SearchResponse
from trips.aggregations import AggregationReducer
from trips.models import MAX_RESULT_SIZE, FilterOptions, PolylineValidation
from trips.polyline_analyzer import PolylineAnalyzer
from trips.projector import hit_source, project_trip
from trips.query_builder import QueryBuilder
from trips.time_windows import TimeWindow, TimeWindowResolver

logger = logging.getLogger(__name__)

MAX_BULK_VALIDATION_IDS = 100
_WINDOW_KEYS = ("timeRange", "customStart", "customEnd")


def _require_id(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        msg = f"{name} is required"
        raise ValidationError(msg)
    return value.strip()


class TripAnalysisService:
    """Entry points for trip analytics over the trips index.

    Every public coroutine returns a ServiceResult; failures never escape as
    exceptions except for cache corruption.
    """

    def __init__(
        self,
        gateway: SearchGateway,
        *,
        index: str = TRIPS_INDEX,
        cache: QueryCache | None = None,
        resolver: TimeWindowResolver | None = None,
        analyzer: PolylineAnalyzer | None = None,
        search_timeout_ms: int = SEARCH_TIMEOUT_MS,
        analytics_timeout_ms: int = ANALYTICS_TIMEOUT_MS,
        validation_concurrency: int = POLYLINE_VALIDATION_CONCURRENCY,
    ) -> None:
        self.gateway = gateway
        self.index = index
        self.cache = cache if cache is not None else QueryCache(ttl_ms=QUERY_CACHE_TTL_MS)
        self.resolver = resolver or TimeWindowResolver()
        self.analyzer = analyzer or PolylineAnalyzer()
        self.search_timeout_ms = search_timeout_ms
        self.analytics_timeout_ms = analytics_timeout_ms
        self.validation_concurrency = max(1, validation_concurrency)

    # --- helpers ---

    def _resolve_window(
        self,
        options: FilterOptions,
        *,
        enforce_max_span: bool,
    ) -> FilterOptions:
        """Replace a time-range token with concrete start/end seconds."""
        if not options.time_range:
            return options
        window = self.resolver.resolve(
            options.time_range,
            options.custom_start,
            options.custom_end,
            enforce_max_span=enforce_max_span,
        )
        return options.model_copy(update={"start_time": window.start, "end_time": window.end})

    @staticmethod
    def _cache_key(prefix: str, resolved: FilterOptions) -> str:
        """Key on the resolved window so a token like ``today`` never outlives its day."""
        payload = resolved.canonical()
        for key in _WINDOW_KEYS:
            payload.pop(key, None)
        return make_cache_key(prefix, payload)

    @staticmethod
    def _with_window(
        options: FilterOptions | dict[str, Any] | None,
        window: TimeWindow,
    ) -> FilterOptions:
        base = FilterOptions.parse(options).canonical()
        for key in _WINDOW_KEYS:
            base.pop(key, None)
        base["startTime"] = window.start
        base["endTime"] = window.end
        return FilterOptions.parse(base)

    def _trip_dict(self, hit: dict[str, Any]) -> dict[str, Any]:
        record = project_trip(hit)
        metrics = self.analyzer.route_metrics(hit_source(hit))
        return record.model_copy(update=metrics).to_dict()

    def _shape_trip_response(
        self,
        response: SearchResponse,
        *,
        include_analytics: bool,
    ) -> dict[str, Any]:
        trips = [self._trip_dict(hit) for hit in response.hits]
        analytics = (
            AggregationReducer.reduce(response.aggregations, response.total)
            if include_analytics
            else None
        )
        logger.info(
            "Trip search returned %d of %d trips in %d ms",
            len(trips),
            response.total,
            response.took_ms,
        )
        return {
            "totalTrips": response.total,
            "tripsReturned": len(trips),
            "trips": trips,
            "analytics": analytics,
            "query": {"took": response.took_ms, "timedOut": response.timed_out},
        }

    async def _search(self, body: dict[str, Any], timeout_ms: int) -> SearchResponse:
        logger.debug("Executing trip query on %s: %s", self.index, json.dumps(body, default=str))
        return await self.gateway.search(self.index, body, timeout_ms=timeout_ms)

    async def _fetch_trips(self, options: FilterOptions | dict[str, Any] | None) -> dict[str, Any]:
        parsed = FilterOptions.parse(options)
        resolved = self._resolve_window(parsed, enforce_max_span=True)
        resolved.check_ranges()

        async def compute() -> dict[str, Any]:
            body = QueryBuilder.build(resolved)
            timeout = (
                self.analytics_timeout_ms if resolved.include_analytics else self.search_timeout_ms
            )
            response = await self._search(body, timeout)
            return self._shape_trip_response(
                response,
                include_analytics=resolved.include_analytics,
            )

        key = self._cache_key("trips", resolved)
        return await self.cache.get_or_compute(key, compute)

    async def _validate_one(self, trip_id: str) -> PolylineValidation:
        response = await self._search(
            QueryBuilder.build_polyline_lookup(trip_id),
            self.search_timeout_ms,
        )
        if not response.hits:
            msg = f"Trip with ID {trip_id} not found"
            raise ResourceNotFoundError(msg, {"tripId": trip_id})
        return self.analyzer.validate(trip_id, hit_source(response.hits[0]))

    async def _validate_isolated(
        self,
        trip_id: str,
        semaphore: asyncio.Semaphore,
    ) -> PolylineValidation:
        async with semaphore:
            try:
                return await self._validate_one(trip_id)
            except RideInsightsError as e:
                logger.warning("Polyline validation failed for %s: %s", trip_id, e.message)
                return PolylineValidation(tripId=trip_id, error=e.message)

    # --- entry points ---

    @service_result(logger)
    async def fetch_trips(
        self,
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Search trips with filters, sorting and optional analytics.

        Returns:
            ``{totalTrips, tripsReturned, trips, analytics, query}``
        """
        return await self._fetch_trips(options)

    @service_result(logger)
    async def get_trip_by_id(self, trip_id: str) -> dict[str, Any]:
        trip_id = _require_id(trip_id, "tripId")
        response = await self._search(
            QueryBuilder.build_trip_by_id(trip_id),
            self.search_timeout_ms,
        )
        if not response.hits:
            msg = f"Trip with ID {trip_id} not found"
            raise ResourceNotFoundError(msg, {"tripId": trip_id})
        return self._trip_dict(response.hits[0])

    @service_result(logger)
    async def get_driver_analytics(
        self,
        driver_id: str,
        time_range: str | None = None,
        custom_start: str | None = None,
        custom_end: str | None = None,
    ) -> dict[str, Any]:
        """Performance metrics for one driver, optionally within a time window."""
        driver_id = _require_id(driver_id, "driverId")
        window = (
            self.resolver.resolve(time_range, custom_start, custom_end)
            if time_range
            else None
        )
        response = await self._search(
            QueryBuilder.build_driver_analytics(driver_id, window),
            self.analytics_timeout_ms,
        )
        return {
            "driverId": driver_id,
            "analytics": AggregationReducer.reduce_driver_metrics(
                response.aggregations,
                response.total,
            ),
        }

    @service_result(logger)
    async def get_polyline_statistics(
        self,
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Route-geometry coverage overall, by status, by ride type and by day."""
        parsed = FilterOptions.parse(options)
        resolved = self._resolve_window(parsed, enforce_max_span=False)
        resolved.check_ranges()

        async def compute() -> dict[str, Any]:
            response = await self._search(
                QueryBuilder.build_polyline_statistics(resolved),
                self.analytics_timeout_ms,
            )
            return AggregationReducer.reduce_polyline_statistics(
                response.aggregations,
                response.total,
            )

        key = self._cache_key("polyline_stats", resolved)
        return await self.cache.get_or_compute(key, compute)

    @service_result(logger)
    async def validate_trip_polyline(self, trip_id: str) -> dict[str, Any]:
        trip_id = _require_id(trip_id, "tripId")
        validation = await self._validate_one(trip_id)
        return validation.model_dump()

    @service_result(logger)
    async def bulk_validate_polylines(self, trip_ids: list[str]) -> dict[str, Any]:
        """
        Validate polylines for up to 100 trips.

        Results keep the input order. A lookup failure for one id is recorded
        in that id's slot and does not abort the batch.
        """
        if not isinstance(trip_ids, list) or not trip_ids:
            msg = "tripIds must be a non-empty list"
            raise ValidationError(msg)
        if len(trip_ids) > MAX_BULK_VALIDATION_IDS:
            msg = f"At most {MAX_BULK_VALIDATION_IDS} trip ids can be validated at once"
            raise ValidationError(msg, {"count": len(trip_ids)})
        ids = [_require_id(trip_id, "tripId") for trip_id in trip_ids]

        semaphore = asyncio.Semaphore(self.validation_concurrency)
        validations = await asyncio.gather(
            *(self._validate_isolated(trip_id, semaphore) for trip_id in ids)
        )
        summary = self.analyzer.summarize(validations)
        logger.info(
            "Validated %d polylines: %d valid, %d invalid, %d missing, %d errors",
            summary.totalChecked,
            summary.valid,
            summary.invalid,
            summary.missing,
            summary.errors,
        )
        return {
            "summary": summary.model_dump(),
            "validations": [v.model_dump() for v in validations],
        }

    @service_result(logger)
    async def get_trips_by_date_range(
        self,
        start_date: str | datetime,
        end_date: str | datetime,
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        window = self.resolver.from_dates(start_date, end_date, enforce_max_span=True)
        return await self._fetch_trips(self._with_window(options, window))

    @service_result(logger)
    async def get_recent_trips(
        self,
        time_value: float = 24,
        time_unit: str = "hours",
        options: FilterOptions | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Trips from the last N hours, days or weeks."""
        window = self.resolver.recent(time_value, time_unit)
        return await self._fetch_trips(self._with_window(options, window))

    @service_result(logger)
    async def search_trips(self, search_text: str, size: int = 50) -> dict[str, Any]:
        """Substring search over rider/driver names, places and ids."""
        if not isinstance(search_text, str) or not search_text.strip():
            msg = "Search text is required"
            raise ValidationError(msg)
        if not 1 <= size <= MAX_RESULT_SIZE:
            msg = f"size must be between 1 and {MAX_RESULT_SIZE}"
            raise ValidationError(msg, {"size": size})
        response = await self._search(
            QueryBuilder.build_text_search(search_text.strip(), size),
            self.search_timeout_ms,
        )
        return self._shape_trip_response(response, include_analytics=True)


__all__ = ["ServiceResult", "TripAnalysisService"]
