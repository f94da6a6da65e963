"""Ride-location history lookups with route reconstruction."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from config import RIDE_LOCATION_INDEX, SEARCH_TIMEOUT_MS
from core.api import service_result
from core.casting import optional_float
from core.exceptions import ValidationError
from search.gateway import SearchGateway
from trips.models import LocationHistoryOptions
from trips.polyline_analyzer import PolylineAnalyzer
from trips.projector import project_location
from trips.query_builder import QueryBuilder
from trips.time_windows import SUPPORTED_TOKENS, TimeWindow, TimeWindowResolver

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_RANGE = "last24h"


class RideLocationService:
    """Driver GPS history from the ride-location index."""

    def __init__(
        self,
        gateway: SearchGateway,
        *,
        index: str = RIDE_LOCATION_INDEX,
        resolver: TimeWindowResolver | None = None,
        analyzer: PolylineAnalyzer | None = None,
        search_timeout_ms: int = SEARCH_TIMEOUT_MS,
    ) -> None:
        self.gateway = gateway
        self.index = index
        self.resolver = resolver or TimeWindowResolver()
        self.analyzer = analyzer or PolylineAnalyzer()
        self.search_timeout_ms = search_timeout_ms

    @staticmethod
    def _require_driver(driver_id: Any) -> str:
        if not isinstance(driver_id, str) or not driver_id.strip():
            msg = "driverId is required"
            raise ValidationError(msg)
        return driver_id.strip()

    @staticmethod
    def _windowed(
        options: LocationHistoryOptions | dict[str, Any] | None,
        window: TimeWindow,
    ) -> LocationHistoryOptions:
        base = LocationHistoryOptions.parse(options)
        return LocationHistoryOptions.parse(
            base.model_copy(update={"start_time": window.start, "end_time": window.end}),
        )

    async def _fetch(
        self,
        driver_id: Any,
        options: LocationHistoryOptions | dict[str, Any] | None,
    ) -> dict[str, Any]:
        driver_id = self._require_driver(driver_id)
        parsed = LocationHistoryOptions.parse(options)
        body = QueryBuilder.build_location_history(
            driver_id,
            start_time=parsed.start_time,
            end_time=parsed.end_time,
            size=parsed.size,
            calculate_distance=parsed.calculate_distance,
        )
        logger.debug("Executing location query on %s: %s", self.index, json.dumps(body))
        response = await self.gateway.search(
            self.index,
            body,
            timeout_ms=self.search_timeout_ms,
        )

        records = [project_location(hit) for hit in response.hits]
        trace = self.analyzer.generate(records)
        result: dict[str, Any] = {
            "driverId": driver_id,
            "totalRecords": response.total,
            "recordsReturned": len(records),
            "locations": [r.model_dump() for r in records],
            "polyline": trace.polyline,
            "highAccuracyDistanceKm": round(trace.distance_km, 3),
            "highAccuracyCount": trace.high_accuracy_count,
            "lowAccuracyCount": trace.low_accuracy_count,
            "query": {"took": response.took_ms, "timedOut": response.timed_out},
        }

        if parsed.calculate_distance:
            distance = response.aggregations.get("distance_traveled")
            value = optional_float(distance.get("value")) if isinstance(distance, dict) else None
            if value is not None:
                result["totalDistanceKm"] = round(value, 3)

        logger.info(
            "Fetched %d of %d location records for driver %s",
            len(records),
            response.total,
            driver_id,
        )
        return result

    @service_result(logger)
    async def fetch_ride_location_history(
        self,
        driver_id: str,
        options: LocationHistoryOptions | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Location history for a driver, newest first.

        Returns:
            ``{driverId, totalRecords, recordsReturned, locations, polyline,
            highAccuracyDistanceKm, highAccuracyCount, lowAccuracyCount, query}``
            plus ``totalDistanceKm`` when the backend computed one.
        """
        return await self._fetch(driver_id, options)

    @service_result(logger)
    async def get_recent_ride_location_history(
        self,
        driver_id: str,
        hours_back: float = 24,
        options: LocationHistoryOptions | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        self._require_driver(driver_id)
        window = self.resolver.recent(hours_back, "hours")
        return await self._fetch(driver_id, self._windowed(options, window))

    @service_result(logger)
    async def get_ride_location_history_by_time_range(
        self,
        driver_id: str,
        start_date: str | datetime,
        end_date: str | datetime,
        options: LocationHistoryOptions | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        self._require_driver(driver_id)
        window = self.resolver.from_dates(start_date, end_date)
        return await self._fetch(driver_id, self._windowed(options, window))

    @service_result(logger)
    async def search_history(
        self,
        driver_id: str,
        time_range: str | None = DEFAULT_HISTORY_RANGE,
        custom_start: str | None = None,
        custom_end: str | None = None,
        record_limit: int = 500,
    ) -> dict[str, Any]:
        """Dispatch a range token to a history lookup.

        Unsupported tokens fall back to the last 24 hours. Custom ranges are
        not capped in length here.
        """
        self._require_driver(driver_id)
        token = time_range or DEFAULT_HISTORY_RANGE
        if token not in SUPPORTED_TOKENS:
            logger.debug("Unsupported history range '%s'; using %s", token, DEFAULT_HISTORY_RANGE)
            token = DEFAULT_HISTORY_RANGE
        window = self.resolver.resolve(token, custom_start, custom_end)
        return await self._fetch(
            driver_id,
            self._windowed({"size": record_limit}, window),
        )


__all__ = ["DEFAULT_HISTORY_RANGE", "RideLocationService"]
