"""Reduction of raw aggregation buckets into analytics summaries.

Analytics are best-effort relative to the hit list: each section is reduced
independently, and a malformed section is logged and left at its empty
default instead of failing the whole response.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from core.casting import optional_float, safe_int
from trips.query_builder import MULTI_TERM_KEYS

logger = logging.getLogger(__name__)

_SECTION_ERRORS = (KeyError, TypeError, ValueError, AttributeError, IndexError)


def percentage(part: float, total: float) -> float:
    """Percentage of ``part`` in ``total``, 0 when ``total`` is 0."""
    if not total:
        return 0.0
    return round(part / total * 100, 2)


def format_range_label(lower: Any, upper: Any) -> str:
    """Label a range bucket as ``from-to``, ``from+`` or ``<to``."""
    if lower is not None and upper is not None:
        return f"{_format_bound(lower)}-{_format_bound(upper)}"
    if lower is not None:
        return f"{_format_bound(lower)}+"
    if upper is not None:
        return f"<{_format_bound(upper)}"
    return "all"


def _format_bound(value: Any) -> str:
    number = optional_float(value)
    if number is None:
        return str(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:g}"


def _buckets(agg: Any) -> list[dict[str, Any]]:
    if not isinstance(agg, dict):
        return []
    buckets = agg.get("buckets")
    if isinstance(buckets, list):
        return [b for b in buckets if isinstance(b, dict)]
    return []


def _metric(agg: Any) -> float | None:
    if not isinstance(agg, dict):
        return None
    return optional_float(agg.get("value"))


def _doc_count(agg: Any) -> int:
    if not isinstance(agg, dict):
        return 0
    return safe_int(agg.get("doc_count"))


def terms_breakdown(agg: Any) -> dict[str, int]:
    """Terms buckets as ``{key: doc_count}`` in backend order."""
    return {str(b.get("key")): safe_int(b.get("doc_count")) for b in _buckets(agg)}


def multi_term_keys(name: str, bucket: dict[str, Any]) -> dict[str, Any] | None:
    """Destructure a multi_terms bucket key using the arity registered for ``name``."""
    fields = MULTI_TERM_KEYS[name]
    key = bucket.get("key")
    if not isinstance(key, list) or len(key) != len(fields):
        logger.warning(
            "Skipping %s bucket with key %r; expected %d parts",
            name,
            key,
            len(fields),
        )
        return None
    return dict(zip(fields, key, strict=True))


def histogram_series(agg: Any, label: str) -> list[dict[str, Any]]:
    """Date histogram buckets as ``[{label: ..., "count": n}]`` in backend order."""
    return [
        {label: b.get("key_as_string", b.get("key")), "count": safe_int(b.get("doc_count"))}
        for b in _buckets(agg)
    ]


def empty_cancellation_analysis() -> dict[str, Any]:
    return {
        "totalCancelled": 0,
        "cancellationRate": 0.0,
        "reasons": {},
        "cancelledBy": {},
    }


def empty_analytics() -> dict[str, Any]:
    return {
        "totalTrips": 0,
        "statusBreakdown": {},
        "paymentBreakdown": {},
        "rideTypeBreakdown": {},
        "priceStats": {},
        "priceRanges": [],
        "dailyTrends": [],
        "hourlyTrends": [],
        "topDrivers": [],
        "topRoutes": [],
        "cancellationAnalysis": empty_cancellation_analysis(),
        "completionRate": 0.0,
        "cancellationRate": 0.0,
        "polylineCoverage": {
            "withPolyline": 0,
            "withoutPolyline": 0,
            "coveragePercentage": 0.0,
        },
    }


class AggregationReducer:
    """Turns aggregation responses into fixed-shape analytics dictionaries."""

    @staticmethod
    def _apply(name: str, reducer: Callable[[], None]) -> None:
        try:
            reducer()
        except _SECTION_ERRORS:
            logger.warning("Could not reduce aggregation section '%s'", name, exc_info=True)

    @staticmethod
    def reduce(aggregations: dict[str, Any] | None, total: int | None = None) -> dict[str, Any]:
        """Reduce the trip analytics aggregation tree.

        Args:
            aggregations: ``aggregations`` section of a search response.
            total: Backend hit total; used as the denominator for rates.
                Falls back to the sum of the status breakdown when omitted.

        Returns:
            Dictionary in the analytics summary shape (see ``empty_analytics``).
        """
        aggs = aggregations if isinstance(aggregations, dict) else {}
        summary = empty_analytics()

        def status_payment() -> None:
            for bucket in _buckets(aggs.get("trip_stats")):
                keys = multi_term_keys("trip_stats", bucket)
                if keys is None:
                    continue
                count = safe_int(bucket.get("doc_count"))
                status = str(keys["tripStatus"])
                payment = str(keys["paymentStatus"])
                summary["statusBreakdown"][status] = (
                    summary["statusBreakdown"].get(status, 0) + count
                )
                summary["paymentBreakdown"][payment] = (
                    summary["paymentBreakdown"].get(payment, 0) + count
                )

        def ride_types() -> None:
            summary["rideTypeBreakdown"] = terms_breakdown(aggs.get("ride_type_breakdown"))

        def price_stats() -> None:
            stats = aggs.get("price_stats")
            if isinstance(stats, dict):
                summary["priceStats"] = {
                    "min": stats.get("min"),
                    "max": stats.get("max"),
                    "avg": stats.get("avg"),
                    "sum": stats.get("sum"),
                    "count": stats.get("count"),
                }

        def price_ranges() -> None:
            summary["priceRanges"] = [
                {
                    "range": format_range_label(b.get("from"), b.get("to")),
                    "from": b.get("from"),
                    "to": b.get("to"),
                    "count": safe_int(b.get("doc_count")),
                }
                for b in _buckets(aggs.get("price_ranges"))
            ]

        def trends() -> None:
            summary["dailyTrends"] = histogram_series(aggs.get("daily_trips"), "date")
            summary["hourlyTrends"] = histogram_series(aggs.get("hourly_trips"), "hour")

        def top_drivers() -> None:
            summary["topDrivers"] = [
                AggregationReducer._driver_bucket(b) for b in _buckets(aggs.get("top_drivers"))
            ]

        def top_routes() -> None:
            routes = []
            for bucket in _buckets(aggs.get("top_routes")):
                keys = multi_term_keys("top_routes", bucket)
                if keys is None:
                    continue
                routes.append(
                    {
                        "from": keys["from"],
                        "to": keys["to"],
                        "tripCount": safe_int(bucket.get("doc_count")),
                        "avgPrice": _metric(bucket.get("avg_price")),
                        "totalRevenue": _metric(bucket.get("total_revenue")) or 0.0,
                    }
                )
            summary["topRoutes"] = routes

        for name, reducer in (
            ("trip_stats", status_payment),
            ("ride_type_breakdown", ride_types),
            ("price_stats", price_stats),
            ("price_ranges", price_ranges),
            ("trends", trends),
            ("top_drivers", top_drivers),
            ("top_routes", top_routes),
        ):
            AggregationReducer._apply(name, reducer)

        if total is None:
            total = sum(summary["statusBreakdown"].values())
        summary["totalTrips"] = total

        def cancellations() -> None:
            summary["cancellationAnalysis"] = AggregationReducer._cancellation(
                aggs.get("cancellation_analysis"),
                total,
            )

        def coverage() -> None:
            with_polyline = _doc_count(aggs.get("polyline_coverage"))
            summary["polylineCoverage"] = {
                "withPolyline": with_polyline,
                "withoutPolyline": max(total - with_polyline, 0),
                "coveragePercentage": percentage(with_polyline, total),
            }

        AggregationReducer._apply("cancellation_analysis", cancellations)
        AggregationReducer._apply("polyline_coverage", coverage)

        summary["completionRate"] = percentage(
            summary["statusBreakdown"].get("completed", 0),
            total,
        )
        summary["cancellationRate"] = summary["cancellationAnalysis"]["cancellationRate"]
        return summary

    @staticmethod
    def _driver_bucket(bucket: dict[str, Any]) -> dict[str, Any]:
        names = _buckets(bucket.get("driver_name"))
        return {
            "driverId": bucket.get("key"),
            "driverName": names[0].get("key") if names else None,
            "tripCount": safe_int(bucket.get("doc_count")),
            "avgRating": _metric(bucket.get("avg_rating")),
            "totalRevenue": _metric(bucket.get("total_revenue")) or 0.0,
            "statusBreakdown": terms_breakdown(bucket.get("status_breakdown")),
        }

    @staticmethod
    def _cancellation(agg: Any, total: int) -> dict[str, Any]:
        result = empty_cancellation_analysis()
        if not isinstance(agg, dict):
            return result
        cancelled = _doc_count(agg)
        result["totalCancelled"] = cancelled
        result["cancellationRate"] = percentage(cancelled, total)
        result["reasons"] = terms_breakdown(agg.get("reasons"))
        result["cancelledBy"] = terms_breakdown(agg.get("cancelled_by"))
        return result

    @staticmethod
    def reduce_driver_metrics(
        aggregations: dict[str, Any] | None,
        total: int | None = None,
    ) -> dict[str, Any]:
        """Reduce the per-driver performance aggregations."""
        aggs = aggregations if isinstance(aggregations, dict) else {}
        value_count = _metric(aggs.get("total_trips"))
        total_trips = int(value_count) if value_count is not None else (total or 0)
        completed = _doc_count(aggs.get("completed_trips"))
        cancelled = _doc_count(aggs.get("cancelled_trips"))
        return {
            "totalTrips": total_trips,
            "completedTrips": completed,
            "cancelledTrips": cancelled,
            "completionRate": percentage(completed, total_trips),
            "cancellationRate": percentage(cancelled, total_trips),
            "totalRevenue": _metric(aggs.get("total_revenue")) or 0.0,
            "avgRating": _metric(aggs.get("avg_rating")),
            "statusBreakdown": terms_breakdown(aggs.get("trip_status_breakdown")),
            "dailyTrends": histogram_series(aggs.get("daily_trips"), "date"),
        }

    @staticmethod
    def _coverage_row(label: str, key: Any, bucket: dict[str, Any]) -> dict[str, Any]:
        total = safe_int(bucket.get("doc_count"))
        with_polyline = _doc_count(bucket.get("with_polyline"))
        return {
            label: key,
            "totalTrips": total,
            "withPolyline": with_polyline,
            "withoutPolyline": max(total - with_polyline, 0),
            "coveragePercentage": percentage(with_polyline, total),
        }

    @staticmethod
    def reduce_polyline_statistics(
        aggregations: dict[str, Any] | None,
        total: int,
    ) -> dict[str, Any]:
        """Reduce the route-geometry coverage aggregations."""
        aggs = aggregations if isinstance(aggregations, dict) else {}
        with_polyline = _doc_count(aggs.get("with_polyline"))
        row = AggregationReducer._coverage_row
        return {
            "overview": {
                "totalTrips": total,
                "withPolyline": with_polyline,
                "withoutPolyline": max(total - with_polyline, 0),
                "coveragePercentage": percentage(with_polyline, total),
            },
            "coverageByStatus": [
                row("status", b.get("key"), b) for b in _buckets(aggs.get("coverage_by_status"))
            ],
            "coverageByRideType": [
                row("rideType", b.get("key"), b)
                for b in _buckets(aggs.get("coverage_by_ride_type"))
            ],
            "dailyCoverage": [
                row("date", b.get("key_as_string", b.get("key")), b)
                for b in _buckets(aggs.get("daily_coverage"))
            ],
        }
