"""Elasticsearch query construction for trip and ride-location searches.

Every builder is a pure function of its inputs: the same options always
produce the same query document, independent of how the caller ordered
its keys.
"""

from __future__ import annotations

from typing import Any

from trips.models import FilterOptions
from trips.time_windows import TimeWindow

CREATED_AT_FIELD = "createdAt._seconds"
PRICE_FIELD = "price"
POLYLINE_FIELD = "distanceMatrices.polyline"
# Polyline checks read this keyword sub-field. Under default dynamic mapping it
# has ignore_above: 256, so longer polylines keep no keyword value. Map it with
# an ignore_above that fits full polylines; the clauses below still count an
# unindexed value as present and long enough.
POLYLINE_KEYWORD_FIELD = "distanceMatrices.polyline.keyword"
MIN_POLYLINE_LENGTH = 10

# Exact-match filters, applied in this order.
TERM_FILTER_FIELDS: tuple[tuple[str, str], ...] = (
    ("trip_id", "tripId.keyword"),
    ("ride_id", "rideId.keyword"),
    ("driver_id", "driver.id.keyword"),
    ("rider_id", "rider.id.keyword"),
    ("trip_status", "tripStatus.keyword"),
    ("payment_status", "paymentStatus.keyword"),
    ("ride_type", "rideType.keyword"),
)

PHONE_FIELDS: tuple[str, ...] = (
    "rider.phone.keyword",
    "pickUpPhoneNumber.keyword",
    "dropOffPhoneNumber.keyword",
    "driverPhone.keyword",
)

TEXT_SEARCH_FIELDS: tuple[str, ...] = (
    "rider.name.keyword",
    "driver.name.keyword",
    "from.name.keyword",
    "to.name.keyword",
    "tripId.keyword",
    "rideId.keyword",
)

SORT_FIELDS: dict[str, str] = {
    "createdAt": CREATED_AT_FIELD,
    "startTime": "startTime._seconds",
    "endTime": "endTime._seconds",
    "scheduledTime": "scheduledTime._seconds",
    "price": PRICE_FIELD,
    "tripId": "tripId.keyword",
    "tripStatus": "tripStatus.keyword",
}

PRICE_RANGES: tuple[dict[str, float], ...] = (
    {"to": 100},
    {"from": 100, "to": 250},
    {"from": 250, "to": 500},
    {"from": 500, "to": 1000},
    {"from": 1000},
)

TOP_N = 10

# Bucket keys for multi_terms aggregations, in the order they are requested.
MULTI_TERM_KEYS: dict[str, tuple[str, ...]] = {
    "trip_stats": ("tripStatus", "paymentStatus"),
    "top_routes": ("from", "to"),
}

# createdAt is stored in seconds; date histograms need milliseconds.
_CREATED_AT_MILLIS_SCRIPT = {
    "source": "doc['createdAt._seconds'].value * 1000L",
    "lang": "painless",
}

# Passes when any value is longer than min_length. A document with no keyword
# values only reaches this script through has_polyline_clause, which means its
# polyline exceeded ignore_above.
_POLYLINE_LENGTH_SCRIPT = (
    "if (!doc.containsKey(params.field) || doc[params.field].size() == 0) { return true; }"
    " for (def value : doc[params.field]) {"
    " if (value.length() > params.min_length) { return true; } }"
    " return false;"
)

_DISTANCE_SCRIPT = {
    "init_script": "state.points = [];",
    "map_script": """
        if (doc.containsKey('currentLocation.lat') && doc.containsKey('currentLocation.lng')
                && doc['currentLocation.lat'].size() > 0 && doc['currentLocation.lng'].size() > 0) {
            state.points.add(['lat': doc['currentLocation.lat'].value,
                              'lng': doc['currentLocation.lng'].value,
                              'ts': doc['createdAt._seconds'].value]);
        }
    """,
    "combine_script": "return state.points;",
    "reduce_script": """
        def all_points = [];
        for (s in states) { all_points.addAll(s); }
        all_points.sort((a, b) -> a.ts.compareTo(b.ts));
        def total = 0.0;
        def R = 6371.0;
        for (int i = 1; i < all_points.size(); i++) {
            def p1 = all_points[i - 1];
            def p2 = all_points[i];
            def dLat = Math.toRadians(p2.lat - p1.lat);
            def dLon = Math.toRadians(p2.lng - p1.lng);
            def a = Math.sin(dLat / 2) * Math.sin(dLat / 2)
                + Math.sin(dLon / 2) * Math.sin(dLon / 2)
                * Math.cos(Math.toRadians(p1.lat)) * Math.cos(Math.toRadians(p2.lat));
            total += R * 2 * Math.atan2(Math.sqrt(a), Math.sqrt(1 - a));
        }
        return total;
    """,
}


def _escape_wildcard(value: str) -> str:
    return value.replace("\\", "\\\\").replace("*", "\\*").replace("?", "\\?")


def _range_clause(field: str, gte: Any = None, lte: Any = None) -> dict[str, Any] | None:
    bounds: dict[str, Any] = {}
    if gte is not None:
        bounds["gte"] = gte
    if lte is not None:
        bounds["lte"] = lte
    if not bounds:
        return None
    return {"range": {field: bounds}}


def _date_histogram(interval: dict[str, str], fmt: str) -> dict[str, Any]:
    return {
        "date_histogram": {
            "script": dict(_CREATED_AT_MILLIS_SCRIPT),
            **interval,
            "format": fmt,
            "min_doc_count": 0,
        }
    }


def has_polyline_clause(validate: bool = False) -> dict[str, Any]:
    """
    At least one non-empty route geometry value.

    A trip whose ``distanceMatrices`` mixes empty and non-empty polylines
    counts as having one. The second branch catches values too long for the
    keyword sub-field: the text field holds them but the keyword does not.
    With ``validate``, some value must also be longer than 10 characters.
    """
    clause: dict[str, Any] = {
        "bool": {
            "should": [
                {"regexp": {POLYLINE_KEYWORD_FIELD: ".+"}},
                {
                    "bool": {
                        "filter": [{"exists": {"field": POLYLINE_FIELD}}],
                        "must_not": [{"exists": {"field": POLYLINE_KEYWORD_FIELD}}],
                    }
                },
            ],
            "minimum_should_match": 1,
        }
    }
    if validate:
        clause["bool"]["filter"] = [
            {
                "script": {
                    "script": {
                        "source": _POLYLINE_LENGTH_SCRIPT,
                        "lang": "painless",
                        "params": {
                            "field": POLYLINE_KEYWORD_FIELD,
                            "min_length": MIN_POLYLINE_LENGTH,
                        },
                    }
                }
            }
        ]
    return clause


def missing_polyline_clause() -> dict[str, Any]:
    """No route geometry value, or only empty ones."""
    return {"bool": {"must_not": [has_polyline_clause()]}}


def trip_analytics_aggs() -> dict[str, Any]:
    """Aggregation tree attached to analytics-enabled trip searches."""
    return {
        "trip_stats": {
            "multi_terms": {
                "terms": [
                    {"field": "tripStatus.keyword"},
                    {"field": "paymentStatus.keyword"},
                ],
                "size": 100,
            }
        },
        "price_stats": {"stats": {"field": PRICE_FIELD}},
        "price_ranges": {
            "range": {
                "field": PRICE_FIELD,
                "ranges": [dict(r) for r in PRICE_RANGES],
            }
        },
        "ride_type_breakdown": {"terms": {"field": "rideType.keyword", "size": TOP_N}},
        "daily_trips": _date_histogram({"calendar_interval": "1d"}, "yyyy-MM-dd"),
        "hourly_trips": _date_histogram({"fixed_interval": "1h"}, "yyyy-MM-dd HH:mm"),
        "top_drivers": {
            "terms": {"field": "driver.id.keyword", "size": TOP_N},
            "aggs": {
                "driver_name": {"terms": {"field": "driver.name.keyword", "size": 1}},
                "avg_rating": {"avg": {"field": "driver.rating"}},
                "total_revenue": {"sum": {"field": PRICE_FIELD}},
                "status_breakdown": {
                    "terms": {"field": "tripStatus.keyword", "size": TOP_N}
                },
            },
        },
        "top_routes": {
            "multi_terms": {
                "terms": [
                    {"field": "from.name.keyword"},
                    {"field": "to.name.keyword"},
                ],
                "size": TOP_N,
            },
            "aggs": {
                "avg_price": {"avg": {"field": PRICE_FIELD}},
                "total_revenue": {"sum": {"field": PRICE_FIELD}},
            },
        },
        "cancellation_analysis": {
            "filter": {"term": {"tripStatus.keyword": "cancelled"}},
            "aggs": {
                "reasons": {"terms": {"field": "cancelReason.keyword", "size": TOP_N}},
                "cancelled_by": {
                    "terms": {"field": "canceledBy.keyword", "size": TOP_N}
                },
            },
        },
        "polyline_coverage": {"filter": has_polyline_clause()},
    }


class QueryBuilder:
    """Builds search request bodies for the trip and ride-location indices."""

    @staticmethod
    def sort_clause(sort_by: str, sort_order: str) -> list[dict[str, Any]]:
        primary = SORT_FIELDS.get(sort_by, CREATED_AT_FIELD)
        order = sort_order or "desc"
        sort = [{primary: {"order": order}}]
        if primary != CREATED_AT_FIELD:
            sort.append({CREATED_AT_FIELD: {"order": order}})
        return sort

    @staticmethod
    def filter_clauses(options: FilterOptions) -> tuple[list[dict], list[dict]]:
        """Return (filter, should) clause lists for the given options."""
        filters: list[dict[str, Any]] = []
        should: list[dict[str, Any]] = []

        for option_name, field in TERM_FILTER_FIELDS:
            value = getattr(options, option_name)
            if value is not None and value != "":
                filters.append({"term": {field: value}})

        if options.rider_phone:
            pattern = f"*{_escape_wildcard(options.rider_phone)}*"
            should.extend({"wildcard": {field: pattern}} for field in PHONE_FIELDS)

        time_range = _range_clause(CREATED_AT_FIELD, options.start_time, options.end_time)
        if time_range:
            filters.append(time_range)

        price_range = _range_clause(PRICE_FIELD, options.min_price, options.max_price)
        if price_range:
            filters.append(price_range)

        if options.polyline_required is True:
            filters.append(has_polyline_clause(validate=options.validate_polyline))
        elif options.polyline_required is False:
            filters.append(missing_polyline_clause())

        return filters, should

    @staticmethod
    def _bool_query(filters: list[dict], should: list[dict]) -> dict[str, Any]:
        bool_query: dict[str, Any] = {"filter": filters}
        if should:
            bool_query["should"] = should
            bool_query["minimum_should_match"] = 1
        return {"bool": bool_query}

    @staticmethod
    def build(options: FilterOptions) -> dict[str, Any]:
        """Build the trip search body (hits, sort and optional analytics aggs).

        ``size=0`` yields a stats-only query: aggregations without hits.
        """
        filters, should = QueryBuilder.filter_clauses(options)
        query: dict[str, Any] = {
            "size": options.size,
            "track_total_hits": True,
            "query": QueryBuilder._bool_query(filters, should),
            "sort": QueryBuilder.sort_clause(options.sort_by, options.sort_order),
        }
        if options.include_analytics:
            query["aggs"] = trip_analytics_aggs()
        return query

    @staticmethod
    def build_trip_by_id(trip_id: str) -> dict[str, Any]:
        return {"size": 1, "query": {"term": {"tripId.keyword": trip_id}}}

    @staticmethod
    def build_driver_analytics(
        driver_id: str,
        window: TimeWindow | None = None,
    ) -> dict[str, Any]:
        filters: list[dict[str, Any]] = [{"term": {"driver.id.keyword": driver_id}}]
        if window is not None:
            filters.append(_range_clause(CREATED_AT_FIELD, window.start, window.end))
        return {
            "size": 0,
            "track_total_hits": True,
            "query": {"bool": {"filter": filters}},
            "aggs": {
                "total_trips": {"value_count": {"field": "tripId.keyword"}},
                "completed_trips": {"filter": {"term": {"tripStatus.keyword": "completed"}}},
                "cancelled_trips": {"filter": {"term": {"tripStatus.keyword": "cancelled"}}},
                "total_revenue": {"sum": {"field": PRICE_FIELD}},
                "avg_rating": {"avg": {"field": "driver.rating"}},
                "trip_status_breakdown": {"terms": {"field": "tripStatus.keyword"}},
                "daily_trips": _date_histogram({"calendar_interval": "1d"}, "yyyy-MM-dd"),
            },
        }

    @staticmethod
    def build_polyline_statistics(options: FilterOptions) -> dict[str, Any]:
        """Stats-only query measuring route-geometry coverage."""
        filters, should = QueryBuilder.filter_clauses(options)
        with_polyline = {"with_polyline": {"filter": has_polyline_clause()}}
        return {
            "size": 0,
            "track_total_hits": True,
            "query": QueryBuilder._bool_query(filters, should),
            "aggs": {
                **with_polyline,
                "coverage_by_status": {
                    "terms": {"field": "tripStatus.keyword", "size": 20},
                    "aggs": with_polyline,
                },
                "coverage_by_ride_type": {
                    "terms": {"field": "rideType.keyword", "size": 20},
                    "aggs": with_polyline,
                },
                "daily_coverage": {
                    **_date_histogram({"calendar_interval": "1d"}, "yyyy-MM-dd"),
                    "aggs": with_polyline,
                },
            },
        }

    @staticmethod
    def build_polyline_lookup(trip_id: str) -> dict[str, Any]:
        return {
            "size": 1,
            "query": {"term": {"tripId.keyword": trip_id}},
            "_source": ["tripId", "distanceMatrices"],
        }

    @staticmethod
    def build_text_search(text: str, size: int = 50) -> dict[str, Any]:
        pattern = f"*{_escape_wildcard(text)}*"
        return {
            "size": size,
            "track_total_hits": True,
            "query": {
                "bool": {
                    "should": [{"wildcard": {field: pattern}} for field in TEXT_SEARCH_FIELDS],
                    "minimum_should_match": 1,
                }
            },
            "sort": [{CREATED_AT_FIELD: {"order": "desc"}}],
        }

    @staticmethod
    def build_location_history(
        driver_id: str,
        *,
        start_time: int | None = None,
        end_time: int | None = None,
        size: int = 500,
        calculate_distance: bool = True,
    ) -> dict[str, Any]:
        filters: list[dict[str, Any]] = [{"term": {"driver.id.keyword": driver_id}}]
        time_range = _range_clause(CREATED_AT_FIELD, start_time, end_time)
        if time_range:
            filters.append(time_range)

        query: dict[str, Any] = {
            "size": size,
            "track_total_hits": True,
            "query": {"bool": {"filter": filters}},
            "sort": [{CREATED_AT_FIELD: {"order": "desc"}}],
        }
        if calculate_distance:
            query["aggs"] = {
                "distance_traveled": {"scripted_metric": dict(_DISTANCE_SCRIPT)}
            }
        return query
