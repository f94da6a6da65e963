import pytest

from trips.aggregations import (
    AggregationReducer,
    empty_analytics,
    format_range_label,
    percentage,
)


def _trip_aggs() -> dict:
    return {
        "trip_stats": {
            "buckets": [
                {"key": ["completed", "paid"], "doc_count": 6},
                {"key": ["completed", "pending"], "doc_count": 2},
                {"key": ["cancelled", "refunded"], "doc_count": 2},
            ]
        },
        "price_stats": {"count": 10, "min": 50.0, "max": 900.0, "avg": 310.5, "sum": 3105.0},
        "price_ranges": {
            "buckets": [
                {"key": "*-100.0", "to": 100.0, "doc_count": 3},
                {"key": "100.0-250.0", "from": 100.0, "to": 250.0, "doc_count": 4},
                {"key": "1000.0-*", "from": 1000.0, "doc_count": 1},
            ]
        },
        "ride_type_breakdown": {
            "buckets": [{"key": "shared", "doc_count": 7}, {"key": "private", "doc_count": 3}]
        },
        "daily_trips": {
            "buckets": [
                {"key_as_string": "2024-06-14", "key": 1718323200000, "doc_count": 4},
                {"key_as_string": "2024-06-15", "key": 1718409600000, "doc_count": 6},
            ]
        },
        "hourly_trips": {
            "buckets": [{"key_as_string": "2024-06-15 09:00", "doc_count": 6}],
        },
        "top_drivers": {
            "buckets": [
                {
                    "key": "d1",
                    "doc_count": 5,
                    "driver_name": {"buckets": [{"key": "Asha", "doc_count": 5}]},
                    "avg_rating": {"value": 4.75},
                    "total_revenue": {"value": 1500.0},
                    "status_breakdown": {
                        "buckets": [
                            {"key": "completed", "doc_count": 4},
                            {"key": "cancelled", "doc_count": 1},
                        ]
                    },
                }
            ]
        },
        "top_routes": {
            "buckets": [
                {
                    "key": ["Airport", "Station"],
                    "doc_count": 3,
                    "avg_price": {"value": 250.0},
                    "total_revenue": {"value": 750.0},
                }
            ]
        },
        "cancellation_analysis": {
            "doc_count": 2,
            "reasons": {"buckets": [{"key": "rider_no_show", "doc_count": 2}]},
            "cancelled_by": {"buckets": [{"key": "driver", "doc_count": 2}]},
        },
        "polyline_coverage": {"doc_count": 8},
    }


def test_percentage_with_zero_total() -> None:
    assert percentage(0, 0) == 0
    assert percentage(5, 0) == 0
    assert percentage(1, 3) == 33.33


@pytest.mark.parametrize(
    ("lower", "upper", "label"),
    [
        (100.0, 250.0, "100-250"),
        (1000.0, None, "1000+"),
        (None, 100.0, "<100"),
        (2.5, 7.5, "2.5-7.5"),
        (None, None, "all"),
    ],
)
def test_range_labels(lower, upper, label) -> None:
    assert format_range_label(lower, upper) == label


def test_reduce_full_tree() -> None:
    summary = AggregationReducer.reduce(_trip_aggs(), total=10)

    assert summary["totalTrips"] == 10
    assert summary["statusBreakdown"] == {"completed": 8, "cancelled": 2}
    assert summary["paymentBreakdown"] == {"paid": 6, "pending": 2, "refunded": 2}
    assert sum(summary["statusBreakdown"].values()) == summary["totalTrips"]
    assert summary["rideTypeBreakdown"] == {"shared": 7, "private": 3}
    assert summary["priceStats"]["avg"] == 310.5
    assert [r["range"] for r in summary["priceRanges"]] == ["<100", "100-250", "1000+"]
    assert summary["dailyTrends"] == [
        {"date": "2024-06-14", "count": 4},
        {"date": "2024-06-15", "count": 6},
    ]
    assert summary["hourlyTrends"] == [{"hour": "2024-06-15 09:00", "count": 6}]
    assert summary["topDrivers"] == [
        {
            "driverId": "d1",
            "driverName": "Asha",
            "tripCount": 5,
            "avgRating": 4.75,
            "totalRevenue": 1500.0,
            "statusBreakdown": {"completed": 4, "cancelled": 1},
        }
    ]
    assert summary["topRoutes"] == [
        {
            "from": "Airport",
            "to": "Station",
            "tripCount": 3,
            "avgPrice": 250.0,
            "totalRevenue": 750.0,
        }
    ]
    assert summary["cancellationAnalysis"] == {
        "totalCancelled": 2,
        "cancellationRate": 20.0,
        "reasons": {"rider_no_show": 2},
        "cancelledBy": {"driver": 2},
    }
    assert summary["polylineCoverage"] == {
        "withPolyline": 8,
        "withoutPolyline": 2,
        "coveragePercentage": 80.0,
    }
    assert summary["completionRate"] == 80.0
    assert summary["cancellationRate"] == 20.0


def test_total_falls_back_to_status_sum() -> None:
    summary = AggregationReducer.reduce(_trip_aggs())
    assert summary["totalTrips"] == 10


def test_empty_aggregations_yield_zero_rates() -> None:
    summary = AggregationReducer.reduce({}, total=0)
    assert summary == empty_analytics()
    assert summary["polylineCoverage"]["coveragePercentage"] == 0
    assert summary["completionRate"] == 0


def test_malformed_section_does_not_break_others() -> None:
    aggs = _trip_aggs()
    aggs["top_drivers"] = {"buckets": [{"key": "d1", "doc_count": 1, "driver_name": 7}]}
    aggs["top_routes"] = {"buckets": [{"key": ["only-one-part"], "doc_count": 1}]}
    aggs["price_ranges"] = "garbage"

    summary = AggregationReducer.reduce(aggs, total=10)

    assert summary["statusBreakdown"] == {"completed": 8, "cancelled": 2}
    assert summary["topRoutes"] == []
    assert summary["priceRanges"] == []
    assert summary["topDrivers"][0]["driverName"] is None


def test_driver_metrics() -> None:
    metrics = AggregationReducer.reduce_driver_metrics(
        {
            "total_trips": {"value": 4},
            "completed_trips": {"doc_count": 3},
            "cancelled_trips": {"doc_count": 1},
            "total_revenue": {"value": 900.0},
            "avg_rating": {"value": None},
            "trip_status_breakdown": {"buckets": [{"key": "completed", "doc_count": 3}]},
        },
        total=4,
    )
    assert metrics["completionRate"] == 75.0
    assert metrics["cancellationRate"] == 25.0
    assert metrics["avgRating"] is None
    assert metrics["statusBreakdown"] == {"completed": 3}
    assert metrics["dailyTrends"] == []


def test_driver_metrics_without_trips() -> None:
    metrics = AggregationReducer.reduce_driver_metrics({}, total=0)
    assert metrics["totalTrips"] == 0
    assert metrics["completionRate"] == 0
    assert metrics["totalRevenue"] == 0.0


def test_polyline_statistics() -> None:
    stats = AggregationReducer.reduce_polyline_statistics(
        {
            "with_polyline": {"doc_count": 3},
            "coverage_by_status": {
                "buckets": [{"key": "completed", "doc_count": 3, "with_polyline": {"doc_count": 3}}]
            },
            "coverage_by_ride_type": {
                "buckets": [{"key": "shared", "doc_count": 4, "with_polyline": {"doc_count": 1}}]
            },
            "daily_coverage": {
                "buckets": [
                    {"key_as_string": "2024-06-15", "doc_count": 0, "with_polyline": {"doc_count": 0}}
                ]
            },
        },
        total=4,
    )
    assert stats["overview"] == {
        "totalTrips": 4,
        "withPolyline": 3,
        "withoutPolyline": 1,
        "coveragePercentage": 75.0,
    }
    assert stats["coverageByStatus"][0]["coveragePercentage"] == 100.0
    assert stats["coverageByRideType"][0]["rideType"] == "shared"
    assert stats["dailyCoverage"][0] == {
        "date": "2024-06-15",
        "totalTrips": 0,
        "withPolyline": 0,
        "withoutPolyline": 0,
        "coveragePercentage": 0,
    }
