"""Trip services module."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trips.services.ride_location_service import RideLocationService
    from trips.services.trip_analysis_service import TripAnalysisService

__all__ = ("RideLocationService", "TripAnalysisService")


def __getattr__(name: str):
    if name == "RideLocationService":
        from trips.services.ride_location_service import RideLocationService

        return RideLocationService
    if name == "TripAnalysisService":
        from trips.services.trip_analysis_service import TripAnalysisService

        return TripAnalysisService
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
