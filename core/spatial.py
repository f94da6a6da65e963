"""
Spatial and geometry utilities.

Centralizes coordinate validation and great-circle distance calculations
used by the location-history and polyline code.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any


class GeometryService:
    """Authoritative geometry operations for the application."""

    EARTH_RADIUS_KM = 6371.0

    @staticmethod
    def validate_lat_lng(lat: Any, lng: Any) -> tuple[bool, tuple[float, float] | None]:
        """Validate a latitude/longitude pair given in that order."""
        try:
            lat_f = float(lat)
            lng_f = float(lng)
        except (TypeError, ValueError):
            return False, None
        if math.isnan(lat_f) or math.isnan(lng_f):
            return False, None
        if not (-90 <= lat_f <= 90 and -180 <= lng_f <= 180):
            return False, None
        return True, (lat_f, lng_f)

    @staticmethod
    def haversine_distance(
        lat1: float,
        lng1: float,
        lat2: float,
        lng2: float,
        unit: str = "km",
    ) -> float:
        """Calculate the great-circle distance using the Haversine formula."""
        phi1 = math.radians(lat1)
        phi2 = math.radians(lat2)
        dphi = math.radians(lat2 - lat1)
        dlmb = math.radians(lng2 - lng1)
        a = (
            math.sin(dphi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
        )
        distance_km = (
            2 * GeometryService.EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))
        )
        if unit == "km":
            return distance_km
        if unit == "meters":
            return distance_km * 1000.0
        if unit == "miles":
            return distance_km / 1.609344
        msg = "Invalid unit. Use 'meters', 'miles', or 'km'."
        raise ValueError(msg)

    @staticmethod
    def path_length(points: Sequence[tuple[float, float]], unit: str = "km") -> float:
        """Sum the Haversine distance between consecutive (lat, lng) points."""
        total = 0.0
        for (lat1, lng1), (lat2, lng2) in zip(points, points[1:], strict=False):
            total += GeometryService.haversine_distance(lat1, lng1, lat2, lng2, unit)
        return total
