"""Route geometry analysis for trips and ride-location history.

Two directions are covered here:

- Trips carry encoded polylines under ``distanceMatrices[].polyline``; those
  are checked for presence and structural validity.
- Ride-location history is a stream of GPS samples; the accurate ones are
  turned into an encoded polyline and a Haversine path length.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from core.casting import optional_float
from core.polyline import encode_polyline, estimate_point_count
from core.spatial import GeometryService
from date_utils import document_timestamp_seconds
from trips.models import (
    PolylineValidation,
    PolylineValidationSummary,
    RideLocationRecord,
)

logger = logging.getLogger(__name__)

# Samples reporting accuracy at or above this radius are treated as noise.
ACCURACY_THRESHOLD = 500
MIN_POLYLINE_LENGTH = 10

# The first character is checked on its own; the alphabet check covers the rest,
# so each issue names a distinct defect.
_FIRST_CHAR = re.compile(r"^[?-~]")
_ALPHABET = re.compile(r"[?-~]*")

ISSUE_MISSING = "missing_polyline"
ISSUE_TOO_SHORT = "too_short"
ISSUE_BAD_START = "invalid_start_character"
ISSUE_BAD_CHARS = "invalid_characters"


@dataclass(frozen=True)
class LocationSample:
    lat: float
    lng: float
    accuracy: float | None
    timestamp: float


@dataclass
class RouteTrace:
    """Polyline and distance generated from location samples."""

    polyline: str = ""
    distance_km: float = 0.0
    point_count: int = 0
    high_accuracy_count: int = 0
    low_accuracy_count: int = 0
    skipped_count: int = 0
    points: list[tuple[float, float]] = field(default_factory=list)


def extract_polylines(source: Any) -> list[str]:
    """Non-empty polyline strings from a trip document, in array order."""
    if not isinstance(source, dict):
        return []
    matrices = source.get("distanceMatrices")
    if isinstance(matrices, dict):
        matrices = [matrices]
    if not isinstance(matrices, list):
        return []
    polylines = []
    for matrix in matrices:
        if not isinstance(matrix, dict):
            continue
        value = matrix.get("polyline")
        if isinstance(value, str) and value:
            polylines.append(value)
    return polylines


class PolylineAnalyzer:
    """Presence, validation and generation of encoded polylines."""

    def __init__(self, accuracy_threshold: float = ACCURACY_THRESHOLD) -> None:
        self.accuracy_threshold = accuracy_threshold

    # --- trip route geometry ---

    @staticmethod
    def has_polyline(source: Any) -> bool:
        return bool(extract_polylines(source))

    @staticmethod
    def route_metrics(source: Any) -> dict[str, Any]:
        polylines = extract_polylines(source)
        return {
            "hasPolyline": bool(polylines),
            "polylineLength": sum(len(p) for p in polylines),
            "estimatedPoints": sum(estimate_point_count(p) for p in polylines),
        }

    @staticmethod
    def check_polyline(encoded: str) -> list[str]:
        """Structural issues for one encoded polyline; empty means valid."""
        issues = []
        if len(encoded) <= MIN_POLYLINE_LENGTH:
            issues.append(ISSUE_TOO_SHORT)
        if not _FIRST_CHAR.match(encoded):
            issues.append(ISSUE_BAD_START)
        if not _ALPHABET.fullmatch(encoded[1:]):
            issues.append(ISSUE_BAD_CHARS)
        return issues

    @staticmethod
    def validate(trip_id: str, source: Any) -> PolylineValidation:
        """Validate every polyline attached to a trip document."""
        polylines = extract_polylines(source)
        if not polylines:
            return PolylineValidation(
                tripId=trip_id,
                hasPolyline=False,
                isValid=False,
                issues=[ISSUE_MISSING],
            )

        issues: list[str] = []
        for index, encoded in enumerate(polylines):
            for issue in PolylineAnalyzer.check_polyline(encoded):
                issues.append(issue if len(polylines) == 1 else f"{issue}[{index}]")

        return PolylineValidation(
            tripId=trip_id,
            hasPolyline=True,
            polylineCount=len(polylines),
            polylineLength=sum(len(p) for p in polylines),
            estimatedPoints=sum(estimate_point_count(p) for p in polylines),
            isValid=not issues,
            issues=issues,
        )

    @staticmethod
    def summarize(validations: Iterable[PolylineValidation]) -> PolylineValidationSummary:
        summary = PolylineValidationSummary()
        for item in validations:
            summary.totalChecked += 1
            if item.error is not None:
                summary.errors += 1
            elif not item.hasPolyline:
                summary.missing += 1
            elif item.isValid:
                summary.withPolyline += 1
                summary.valid += 1
            else:
                summary.withPolyline += 1
                summary.invalid += 1
        return summary

    # --- ride-location history ---

    @staticmethod
    def sample_from_record(record: RideLocationRecord | dict[str, Any]) -> LocationSample | None:
        """Build a sample from a location record; None when coordinates are unusable."""
        if isinstance(record, RideLocationRecord):
            location = record.currentLocation or {}
            created_at = record.createdAt
        elif isinstance(record, dict):
            location = record.get("currentLocation") or {}
            created_at = record.get("createdAt")
        else:
            return None
        if not isinstance(location, dict):
            return None

        valid, pair = GeometryService.validate_lat_lng(location.get("lat"), location.get("lng"))
        if not valid or pair is None:
            return None
        timestamp = document_timestamp_seconds(created_at)
        return LocationSample(
            lat=pair[0],
            lng=pair[1],
            accuracy=optional_float(location.get("accuracy")),
            timestamp=timestamp if timestamp is not None else 0.0,
        )

    def is_high_accuracy(self, sample: LocationSample) -> bool:
        return sample.accuracy is not None and sample.accuracy < self.accuracy_threshold

    def generate(self, records: Iterable[RideLocationRecord | dict[str, Any]]) -> RouteTrace:
        """Encode accurate samples as a precision-5 polyline and measure the path.

        Low-accuracy samples and samples with malformed coordinates contribute
        to neither the polyline nor the distance.
        """
        trace = RouteTrace()
        kept: list[LocationSample] = []
        for record in records:
            sample = self.sample_from_record(record)
            if sample is None:
                trace.skipped_count += 1
                continue
            if self.is_high_accuracy(sample):
                kept.append(sample)
            else:
                trace.low_accuracy_count += 1

        kept.sort(key=lambda s: s.timestamp)
        points = [(s.lat, s.lng) for s in kept]

        trace.high_accuracy_count = len(kept)
        trace.point_count = len(points)
        trace.points = points
        trace.polyline = encode_polyline(points, precision=5)
        trace.distance_km = GeometryService.path_length(points, unit="km")

        if trace.skipped_count:
            logger.debug("Skipped %d location samples with bad coordinates", trace.skipped_count)
        return trace
