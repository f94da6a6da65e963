import math

import pytest

from core.spatial import GeometryService


def test_validate_lat_lng() -> None:
    assert GeometryService.validate_lat_lng("12.5", 77) == (True, (12.5, 77.0))
    assert GeometryService.validate_lat_lng(91, 0) == (False, None)
    assert GeometryService.validate_lat_lng(0, -181) == (False, None)
    assert GeometryService.validate_lat_lng(None, 0) == (False, None)
    assert GeometryService.validate_lat_lng(math.nan, 0) == (False, None)


def test_haversine_units() -> None:
    km = GeometryService.haversine_distance(0, 0, 0, 1)
    assert km == pytest.approx(111.195, abs=0.01)
    assert GeometryService.haversine_distance(0, 0, 0, 1, unit="meters") == pytest.approx(km * 1000)
    assert GeometryService.haversine_distance(0, 0, 0, 1, unit="miles") == pytest.approx(km / 1.609344)
    with pytest.raises(ValueError):
        GeometryService.haversine_distance(0, 0, 0, 1, unit="parsecs")


def test_path_length_sums_segments() -> None:
    points = [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]
    assert GeometryService.path_length(points) == pytest.approx(2 * 111.195, abs=0.02)
    assert GeometryService.path_length(points[:1]) == 0.0
