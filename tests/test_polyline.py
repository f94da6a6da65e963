import pytest

from core.polyline import decode_polyline, encode_polyline, estimate_point_count

GOOGLE_POINTS = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]
GOOGLE_ENCODED = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


def test_encode_reference_polyline() -> None:
    assert encode_polyline(GOOGLE_POINTS) == GOOGLE_ENCODED


def test_decode_reference_polyline() -> None:
    decoded = decode_polyline(GOOGLE_ENCODED)
    assert len(decoded) == 3
    for (lat, lng), (exp_lat, exp_lng) in zip(decoded, GOOGLE_POINTS, strict=True):
        assert lat == pytest.approx(exp_lat, abs=1e-5)
        assert lng == pytest.approx(exp_lng, abs=1e-5)


def test_round_trip_within_precision() -> None:
    points = [(12.971598, 77.594566), (12.972001, 77.595112), (-33.868820, 151.209296)]
    decoded = decode_polyline(encode_polyline(points))
    for (lat, lng), (exp_lat, exp_lng) in zip(decoded, points, strict=True):
        assert abs(lat - exp_lat) <= 1e-5
        assert abs(lng - exp_lng) <= 1e-5


def test_empty_inputs() -> None:
    assert encode_polyline([]) == ""
    assert decode_polyline("") == []


def test_decode_rejects_truncated_input() -> None:
    with pytest.raises(ValueError):
        decode_polyline(GOOGLE_ENCODED[:-1])


def test_decode_rejects_out_of_alphabet() -> None:
    with pytest.raises(ValueError):
        decode_polyline("_p~iF ps|U")


@pytest.mark.parametrize(
    "encoded",
    [
        # latitude without its longitude
        "_p~iF",
        # a full point followed by a lone latitude
        "_p~iF~ps|U_ulL",
        # ends on a continuation chunk
        "_p~",
    ],
)
def test_decode_rejects_incomplete_points(encoded: str) -> None:
    with pytest.raises(ValueError, match="Invalid polyline encoding"):
        decode_polyline(encoded)


def test_encode_accepts_lists_and_generators() -> None:
    as_lists = encode_polyline([[38.5, -120.2], [40.7, -120.95], [43.252, -126.453]])
    as_generator = encode_polyline(p for p in GOOGLE_POINTS)
    assert as_lists == as_generator == GOOGLE_ENCODED


def test_estimate_point_count() -> None:
    assert estimate_point_count(GOOGLE_ENCODED) == 3
    assert estimate_point_count("") == 0
