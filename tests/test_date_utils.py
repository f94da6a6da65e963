from datetime import UTC, datetime

from date_utils import (
    document_timestamp_seconds,
    ensure_utc,
    from_epoch_seconds,
    get_current_utc_time,
    parse_timestamp,
    to_epoch_seconds,
)


def test_parse_timestamp_handles_empty_and_invalid() -> None:
    assert parse_timestamp("") is None
    assert parse_timestamp("not-a-date") is None


def test_parse_timestamp_normalizes_to_utc() -> None:
    parsed = parse_timestamp("2024-01-01T00:00:00-05:00")
    assert parsed is not None
    assert parsed.tzinfo == UTC
    assert parsed.hour == 5


def test_ensure_utc_handles_naive_datetime() -> None:
    value = datetime(2024, 1, 1, 12, 0, 0)
    normalized = ensure_utc(value)
    assert normalized is not None
    assert normalized.tzinfo == UTC
    assert normalized.hour == 12


def test_ensure_utc_returns_none_for_none() -> None:
    assert ensure_utc(None) is None


def test_get_current_utc_time_returns_utc() -> None:
    assert get_current_utc_time().tzinfo == UTC


def test_epoch_round_trip() -> None:
    moment = datetime(2024, 6, 15, 10, 0, tzinfo=UTC)
    assert to_epoch_seconds(moment) == 1718445600
    assert from_epoch_seconds(1718445600) == moment


def test_document_timestamp_seconds_variants() -> None:
    assert document_timestamp_seconds({"_seconds": 100, "_nanoseconds": 500_000_000}) == 100.5
    assert document_timestamp_seconds({"_seconds": 100}) == 100.0
    assert document_timestamp_seconds(1718445600) == 1718445600.0
    assert document_timestamp_seconds("2024-06-15T10:00:00Z") == 1718445600.0
    assert document_timestamp_seconds({"_seconds": "abc"}) is None
    assert document_timestamp_seconds(True) is None
    assert document_timestamp_seconds(None) is None
