"""Unit tests for latest-reading selection."""

from __future__ import annotations

from datetime import datetime, timezone

from services.selector import parse_timestamp, select_latest


def test_select_latest_prefers_maximum_timestamp() -> None:
    collection = {
        "a": {"value": 1, "timestamp": "2025-08-07 10:00:00"},
        "b": {"value": 2, "timestamp": "2025-08-07 12:00:00"},
        "c": {"value": 3, "timestamp": "2025-08-07 11:00:00"},
    }

    assert select_latest(collection) == collection["b"]


def test_select_latest_ignores_unparseable_timestamps() -> None:
    collection = {
        "1": {"value": 1, "timestamp": "2025-08-07T08:00:00Z"},
        "2": {"value": 2, "timestamp": "not a date"},
        "3": {"value": 3},
    }

    assert select_latest(collection) == {"value": 1, "timestamp": "2025-08-07T08:00:00Z"}


def test_select_latest_breaks_timestamp_ties_with_last_entry() -> None:
    collection = {
        "x": {"value": "first", "timestamp": "2025-08-07 10:00:00"},
        "y": {"value": "second", "timestamp": "2025-08-07T10:00:00+00:00"},
    }

    assert select_latest(collection)["value"] == "second"


def test_select_latest_handles_epoch_seconds_and_milliseconds() -> None:
    collection = {
        "older": {"timestamp": 1723021200},
        "newer": {"timestamp": 1723024800000},
    }

    assert select_latest(collection) is collection["newer"]


def test_select_latest_uses_numeric_keys_without_timestamps() -> None:
    a, b, c = {"value": "a"}, {"value": "b"}, {"value": "c"}

    assert select_latest({"1": a, "10": b, "2": c}) is b


def test_select_latest_falls_back_to_insertion_order() -> None:
    first, second, third = {"v": 1}, {"v": 2}, {"v": 3}
    collection = {"-Nb2": first, "-Na1": second, "10": third}

    assert select_latest(collection) is third


def test_select_latest_on_empty_collection_returns_none() -> None:
    assert select_latest({}) is None
    assert select_latest(None) is None


def test_select_latest_accepts_scalar_readings() -> None:
    assert select_latest({"1": 4.2, "3": 5.1, "2": 3.3}) == 5.1


def test_parse_timestamp_normalises_to_utc() -> None:
    assert parse_timestamp("2025-08-07 10:00:00") == datetime(2025, 8, 7, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2025-08-07T15:30:00+05:30") == datetime(
        2025, 8, 7, 10, tzinfo=timezone.utc
    )
    assert parse_timestamp(True) is None
    assert parse_timestamp("") is None
    assert parse_timestamp({"seconds": 1}) is None


def test_parse_timestamp_rejects_out_of_range_values() -> None:
    assert parse_timestamp("0001-01-01T00:00:00+05:30") is None
    assert parse_timestamp("9999-12-31T23:59:59-05:00") is None
    assert parse_timestamp(10**400) is None
    assert parse_timestamp(float("inf")) is None


def test_select_latest_skips_out_of_range_timestamps() -> None:
    valid = {"value": 3, "timestamp": "2025-08-07 10:00:00"}
    collection = {
        "1": {"value": 1, "timestamp": "0001-01-01T00:00:00+05:30"},
        "2": {"value": 2, "timestamp": 10**400},
        "3": valid,
    }

    assert select_latest(collection) is valid
    assert select_latest({"1": collection["1"], "2": collection["2"]}) is collection["2"]
