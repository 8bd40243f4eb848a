"""Tests for the tiered location resolution chain."""

from __future__ import annotations

from typing import Any, List

import pytest

from datastore.tree_store import InMemoryTreeStore, TreeStoreError
from services.locations import (
    DEFAULT_TIERS,
    LocationResolver,
    ResolutionContext,
    ResolutionTier,
    cross_referenced_location,
    metadata_locations,
)


class RecordingStore(InMemoryTreeStore):
    def __init__(self, *args: Any, failing: tuple[str, ...] = (), **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.reads: List[str] = []
        self.failing = failing

    def read(self, path: str) -> Any:
        self.reads.append(path)
        if path in self.failing:
            raise TreeStoreError(f"simulated failure for {path}")
        return super().read(path)


@pytest.fixture()
def store() -> RecordingStore:
    return RecordingStore(name="test")


def _context(store: RecordingStore, reading: Any, stream: str = "rain") -> ResolutionContext:
    return ResolutionContext(stream=stream, reading=reading, store=store)


def test_cross_reference_resolves_device_metadata(store: RecordingStore) -> None:
    store.write("/Sensors/Devices/S1", {"city": "Matara"})

    location = cross_referenced_location(_context(store, {"deviceId": "S1", "value": 3}))

    assert location == "Matara"
    assert store.reads == ["/Devices/S1", "/Sensors/Devices/S1"]


def test_cross_reference_accepts_plain_string_metadata(store: RecordingStore) -> None:
    store.write("/Stations/N7", "  Hatton ")

    assert cross_referenced_location(_context(store, {"node": "N7"})) == "Hatton"


def test_cross_reference_exhausts_first_identifier_before_the_next(store: RecordingStore) -> None:
    store.write("/Devices/B", "Bee")
    store.write("/DevicesInfo/A", {"town": "Ay"})

    location = cross_referenced_location(_context(store, {"deviceId": "A", "sensorId": "B"}))

    assert location == "Ay"


def test_cross_reference_ignores_failed_reads() -> None:
    store = RecordingStore(name="test", failing=("/Devices/S1",))
    store.write("/Sensors/Devices/S1", {"city": "Matara"})

    assert cross_referenced_location(_context(store, {"deviceId": "S1"})) == "Matara"


def test_cross_reference_continues_past_unusable_coordinates(store: RecordingStore) -> None:
    store.write("/Devices/S1", {"lat": 10**400, "lng": 1})
    store.write("/Sensors/Devices/S1", {"city": "Matara"})
    resolver = LocationResolver(store)

    assert resolver.resolve_all({"rain": {"deviceId": "S1"}}) == {"rain": "Matara"}


def test_metadata_fallback_continues_past_unusable_coordinates(store: RecordingStore) -> None:
    store.write("/Sensors/Locations/Rain", {"latitude": -10**400, "longitude": 2})
    store.write("/Locations/Soil", "Kegalle")
    store.write("/Locations/Rain", "Kalutara")

    assert metadata_locations(store, ["rain", "soil"]) == {"rain": "Kalutara", "soil": "Kegalle"}


def test_cross_reference_without_identifiers_makes_no_reads(store: RecordingStore) -> None:
    assert cross_referenced_location(_context(store, {"value": 1})) is None
    assert cross_referenced_location(_context(store, None)) is None
    assert store.reads == []


def test_metadata_fallback_assigns_by_leaf_name(store: RecordingStore) -> None:
    store.write("/Locations/soilMoisture", {"district": "Nuwara Eliya"})
    store.write("/Sensors/Locations/RainSensor", "Kalutara")

    found = metadata_locations(store, ["rain", "soil"])

    assert found == {"rain": "Kalutara", "soil": "Nuwara Eliya"}


def test_metadata_fallback_stops_once_every_stream_is_found(store: RecordingStore) -> None:
    store.write("/Sensors/Locations/Rain", "Kalutara")
    store.write("/Sensors/Locations/Soil", "Kegalle")
    store.write("/Locations/Rain", "Elsewhere")

    found = metadata_locations(store, ["rain", "soil"])

    assert found == {"rain": "Kalutara", "soil": "Kegalle"}
    assert all(path.startswith("/Sensors/Locations/") for path in store.reads)


def test_metadata_fallback_assigns_generic_leaves_to_rain(store: RecordingStore) -> None:
    store.write("/Meta/location", "Badulla")

    found = metadata_locations(store, ["rain", "soil"])

    assert found == {"rain": "Badulla"}


def test_metadata_generic_leaves_never_fill_soil(store: RecordingStore) -> None:
    store.write("/Meta/location", "Badulla")

    assert metadata_locations(store, ["soil"]) == {}
    assert not any(path.endswith("/location") for path in store.reads)


def test_override_path_is_consulted_before_conventional_paths(store: RecordingStore) -> None:
    store.write("/Custom/rainPlace", {"city": "Ratnapura"})
    store.write("/RainLocation", "Conventional")
    resolver = LocationResolver(store, override_paths={"rain": "/Custom/rainPlace"})

    assert resolver.resolve_all({"rain": None}) == {"rain": "Ratnapura"}


def test_conventional_paths_resolve_when_no_override(store: RecordingStore) -> None:
    store.write("/Sensors/Soil/Location", {"city": "Kegalle"})
    resolver = LocationResolver(store)

    assert resolver.resolve_all({"rain": None, "soil": None}) == {"rain": "", "soil": "Kegalle"}


def test_inline_location_short_circuits_store_reads(store: RecordingStore) -> None:
    store.write("/Devices/S1", "Should not be read")
    resolver = LocationResolver(store, override_paths={"rain": "/Custom/rain"})

    locations = resolver.resolve_all(
        {
            "rain": {"city": "Kandy", "deviceId": "S1"},
            "soil": {"latitude": 6.9, "longitude": 79.8},
        }
    )

    assert locations == {"rain": "Kandy", "soil": "6.9, 79.8"}
    assert store.reads == []


def test_later_tiers_only_see_unresolved_streams(store: RecordingStore) -> None:
    resolver = LocationResolver(store)

    resolver.resolve_all({"rain": {"city": "Kandy"}, "soil": {"value": 40}})

    assert store.reads
    assert not any("Rain" in path or "rain" in path for path in store.reads)


def test_unresolved_locations_are_empty_strings(store: RecordingStore) -> None:
    store.write("/Sensors/RainReadings/1", {"value": 12, "timestamp": "2025-08-07 10:00:00"})
    resolver = LocationResolver(store)

    assert resolver.resolve_all({"rain": {"value": 12}, "soil": None}) == {"rain": "", "soil": ""}


def test_resolve_all_is_idempotent(store: RecordingStore) -> None:
    store.write("/Nodes/N1", {"location": {"city": "Galle", "region": "South"}})
    store.write("/Meta/Soil", "Matale")
    resolver = LocationResolver(store)
    readings = {"rain": {"nodeId": "N1"}, "soil": {"value": 3}}

    first = resolver.resolve_all(readings)
    second = resolver.resolve_all(readings)

    assert first == second == {"rain": "Galle, South", "soil": "Matale"}


def test_failing_tier_does_not_abort_resolution(store: RecordingStore) -> None:
    def broken(_contexts):
        raise RuntimeError("boom")

    store.write("/SoilLocation", "Kurunegala")
    resolver = LocationResolver(
        store, tiers=(ResolutionTier("broken", broken), *DEFAULT_TIERS)
    )

    assert resolver.resolve_all({"soil": None}) == {"soil": "Kurunegala"}


def test_store_failures_everywhere_leave_locations_empty() -> None:
    class BrokenStore(InMemoryTreeStore):
        def read(self, path: str) -> Any:
            raise TreeStoreError("offline")

    resolver = LocationResolver(BrokenStore(), override_paths={"rain": "/R"})

    assert resolver.resolve_all({"rain": {"deviceId": "S1"}, "soil": None}) == {
        "rain": "",
        "soil": "",
    }
