"""Best-effort location inference for sensor streams.

Devices write readings in many shapes: some carry a place name inline, some a
nested ``location`` object or coordinates, and some only a device identifier
that points into one of several metadata trees. Resolution runs an ordered
list of tiers; each tier only sees the streams that are still unresolved and a
tier never starts before the previous one has exhausted its candidates.

Every store access made here is a *quiet read*: a failure means "not present"
and never fails the surrounding fetch.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from datastore.tree_store import TreeStore

logger = logging.getLogger(__name__)

DIRECT_FIELDS = (
    "location",
    "Location",
    "loc",
    "place",
    "site",
    "area",
    "city",
    "district",
    "region",
    "town",
)
NESTED_FIELDS = ("name", "city", "district", "area", "region", "town")
COORDINATE_FIELDS = (("latitude", "longitude"), ("lat", "lng"))

IDENTIFIER_FIELDS = (
    "deviceId",
    "sensorId",
    "device",
    "node",
    "stationId",
    "id",
    "sensor",
    "station",
    "nodeId",
    "device_id",
    "sensor_id",
)
DEVICE_BASE_PATHS = (
    "/Devices",
    "/Sensors/Devices",
    "/Sensors/Meta",
    "/Sensors",
    "/SensorNodes",
    "/Nodes",
    "/Stations",
    "/SensorsInfo",
    "/DevicesInfo",
)

METADATA_ROOTS = (
    "/Sensors/Locations",
    "/Locations",
    "/Sensors/Meta",
    "/Meta/Sensors",
    "/SensorLocations",
    "/Configs/Sensors",
    "/Meta",
)
METADATA_LEAVES: Dict[str, tuple[str, ...]] = {
    "rain": ("Rain", "rain", "RainSensor", "rainSensor", "RainReadings", "rainReadings"),
    "soil": (
        "Soil",
        "soil",
        "SoilSensor",
        "soilSensor",
        "SoilReadings",
        "soilReadings",
        "SoilMoisture",
        "soilMoisture",
    ),
}
GENERIC_LEAVES = ("location", "Location")
# Leaves naming no stream fill this one.
PERMISSIVE_STREAM = "rain"

CONVENTIONAL_PATHS: Dict[str, tuple[str, ...]] = {
    "rain": (
        "/RainLocation",
        "/Rain/location",
        "/Rain/Location",
        "/Sensors/Rain/location",
        "/Sensors/Rain/Location",
    ),
    "soil": (
        "/SoilLocation",
        "/Soil/location",
        "/Soil/Location",
        "/Sensors/Soil/location",
        "/Sensors/Soil/Location",
    ),
}


def _clean_string(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints too large for a float
        return False


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def extract_location(reading: Any) -> str:
    """Return a location string found inside ``reading``, or ``""``."""
    if not isinstance(reading, Mapping):
        return ""

    for field in DIRECT_FIELDS:
        candidate = _clean_string(reading.get(field))
        if candidate:
            return candidate

    nested = reading.get("location")
    if isinstance(nested, Mapping):
        parts = [_clean_string(nested.get(field)) for field in NESTED_FIELDS]
        joined = ", ".join(part for part in parts if part)
        if joined:
            return joined

    for lat_field, lng_field in COORDINATE_FIELDS:
        lat, lng = reading.get(lat_field), reading.get(lng_field)
        if _is_number(lat) and _is_number(lng):
            return f"{_format_number(lat)}, {_format_number(lng)}"

    return ""


def location_from_value(value: Any) -> str:
    """Accept a plain string or anything :func:`extract_location` understands."""
    if isinstance(value, str):
        return value.strip()
    return extract_location(value)


def collect_identifiers(reading: Any) -> List[str]:
    if not isinstance(reading, Mapping):
        return []
    identifiers: List[str] = []
    for field in IDENTIFIER_FIELDS:
        candidate = _clean_string(reading.get(field))
        if candidate and candidate not in identifiers:
            identifiers.append(candidate)
    return identifiers


def quiet_read(store: TreeStore, path: str, **context: Any) -> Any:
    """Read ``path``; any failure is reported as absence."""
    try:
        return store.read(path)
    except Exception as exc:  # noqa: BLE001 - absence, not an error
        logger.debug(
            "Store read failed",
            extra={"path": path, "reason": str(exc) or type(exc).__name__, **context},
        )
        return None


@dataclass(frozen=True)
class ResolutionContext:
    stream: str
    reading: Any
    store: TreeStore
    override_path: Optional[str] = None


Strategy = Callable[[ResolutionContext], Optional[str]]
TierResolver = Callable[[Sequence[ResolutionContext]], Dict[str, str]]


def inline_location(context: ResolutionContext) -> Optional[str]:
    return extract_location(context.reading) or None


def cross_referenced_location(context: ResolutionContext) -> Optional[str]:
    for identifier in collect_identifiers(context.reading):
        for base in DEVICE_BASE_PATHS:
            value = quiet_read(
                context.store,
                f"{base}/{identifier}",
                stream=context.stream,
                tier="cross_reference",
                identifier=identifier,
            )
            location = location_from_value(value)
            if location:
                return location
    return None


def override_location(context: ResolutionContext) -> Optional[str]:
    paths = list(CONVENTIONAL_PATHS.get(context.stream, ()))
    if context.override_path:
        paths.insert(0, context.override_path)
    for path in paths:
        location = location_from_value(
            quiet_read(context.store, path, stream=context.stream, tier="override")
        )
        if location:
            return location
    return None


def _leaf_target(leaf: str, pending: Sequence[str], found: Mapping[str, str]) -> Optional[str]:
    lowered = leaf.lower()
    for stream in pending:
        if stream.lower() in lowered:
            return None if stream in found else stream
    if PERMISSIVE_STREAM in pending and PERMISSIVE_STREAM not in found:
        return PERMISSIVE_STREAM
    return None


def metadata_locations(store: TreeStore, pending: Sequence[str]) -> Dict[str, str]:
    """Scan the generic metadata roots for every pending stream at once."""
    leaves: List[str] = []
    for stream in pending:
        leaves.extend(METADATA_LEAVES.get(stream, ()))
    leaves.extend(GENERIC_LEAVES)

    found: Dict[str, str] = {}
    for root in METADATA_ROOTS:
        for leaf in leaves:
            target = _leaf_target(leaf, pending, found)
            if target is None:
                continue
            location = location_from_value(
                quiet_read(store, f"{root}/{leaf}", stream=target, tier="metadata")
            )
            if location:
                found[target] = location
        if all(stream in found for stream in pending):
            break
    return found


def each_stream(name: str, strategy: Strategy) -> TierResolver:
    """Lift a per-stream strategy into a tier; one stream failing skips only it."""

    def resolve(contexts: Sequence[ResolutionContext]) -> Dict[str, str]:
        found: Dict[str, str] = {}
        for context in contexts:
            try:
                location = strategy(context)
            except Exception as exc:  # noqa: BLE001 - resolution is best effort
                logger.debug(
                    "Resolution strategy failed",
                    extra={"stream": context.stream, "tier": name, "reason": str(exc)},
                )
                continue
            if location:
                found[context.stream] = location
        return found

    return resolve


def _metadata_tier(contexts: Sequence[ResolutionContext]) -> Dict[str, str]:
    if not contexts:
        return {}
    return metadata_locations(contexts[0].store, [context.stream for context in contexts])


@dataclass(frozen=True)
class ResolutionTier:
    name: str
    resolve: TierResolver


DEFAULT_TIERS: tuple[ResolutionTier, ...] = (
    ResolutionTier("inline", each_stream("inline", inline_location)),
    ResolutionTier("cross_reference", each_stream("cross_reference", cross_referenced_location)),
    ResolutionTier("metadata", _metadata_tier),
    ResolutionTier("override", each_stream("override", override_location)),
)


class LocationResolver:
    """Runs the resolution tiers over the latest reading of each stream."""

    def __init__(
        self,
        store: TreeStore,
        override_paths: Optional[Mapping[str, Optional[str]]] = None,
        tiers: Sequence[ResolutionTier] = DEFAULT_TIERS,
    ) -> None:
        self.store = store
        self.override_paths = dict(override_paths or {})
        self.tiers = tuple(tiers)

    def resolve_all(self, readings: Mapping[str, Any]) -> Dict[str, str]:
        """Map each stream in ``readings`` to a location, ``""`` if unresolved."""
        locations = {stream: "" for stream in readings}
        pending = [
            ResolutionContext(
                stream=stream,
                reading=reading,
                store=self.store,
                override_path=self.override_paths.get(stream),
            )
            for stream, reading in readings.items()
        ]

        for tier in self.tiers:
            if not pending:
                break
            try:
                found = tier.resolve(pending)
            except Exception as exc:  # noqa: BLE001 - resolution is best effort
                logger.debug(
                    "Resolution tier failed",
                    extra={"tier": tier.name, "reason": str(exc)},
                )
                continue
            for stream, location in found.items():
                if stream in locations and not locations[stream]:
                    locations[stream] = location
                    logger.debug(
                        "Resolved location", extra={"stream": stream, "tier": tier.name}
                    )
            pending = [context for context in pending if not locations[context.stream]]

        for context in pending:
            logger.debug("Location unresolved", extra={"stream": context.stream})
        return locations
