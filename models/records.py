"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

# Readings have no fixed schema: devices write whatever fields they have.
SensorReading = Mapping[str, Any]
ReadingCollection = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class SensorStream:
    """A named category of readings stored under its own subtree."""

    key: str
    path: str
    resolves_location: bool = False


SENSOR_STREAMS: tuple[SensorStream, ...] = (
    SensorStream("bmp180", "/Sensors/BMP180Readings"),
    SensorStream("mpu6050", "/Sensors/MPU6050Readings"),
    SensorStream("tilt", "/Sensors/TiltReadings"),
    SensorStream("rain", "/Sensors/RainReadings", resolves_location=True),
    SensorStream("soil", "/Sensors/SoilReadings", resolves_location=True),
    SensorStream("waterLevel", "/Sensors/WaterLevelReadings"),
)
