"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Locations(BaseModel):
    """Resolved place names per stream; empty when unresolved."""

    model_config = ConfigDict(populate_by_name=True)

    rain: str = ""
    soil: str = ""
    water_level: str = Field(default="", alias="waterLevel")


class SensorData(BaseModel):
    """Raw reading collections keyed by stream, plus resolved locations."""

    model_config = ConfigDict(populate_by_name=True)

    bmp180: Dict[str, Any] = Field(default_factory=dict)
    mpu6050: Dict[str, Any] = Field(default_factory=dict)
    tilt: Dict[str, Any] = Field(default_factory=dict)
    rain: Dict[str, Any] = Field(default_factory=dict)
    soil: Dict[str, Any] = Field(default_factory=dict)
    water_level: Dict[str, Any] = Field(default_factory=dict, alias="waterLevel")
    locations: Optional[Locations] = None


class FetchResult(BaseModel):
    """Outcome of a sensor fetch; failures are reported, never raised."""

    success: bool
    data: Optional[SensorData] = None
    message: Optional[str] = None


class ConnectionStatus(BaseModel):
    success: bool
    message: str
    connected: bool
