from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STORE_BACKEND_ENV = "TREE_STORE_BACKEND"
_DATABASE_URL_ENV = "FIREBASE_DATABASE_URL"
_CREDENTIALS_PATH_ENV = "FIREBASE_CREDENTIALS_PATH"
_PROJECT_ID_ENV = "FIREBASE_PROJECT_ID"
_MOCK_TREE_PATH_ENV = "MOCK_TREE_PATH"
_READINGS_LIMIT_ENV = "SENSOR_READINGS_LIMIT"
_FETCH_WORKERS_ENV = "SENSOR_FETCH_WORKERS"
_RAIN_LOCATION_PATH_ENV = "RAIN_LOCATION_PATH"
_SOIL_LOCATION_PATH_ENV = "SOIL_LOCATION_PATH"
_WATER_LEVEL_LOCATION_ENV = "WATER_LEVEL_LOCATION"
_LOG_LEVEL_ENV = "LOG_LEVEL"

STORE_BACKENDS = ("firebase", "memory")


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    store_backend: str
    firebase_database_url: Optional[str]
    firebase_credentials_path: Optional[str]
    firebase_project_id: Optional[str]
    mock_tree_path: Optional[str]
    readings_limit: int
    fetch_workers: int
    rain_location_path: Optional[str]
    soil_location_path: Optional[str]
    water_level_location: str
    log_level: str

    def missing_firebase_settings(self) -> list[str]:
        """Names of required environment variables that are unset."""
        if self.store_backend != "firebase":
            return []
        missing = []
        if not self.firebase_database_url:
            missing.append(_DATABASE_URL_ENV)
        return missing


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_store_backend(default: str) -> str:
    candidate = _read_str_env(_STORE_BACKEND_ENV, default).lower()
    return candidate if candidate in STORE_BACKENDS else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_backend=_read_store_backend("firebase"),
        firebase_database_url=_read_optional_env(_DATABASE_URL_ENV),
        firebase_credentials_path=_read_optional_env(_CREDENTIALS_PATH_ENV),
        firebase_project_id=_read_optional_env(_PROJECT_ID_ENV),
        mock_tree_path=_read_optional_env(_MOCK_TREE_PATH_ENV),
        readings_limit=_read_positive_int(_READINGS_LIMIT_ENV, 20),
        fetch_workers=_read_positive_int(_FETCH_WORKERS_ENV, 4),
        rain_location_path=_read_optional_env(_RAIN_LOCATION_PATH_ENV),
        soil_location_path=_read_optional_env(_SOIL_LOCATION_PATH_ENV),
        water_level_location=_read_str_env(_WATER_LEVEL_LOCATION_ENV, "Colombo"),
        log_level=_read_log_level("INFO"),
    )
