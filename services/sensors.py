"""Fetching sensor collections and attaching resolved locations."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from functools import lru_cache
from threading import Lock
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from app.schemas import ConnectionStatus, FetchResult, Locations, SensorData
from datastore.factory import build_default_store
from datastore.tree_store import TreeStore, TreeStoreError, as_collection
from models.records import SENSOR_STREAMS, ReadingCollection, SensorStream
from services.locations import LocationResolver
from services.selector import select_latest
from settings import ConfigurationError, get_settings

logger = logging.getLogger(__name__)


class SensorDataService:
    """Reads every sensor stream from the tree store and resolves locations."""

    def __init__(
        self,
        store_factory: Callable[[], TreeStore],
        readings_limit: int = 20,
        override_paths: Optional[Mapping[str, Optional[str]]] = None,
        water_level_location: str = "",
        workers: int = 4,
        streams: Sequence[SensorStream] = SENSOR_STREAMS,
    ) -> None:
        self.store_factory = store_factory
        self.readings_limit = readings_limit
        self.override_paths = dict(override_paths or {})
        self.water_level_location = water_level_location
        self.streams = tuple(streams)
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sensor-fetch")
        self._store: Optional[TreeStore] = None
        self._store_lock = Lock()

    def test_connection(self) -> ConnectionStatus:
        try:
            store = self._get_store()
            store.ping()
        except (ConfigurationError, TreeStoreError) as exc:
            logger.warning("Store connection check failed", extra={"reason": str(exc)})
            return ConnectionStatus(
                success=False,
                message=f"Store connection failed: {exc}",
                connected=False,
            )
        return ConnectionStatus(success=True, message="Store connection successful!", connected=True)

    def fetch_latest_sensor_data(self) -> FetchResult:
        """Last ``readings_limit`` readings per stream plus resolved locations."""
        try:
            store = self._get_store()
        except (ConfigurationError, TreeStoreError) as exc:
            return self._initialization_failure(exc)

        try:
            collections = self._read_streams(
                lambda stream: store.read_last_n(stream.path, self.readings_limit)
            )
            locations = self.resolve_locations(store, collections)
            data = SensorData.model_validate({**collections, "locations": locations})
        except Exception as exc:  # noqa: BLE001 - reported in the result body
            logger.error("Failed to fetch latest sensor data", exc_info=True)
            return FetchResult(success=False, message=f"Failed to fetch sensor data: {exc}")
        return FetchResult(success=True, data=data)

    def fetch_all_sensor_data(self) -> FetchResult:
        """Complete reading history per stream, without locations."""
        try:
            store = self._get_store()
        except (ConfigurationError, TreeStoreError) as exc:
            return self._initialization_failure(exc)

        try:
            collections = self._read_streams(lambda stream: as_collection(store.read(stream.path)))
            data = SensorData.model_validate(collections)
        except Exception as exc:  # noqa: BLE001 - reported in the result body
            logger.error("Failed to fetch sensor history", exc_info=True)
            return FetchResult(success=False, message=f"Failed to fetch all sensor data: {exc}")
        return FetchResult(success=True, data=data)

    def resolve_locations(
        self, store: TreeStore, collections: Mapping[str, ReadingCollection]
    ) -> Locations:
        latest = {
            stream.key: self._latest_reading(stream.key, collections.get(stream.key))
            for stream in self.streams
            if stream.resolves_location
        }
        resolver = LocationResolver(store, override_paths=self.override_paths)
        resolved = resolver.resolve_all(latest)
        return Locations(
            rain=resolved.get("rain", ""),
            soil=resolved.get("soil", ""),
            water_level=self.water_level_location,
        )

    def shutdown(self) -> None:
        """Clean up executor resources during application shutdown."""
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _get_store(self) -> TreeStore:
        with self._store_lock:
            if self._store is None:
                self._store = self.store_factory()
            return self._store

    def _read_streams(
        self, read: Callable[[SensorStream], ReadingCollection]
    ) -> Dict[str, ReadingCollection]:
        futures: Dict[str, Future[ReadingCollection]] = {
            stream.key: self.executor.submit(read, stream) for stream in self.streams
        }
        collections: Dict[str, ReadingCollection] = {}
        for key, future in futures.items():
            collections[key] = future.result()
            logger.debug(
                "Fetched stream",
                extra={"stream": key, "reading_count": len(collections[key])},
            )
        return collections

    @staticmethod
    def _latest_reading(key: str, collection: Optional[ReadingCollection]) -> Any:
        try:
            return select_latest(collection)
        except Exception as exc:  # noqa: BLE001 - the location stays unresolved
            logger.warning(
                "Could not pick latest reading",
                extra={"stream": key, "reason": str(exc) or type(exc).__name__},
            )
            return None

    @staticmethod
    def _initialization_failure(exc: Exception) -> FetchResult:
        logger.error("Failed to initialize store", extra={"reason": str(exc)})
        return FetchResult(success=False, message=f"Failed to initialize store: {exc}")


@lru_cache
def build_default_service(workers: Optional[int] = None) -> SensorDataService:
    """Factory that wires the service to the configured store."""
    settings = get_settings()
    return SensorDataService(
        store_factory=build_default_store,
        readings_limit=settings.readings_limit,
        override_paths={
            "rain": settings.rain_location_path,
            "soil": settings.soil_location_path,
        },
        water_level_location=settings.water_level_location,
        workers=workers or settings.fetch_workers,
    )
