"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.schemas import ConnectionStatus, FetchResult
from services.sensors import SensorDataService, build_default_service

router = APIRouter()


def get_service() -> SensorDataService:
    return build_default_service()


@router.get(
    "/sensors/latest",
    response_model=FetchResult,
    response_model_exclude_none=True,
    summary="Latest readings per sensor stream with resolved locations.",
)
def latest_sensor_data(
    service: SensorDataService = Depends(get_service),
) -> FetchResult:
    return service.fetch_latest_sensor_data()


@router.get(
    "/sensors/history",
    response_model=FetchResult,
    response_model_exclude_none=True,
    summary="Complete reading history per sensor stream.",
)
def sensor_history(
    service: SensorDataService = Depends(get_service),
) -> FetchResult:
    return service.fetch_all_sensor_data()


@router.get(
    "/connection",
    response_model=ConnectionStatus,
    summary="Check connectivity to the sensor store.",
)
def connection_status(
    service: SensorDataService = Depends(get_service),
) -> ConnectionStatus:
    return service.test_connection()


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
