"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.schemas import (
    DeviceRegistration,
    DeviceSnapshot,
    DeviceSummaryOut,
    IngestionReport,
    SampleSubmission,
)
from datastore.registry import DeviceRegistry
from models.errors import DeviceNotFoundError, KindMismatchError, SampleTypeError
from models.records import DeviceRecord
from services.ingestor import IngestionService, build_default_ingestor

router = APIRouter()


def get_ingestor() -> IngestionService:
    return build_default_ingestor()


def get_registry(ingestor: IngestionService = Depends(get_ingestor)) -> DeviceRegistry:
    return ingestor.registry


def _lookup(registry: DeviceRegistry, identifier: str) -> DeviceRecord:
    try:
        return registry.get(identifier)
    except DeviceNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get(
    "/devices",
    response_model=list[DeviceSnapshot],
    summary="List registered devices in registration order.",
)
async def list_devices(
    registry: DeviceRegistry = Depends(get_registry),
) -> list[DeviceSnapshot]:
    return [DeviceSnapshot.from_record(record) for record in registry.snapshot()]


@router.post(
    "/devices",
    status_code=status.HTTP_201_CREATED,
    response_model=DeviceSnapshot,
    summary="Register a device without an initial sample.",
)
async def register_device(
    payload: DeviceRegistration,
    registry: DeviceRegistry = Depends(get_registry),
) -> DeviceSnapshot:
    try:
        record = registry.register(payload.identifier, payload.kind)
    except KindMismatchError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    return DeviceSnapshot.from_record(record.copy())


@router.delete(
    "/devices",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Release every registered device.",
)
async def clear_devices(
    registry: DeviceRegistry = Depends(get_registry),
) -> Response:
    registry.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/devices/{identifier}",
    response_model=DeviceSnapshot,
    summary="Fetch a device and its sample history.",
)
async def get_device(
    identifier: str,
    registry: DeviceRegistry = Depends(get_registry),
) -> DeviceSnapshot:
    return DeviceSnapshot.from_record(_lookup(registry, identifier).copy())


@router.post(
    "/devices/{identifier}/samples",
    response_model=DeviceSnapshot,
    summary="Append a sample to an existing device.",
)
async def add_sample(
    identifier: str,
    payload: SampleSubmission,
    registry: DeviceRegistry = Depends(get_registry),
) -> DeviceSnapshot:
    try:
        record = registry.append_sample(identifier, payload.value)
    except DeviceNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except SampleTypeError as exc:
        raise HTTPException(
            status_code=422,
            detail=str(exc),
        ) from exc
    return DeviceSnapshot.from_record(record.copy())


@router.get(
    "/devices/{identifier}/summary",
    response_model=DeviceSummaryOut,
    summary="Aggregate a device's sample history.",
)
async def get_device_summary(
    identifier: str,
    ingestor: IngestionService = Depends(get_ingestor),
) -> DeviceSummaryOut:
    record = _lookup(ingestor.registry, identifier)
    return DeviceSummaryOut.from_summary(ingestor.aggregator.summarize_record(record))


@router.get(
    "/summaries",
    response_model=list[DeviceSummaryOut],
    summary="Aggregate every registered device.",
)
async def list_summaries(
    ingestor: IngestionService = Depends(get_ingestor),
) -> list[DeviceSummaryOut]:
    return [DeviceSummaryOut.from_summary(summary) for summary in ingestor.summaries()]


@router.get(
    "/ingestion",
    response_model=IngestionReport,
    summary="Report progress of the background ingestion loop.",
)
async def get_ingestion_report(
    ingestor: IngestionService = Depends(get_ingestor),
) -> IngestionReport:
    return ingestor.report()


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
