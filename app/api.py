"""HTTP route definitions for the collector."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from app.schemas import IngestResponse, ReadingRecord, SensorRecord
from models.records import Sensor
from services.ingest import IngestService, InvalidReadingError, PersistenceError, build_default_ingest
from services.query import InvalidQueryError, QueryService, build_default_query
from services.registry import SubscriberRegistry, build_default_registry

API_PREFIX = "/api/v1"

router = APIRouter()


def get_ingest() -> IngestService:
    return build_default_ingest()


def get_query() -> QueryService:
    return build_default_query()


def get_registry() -> SubscriberRegistry:
    return build_default_registry()


@router.post(
    f"{API_PREFIX}/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=IngestResponse,
    summary="Store a reading and stream it to live subscribers.",
)
async def post_reading(
    request: Request,
    background_tasks: BackgroundTasks,
    ingest: IngestService = Depends(get_ingest),
) -> IngestResponse:
    body = await request.body()
    try:
        payload = ingest.parse(body)
    except InvalidReadingError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    try:
        stored = await run_in_threadpool(ingest.persist, payload)
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    background_tasks.add_task(ingest.broadcast, body)
    return IngestResponse(id=stored.id)


@router.get(
    f"{API_PREFIX}/readings",
    response_model=list[ReadingRecord],
    summary="Readings with start <= time < end, oldest first.",
)
def get_readings(
    start: Optional[str] = Query(None, description="Inclusive lower bound (ns since epoch)."),
    end: Optional[str] = Query(None, description="Exclusive upper bound (ns since epoch)."),
    query: QueryService = Depends(get_query),
) -> list[ReadingRecord]:
    try:
        readings = query.readings(start, end)
    except InvalidQueryError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return [ReadingRecord.model_validate(reading) for reading in readings]


@router.get(
    f"{API_PREFIX}/readings/latest",
    response_model=list[ReadingRecord],
    summary="The most recent reading of every sensor.",
)
def get_latest_readings(query: QueryService = Depends(get_query)) -> list[ReadingRecord]:
    return [ReadingRecord.model_validate(reading) for reading in query.latest()]


@router.get(
    f"{API_PREFIX}/sensors",
    response_model=list[SensorRecord],
    summary="List the sensor directory.",
)
def get_sensors(query: QueryService = Depends(get_query)) -> list[SensorRecord]:
    return [SensorRecord.model_validate(sensor) for sensor in query.sensors()]


@router.post(
    f"{API_PREFIX}/sensors",
    response_model=SensorRecord,
    summary="Create or replace a sensor directory entry.",
)
def post_sensor(
    sensor: SensorRecord,
    query: QueryService = Depends(get_query),
) -> SensorRecord:
    try:
        stored = query.upsert_sensor(
            Sensor(sensor_id=sensor.sensor_id, name=sensor.name, internal=sensor.internal)
        )
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not store sensor.",
        ) from exc
    return SensorRecord.model_validate(stored)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(registry: SubscriberRegistry = Depends(get_registry)) -> dict[str, object]:
    return {"status": "ok", "subscribers": registry.count}
