"""Ingest path: validate, persist, then fan out to live subscribers."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.schemas import ReadingPayload
from datastore.telemetry_db import TelemetryStore, build_default_store
from models.records import StoredReading
from services.registry import SubscriberRegistry, build_default_registry

logger = logging.getLogger(__name__)


class InvalidReadingError(ValueError):
    """The request body is not a valid reading."""


class PersistenceError(RuntimeError):
    """The store could not record the reading."""


class IngestService:
    """Accepts one reading per request body.

    Subscribers receive the request body exactly as it arrived, not a
    re-serialized row, so they never see the store-assigned id.
    """

    def __init__(self, store: TelemetryStore, registry: SubscriberRegistry) -> None:
        self.store = store
        self.registry = registry

    def parse(self, body: bytes) -> ReadingPayload:
        try:
            return ReadingPayload.model_validate_json(body)
        except ValidationError as exc:
            raise InvalidReadingError(_describe(exc)) from exc

    def persist(self, payload: ReadingPayload) -> StoredReading:
        try:
            stored = self.store.insert_reading(payload.to_reading())
        except (SQLAlchemyError, OverflowError) as exc:
            logger.error(
                "Failed to persist reading: %s",
                exc,
                extra={"sensor_id": payload.sensor_id, "seqno": payload.seqno},
            )
            raise PersistenceError("Could not store reading.") from exc
        logger.debug(
            "Stored reading",
            extra={"reading_id": stored.id, "sensor_id": stored.sensor_id, "seqno": stored.seqno},
        )
        return stored

    async def broadcast(self, body: bytes) -> int:
        payload = body.decode("utf-8")
        delivered = await self.registry.broadcast(payload)
        logger.debug("Broadcast reading", extra={"subscriber_count": delivered})
        return delivered


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts) or "Invalid reading."


@lru_cache
def build_default_ingest() -> IngestService:
    return IngestService(store=build_default_store(), registry=build_default_registry())
