"""Read-only access to stored readings and the sensor directory."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from datastore.telemetry_db import TelemetryStore, build_default_store
from models.records import UINT64_MAX, Sensor, StoredReading


class InvalidQueryError(ValueError):
    """A query parameter could not be parsed."""


def parse_time_bound(raw: Optional[str], name: str) -> Optional[int]:
    """Parse an optional unsigned 64-bit nanosecond bound."""
    if raw is None or raw == "":
        return None
    if not raw.isascii() or not raw.isdigit():
        raise InvalidQueryError(f"illegal {name} time")
    value = int(raw)
    if value > UINT64_MAX:
        raise InvalidQueryError(f"illegal {name} time")
    return value


class QueryService:
    def __init__(self, store: TelemetryStore) -> None:
        self.store = store

    def readings(self, start: Optional[str] = None, end: Optional[str] = None) -> list[StoredReading]:
        lower = parse_time_bound(start, "start")
        upper = parse_time_bound(end, "end")
        return self.store.readings_between(lower, upper)

    def latest(self) -> list[StoredReading]:
        return self.store.latest_readings()

    def sensors(self) -> list[Sensor]:
        return self.store.sensors()

    def upsert_sensor(self, sensor: Sensor) -> Sensor:
        return self.store.upsert_sensor(sensor)


@lru_cache
def build_default_query() -> QueryService:
    return QueryService(store=build_default_store())
