"""Unit tests for the SQLite-backed telemetry store."""

from __future__ import annotations

import pytest

from datastore.telemetry_db import TelemetryStore
from models.records import Reading, Sensor


@pytest.fixture()
def store() -> TelemetryStore:
    store = TelemetryStore("sqlite://")
    store.create_schema()
    yield store
    store.dispose()


def _reading(time: int, sensor_id: int = 1, value: float = 1.0, seqno: int = 0) -> Reading:
    return Reading(time=time, sensor_id=sensor_id, seqno=seqno, rtype=1, value=value)


def test_insert_assigns_increasing_ids(store: TelemetryStore) -> None:
    first = store.insert_reading(_reading(10))
    second = store.insert_reading(_reading(20))

    assert second.id > first.id
    assert (first.time, first.sensor_id, first.rtype, first.value) == (10, 1, 1, 1.0)


def test_range_is_start_inclusive_end_exclusive_and_ascending(store: TelemetryStore) -> None:
    for time in (250, 50, 199, 100, 200, 150):
        store.insert_reading(_reading(time))

    readings = store.readings_between(100, 200)

    assert [reading.time for reading in readings] == [100, 150, 199]


def test_range_bounds_are_optional(store: TelemetryStore) -> None:
    for time in (30, 10, 20):
        store.insert_reading(_reading(time))

    assert [r.time for r in store.readings_between()] == [10, 20, 30]
    assert [r.time for r in store.readings_between(start=20)] == [20, 30]
    assert [r.time for r in store.readings_between(end=20)] == [10]


def test_range_bounds_beyond_signed_storage_range(store: TelemetryStore) -> None:
    store.insert_reading(_reading(10))

    assert store.readings_between(start=2**64 - 1) == []
    assert [r.time for r in store.readings_between(end=2**64 - 1)] == [10]


def test_latest_returns_max_time_row_per_sensor(store: TelemetryStore) -> None:
    store.insert_reading(_reading(100, sensor_id=1, value=1.0))
    store.insert_reading(_reading(300, sensor_id=1, value=3.0))
    store.insert_reading(_reading(200, sensor_id=1, value=2.0))
    store.insert_reading(_reading(150, sensor_id=2, value=4.0))
    store.insert_reading(_reading(250, sensor_id=2, value=5.0))

    latest = store.latest_readings()

    assert [(r.sensor_id, r.time, r.value) for r in latest] == [(1, 300, 3.0), (2, 250, 5.0)]


def test_latest_is_empty_without_readings(store: TelemetryStore) -> None:
    assert store.latest_readings() == []


def test_sensor_upsert_replaces_existing_entry(store: TelemetryStore) -> None:
    store.upsert_sensor(Sensor(sensor_id=3, name="A", internal=False))
    store.upsert_sensor(Sensor(sensor_id=3, name="B", internal=True))
    store.upsert_sensor(Sensor(sensor_id=0, name="Base", internal=True))

    assert store.sensors() == [
        Sensor(sensor_id=0, name="Base", internal=True),
        Sensor(sensor_id=3, name="B", internal=True),
    ]


def test_file_database_persists_between_instances(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'nested' / 'telemetry.db'}"
    first = TelemetryStore(url)
    first.create_schema()
    first.insert_reading(_reading(42, sensor_id=4))
    first.dispose()

    second = TelemetryStore(url)
    second.create_schema()
    try:
        assert [(r.sensor_id, r.time) for r in second.latest_readings()] == [(4, 42)]
    finally:
        second.dispose()
