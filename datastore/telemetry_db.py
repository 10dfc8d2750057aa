from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Float, ForeignKey, Integer, String, create_engine, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from models.records import Reading, Sensor, StoredReading
from settings import get_settings

# SQLite integers are signed 64-bit.
_SQL_INT_MAX = 2**63 - 1


class Base(DeclarativeBase):
    pass


class ReadingRow(Base):
    __tablename__ = "readings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    time: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    sensor_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    seqno: Mapped[int] = mapped_column(Integer, nullable=False)
    rtype: Mapped[int] = mapped_column("type", Integer, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)


class SensorRow(Base):
    __tablename__ = "sensors"

    sensor_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class LatestReadingRow(Base):
    """Most recent reading per sensor, kept current by :meth:`TelemetryStore.insert_reading`."""

    __tablename__ = "latest_readings"

    sensor_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    last_reading_id: Mapped[int] = mapped_column(ForeignKey("readings.id"), nullable=False)


def _to_stored(row: ReadingRow) -> StoredReading:
    return StoredReading(
        id=row.id,
        time=row.time,
        sensor_id=row.sensor_id,
        seqno=row.seqno,
        rtype=row.rtype,
        value=row.value,
    )


def _build_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url)

    options: dict = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    else:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, **options)


class TelemetryStore:
    """Durable store for readings and the sensor directory.

    Readings are append-only. Writes are serialized so the latest-reading
    pointer for a sensor is never updated by two inserts at once.
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self.engine = _build_engine(database_url)
        self._sessions = sessionmaker(self.engine, expire_on_commit=False)
        self._lock = Lock()

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    def insert_reading(self, reading: Reading) -> StoredReading:
        with self._lock, self._sessions.begin() as session:
            row = ReadingRow(
                time=reading.time,
                sensor_id=reading.sensor_id,
                seqno=reading.seqno,
                rtype=reading.rtype,
                value=reading.value,
            )
            session.add(row)
            session.flush()

            latest = session.get(LatestReadingRow, reading.sensor_id)
            if latest is None:
                session.add(LatestReadingRow(sensor_id=reading.sensor_id, last_reading_id=row.id))
            else:
                current = session.get(ReadingRow, latest.last_reading_id)
                if current is None or current.time <= row.time:
                    latest.last_reading_id = row.id
            return _to_stored(row)

    def readings_between(
        self, start: Optional[int] = None, end: Optional[int] = None
    ) -> list[StoredReading]:
        """Readings with ``start <= time < end``, oldest first. Either bound may be omitted."""
        if start is not None and start > _SQL_INT_MAX:
            return []
        if end is not None and end > _SQL_INT_MAX:
            end = None
        query = select(ReadingRow)
        if start is not None:
            query = query.where(ReadingRow.time >= start)
        if end is not None:
            query = query.where(ReadingRow.time < end)
        query = query.order_by(ReadingRow.time, ReadingRow.id)
        with self._sessions() as session:
            return [_to_stored(row) for row in session.scalars(query)]

    def latest_readings(self) -> list[StoredReading]:
        query = (
            select(ReadingRow)
            .join(LatestReadingRow, LatestReadingRow.last_reading_id == ReadingRow.id)
            .order_by(ReadingRow.sensor_id)
        )
        with self._sessions() as session:
            return [_to_stored(row) for row in session.scalars(query)]

    def sensors(self) -> list[Sensor]:
        query = select(SensorRow).order_by(SensorRow.sensor_id)
        with self._sessions() as session:
            return [
                Sensor(sensor_id=row.sensor_id, name=row.name, internal=row.internal)
                for row in session.scalars(query)
            ]

    def upsert_sensor(self, sensor: Sensor) -> Sensor:
        with self._lock, self._sessions.begin() as session:
            session.merge(
                SensorRow(sensor_id=sensor.sensor_id, name=sensor.name, internal=sensor.internal)
            )
        return sensor


@lru_cache
def build_default_store(database_url: Optional[str] = None) -> TelemetryStore:
    settings = get_settings()
    store = TelemetryStore(settings.database_url if database_url is None else database_url)
    store.create_schema()
    return store
