"""Domain models shared by the base station and the collector."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import IntEnum

MAX_SENSOR_ID = 5
UINT16_MAX = 0xFFFF
UINT64_MAX = 0xFFFF_FFFF_FFFF_FFFF

_SENSOR_NAMES = {sensor_id: f"Sensor {sensor_id + 1}" for sensor_id in range(MAX_SENSOR_ID + 1)}


class UnknownSensorError(LookupError):
    """Raised when a sensor id falls outside the radio's pipe range."""


class UnknownReadingTypeError(LookupError):
    """Raised when a reading-type code has no known label."""


class ReadingType(IntEnum):
    """Reading kinds emitted by the sensor firmware."""

    T_NULL = 0
    T_TEMPERATURE = 1
    T_PRESSURE = 2
    T_VOLTAGE = 3

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def from_code(cls, code: int) -> "ReadingType":
        try:
            return cls(code)
        except ValueError as exc:
            raise UnknownReadingTypeError(f"Unknown reading type code {code!r}.") from exc


def sensor_display_name(sensor_id: int) -> str:
    try:
        return _SENSOR_NAMES[sensor_id]
    except KeyError as exc:
        raise UnknownSensorError(f"Unknown sensor id {sensor_id!r}.") from exc


def to_float32(value: float) -> float:
    """Round ``value`` to the nearest float32 and return it as a Python float.

    The result is the shortest decimal that still maps to the same float32,
    so ``21.5`` stays ``21.5`` and ``0.1`` does not turn into
    ``0.10000000149011612`` once serialized.
    """
    (single,) = struct.unpack("<f", struct.pack("<f", value))
    if not math.isfinite(single):
        return single
    for digits in range(1, 10):
        candidate = float(f"{single:.{digits}g}")
        if struct.pack("<f", candidate) == struct.pack("<f", single):
            return candidate
    return single


@dataclass(frozen=True, slots=True)
class Reading:
    """A single decoded sensor reading.

    ``time`` is the receipt timestamp in nanoseconds, taken by the base
    station rather than the sensor.
    """

    time: int
    sensor_id: int
    seqno: int
    rtype: int
    value: float

    def to_wire(self) -> dict[str, int | float]:
        return {
            "time": self.time,
            "sensor_id": self.sensor_id,
            "seqno": self.seqno,
            "rtype": self.rtype,
            "value": to_float32(self.value),
        }


@dataclass(frozen=True, slots=True)
class StoredReading:
    """A persisted reading; ``id`` is assigned by the store."""

    id: int
    time: int
    sensor_id: int
    seqno: int
    rtype: int
    value: float


@dataclass(frozen=True, slots=True)
class Sensor:
    sensor_id: int
    name: str
    internal: bool = False
