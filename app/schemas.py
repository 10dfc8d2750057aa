"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from models.records import MAX_SENSOR_ID, UINT16_MAX, UINT64_MAX, Reading, to_float32


class ReadingPayload(BaseModel):
    """Body of ``POST /api/v1/readings`` as produced by the base station uplink."""

    model_config = ConfigDict(extra="ignore")

    time: int = Field(..., ge=0, le=UINT64_MAX, description="Receipt time in ns since epoch.")
    sensor_id: int = Field(..., ge=0, le=MAX_SENSOR_ID)
    seqno: int = Field(..., ge=0, le=UINT16_MAX)
    rtype: int = Field(..., ge=0, le=UINT16_MAX)
    value: float = Field(..., allow_inf_nan=False)

    @field_validator("value")
    @classmethod
    def _fit_float32(cls, value: float) -> float:
        try:
            return to_float32(value)
        except OverflowError as exc:
            raise ValueError("value does not fit in a 32-bit float") from exc

    def to_reading(self) -> Reading:
        return Reading(
            time=self.time,
            sensor_id=self.sensor_id,
            seqno=self.seqno,
            rtype=self.rtype,
            value=self.value,
        )


class ReadingRecord(BaseModel):
    """A persisted reading."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    time: int
    sensor_id: int
    seqno: int
    rtype: int
    value: float

    @field_serializer("value")
    def _serialize_value(self, value: float) -> float:
        return to_float32(value)


class IngestResponse(BaseModel):
    id: int = Field(..., description="Store-assigned identifier of the new reading.")


class SensorRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sensor_id: int = Field(..., ge=0, le=MAX_SENSOR_ID)
    name: str = Field(..., min_length=1, max_length=64)
    internal: bool = False
