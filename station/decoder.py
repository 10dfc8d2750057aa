"""Fixed-layout radio frame decoding."""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.records import Reading

logger = logging.getLogger(__name__)

FRAME_SIZE = 17

# "=" is host byte order with standard sizes and no padding.
_TIME = struct.Struct("=Q")
_PIPE = struct.Struct("=B")
_RTYPE = struct.Struct("=H")
_VALUE = struct.Struct("<f")
_SEQNO = struct.Struct("=H")


class FloatPolicy(str, Enum):
    """What to do with a frame whose value cannot be represented."""

    zero = "zero"
    drop = "drop"


@dataclass
class DecoderStats:
    decoded: int = 0
    malformed_frames: int = 0
    undecodable_values: int = 0

    @property
    def incidents(self) -> int:
        return self.malformed_frames + self.undecodable_values


class FrameDecoder:
    """Turns raw radio frames into :class:`Reading` values.

    Only frames of exactly ``FRAME_SIZE`` bytes are accepted; anything else
    is counted and skipped. Integrity checking is left to the radio link.
    """

    def __init__(self, float_policy: FloatPolicy | str = FloatPolicy.zero) -> None:
        self.float_policy = FloatPolicy(float_policy)
        self.stats = DecoderStats()

    def decode(self, frame: bytes) -> Optional[Reading]:
        if len(frame) != FRAME_SIZE:
            self.stats.malformed_frames += 1
            logger.warning(
                "Skipping malsized frame",
                extra={"frame_length": len(frame), "reason": "size"},
            )
            return None

        (timestamp,) = _TIME.unpack_from(frame, 0)
        (pipe,) = _PIPE.unpack_from(frame, 8)
        (rtype,) = _RTYPE.unpack_from(frame, 9)
        (value,) = _VALUE.unpack_from(frame, 11)
        (seqno,) = _SEQNO.unpack_from(frame, 15)

        if not math.isfinite(value):
            self.stats.undecodable_values += 1
            if self.float_policy is FloatPolicy.drop:
                logger.warning(
                    "Dropping frame with undecodable value",
                    extra={"sensor_id": pipe, "seqno": seqno, "reason": "non-finite"},
                )
                return None
            logger.warning(
                "Substituting 0.0 for undecodable value",
                extra={"sensor_id": pipe, "seqno": seqno, "reason": "non-finite"},
            )
            value = 0.0

        self.stats.decoded += 1
        return Reading(time=timestamp, sensor_id=pipe, seqno=seqno, rtype=rtype, value=value)


def encode_frame(reading: Reading) -> bytes:
    """Build a radio frame for ``reading``; the inverse of :meth:`FrameDecoder.decode`."""
    return b"".join(
        (
            _TIME.pack(reading.time),
            _PIPE.pack(reading.sensor_id),
            _RTYPE.pack(reading.rtype),
            _VALUE.pack(reading.value),
            _SEQNO.pack(reading.seqno),
        )
    )
