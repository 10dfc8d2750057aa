from __future__ import annotations

import struct

import pytest

from models.records import Reading
from station.decoder import FRAME_SIZE, FloatPolicy, FrameDecoder, encode_frame


def _frame(time: int, sensor_id: int, rtype: int, value: float, seqno: int) -> bytes:
    return (
        struct.pack("=Q", time)
        + struct.pack("=B", sensor_id)
        + struct.pack("=H", rtype)
        + struct.pack("<f", value)
        + struct.pack("=H", seqno)
    )


def test_decodes_reference_frame() -> None:
    decoder = FrameDecoder()
    frame = _frame(1_000_000_000, 2, 1, 21.5, 7)
    assert len(frame) == FRAME_SIZE

    reading = decoder.decode(frame)

    assert reading == Reading(time=1_000_000_000, sensor_id=2, seqno=7, rtype=1, value=21.5)
    assert decoder.stats.decoded == 1
    assert decoder.stats.incidents == 0


def test_value_is_little_endian_regardless_of_host_order() -> None:
    frame = bytearray(_frame(5, 0, 3, 0.0, 0))
    frame[11:15] = bytes([0x00, 0x00, 0xAC, 0x41])  # 21.5f, little-endian

    reading = FrameDecoder().decode(bytes(frame))

    assert reading is not None
    assert reading.value == 21.5


def test_seqno_keeps_full_unsigned_range() -> None:
    reading = FrameDecoder().decode(_frame(1, 5, 2, 1.0, 0xFFFF))

    assert reading is not None
    assert reading.seqno == 65535
    assert reading.sensor_id == 5


@pytest.mark.parametrize("length", [0, 1, 8, 16, 18, 32, 64])
def test_wrong_sized_frames_are_counted_and_skipped(length: int) -> None:
    decoder = FrameDecoder()

    assert decoder.decode(b"\x01" * length) is None
    assert decoder.stats.malformed_frames == 1
    assert decoder.stats.incidents == 1
    assert decoder.stats.decoded == 0


def test_decoder_keeps_going_after_malformed_frames() -> None:
    decoder = FrameDecoder()

    decoder.decode(b"short")
    reading = decoder.decode(_frame(10, 1, 1, 2.5, 3))

    assert reading is not None
    assert reading.value == 2.5
    assert decoder.stats.malformed_frames == 1
    assert decoder.stats.decoded == 1


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_zero_policy_substitutes_non_finite_values(value: float) -> None:
    decoder = FrameDecoder(FloatPolicy.zero)

    reading = decoder.decode(_frame(10, 1, 1, value, 3))

    assert reading is not None
    assert reading.value == 0.0
    assert decoder.stats.undecodable_values == 1
    assert decoder.stats.decoded == 1


def test_drop_policy_rejects_non_finite_values() -> None:
    decoder = FrameDecoder("drop")

    assert decoder.decode(_frame(10, 1, 1, float("nan"), 3)) is None
    assert decoder.stats.undecodable_values == 1
    assert decoder.stats.decoded == 0


def test_encode_frame_matches_layout() -> None:
    reading = Reading(time=1_000_000_000, sensor_id=2, seqno=7, rtype=1, value=21.5)

    assert encode_frame(reading) == _frame(1_000_000_000, 2, 1, 21.5, 7)
