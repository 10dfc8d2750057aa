from __future__ import annotations

from typing import List

import pytest

from models.records import Reading
from station.decoder import FrameDecoder, encode_frame
from station.runner import BaseStation


class FakeDevice:
    def __init__(self, chunks: List[bytes], error: Exception | None = None) -> None:
        self.chunks = list(chunks)
        self.error = error

    def read(self) -> bytes:
        if self.chunks:
            return self.chunks.pop(0)
        if self.error is not None:
            raise self.error
        return b""


class RecordingUplink:
    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.sent: List[Reading] = []

    def send(self, reading: Reading) -> bool:
        self.sent.append(reading)
        return self.accept


def _reading(seqno: int) -> Reading:
    return Reading(time=1_700_000_000_000_000_000 + seqno, sensor_id=1, seqno=seqno, rtype=2, value=1013.25)


def test_station_relays_valid_frames_until_eof() -> None:
    device = FakeDevice([encode_frame(_reading(1)), b"\x00" * 9, encode_frame(_reading(2))])
    uplink = RecordingUplink()
    station = BaseStation(device, FrameDecoder(), uplink)

    stats = station.run()

    assert [reading.seqno for reading in uplink.sent] == [1, 2]
    assert station.delivered == 2
    assert stats.decoded == 2
    assert stats.malformed_frames == 1


def test_failed_uplink_does_not_stop_the_loop() -> None:
    device = FakeDevice([encode_frame(_reading(1)), encode_frame(_reading(2))])
    uplink = RecordingUplink(accept=False)
    station = BaseStation(device, FrameDecoder(), uplink)

    station.run()

    assert len(uplink.sent) == 2
    assert station.delivered == 0


def test_device_errors_are_fatal() -> None:
    device = FakeDevice([encode_frame(_reading(1))], error=OSError(5, "Input/output error"))
    uplink = RecordingUplink()
    station = BaseStation(device, FrameDecoder(), uplink)

    with pytest.raises(OSError):
        station.run()

    assert len(uplink.sent) == 1
