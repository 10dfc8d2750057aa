from __future__ import annotations

import json
import struct
from typing import List

import httpx
import pytest

from app.schemas import ReadingPayload
from models.records import Reading
from station.uplink import Uplink, encode_reading, format_reading


def _reading(**overrides) -> Reading:
    fields = dict(time=1_000_000_000, sensor_id=2, seqno=7, rtype=1, value=21.5)
    fields.update(overrides)
    return Reading(**fields)


def _uplink(handler) -> Uplink:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return Uplink(endpoint="http://collector:8080/", client=client)


def test_wire_form_has_exactly_the_five_fields() -> None:
    body = encode_reading(_reading())

    assert body == b'{"time":1000000000,"sensor_id":2,"seqno":7,"rtype":1,"value":21.5}'


def test_wire_round_trip_is_exact_for_representable_values() -> None:
    original = _reading(time=2**63 + 5, seqno=65535, rtype=3, value=-0.25)

    decoded = ReadingPayload.model_validate_json(encode_reading(original)).to_reading()

    assert decoded == original


def test_wire_round_trip_preserves_float32_bits() -> None:
    (value,) = struct.unpack("<f", struct.pack("<f", 0.1))
    original = _reading(value=value)

    body = encode_reading(original)
    decoded = ReadingPayload.model_validate_json(body).to_reading()

    assert json.loads(body)["value"] == 0.1
    assert struct.pack("<f", decoded.value) == struct.pack("<f", original.value)


def test_send_posts_json_to_readings_endpoint() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"id": 1})

    with _uplink(handler) as uplink:
        assert uplink.send(_reading()) is True

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == "http://collector:8080/api/v1/readings"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {
        "time": 1_000_000_000,
        "sensor_id": 2,
        "seqno": 7,
        "rtype": 1,
        "value": 21.5,
    }


def test_send_swallows_transport_errors() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    uplink = _uplink(handler)

    assert uplink.send(_reading()) is False
    assert len(calls) == 1  # no retry


def test_send_reports_non_success_status_without_raising() -> None:
    uplink = _uplink(lambda request: httpx.Response(500, text="database is locked"))

    assert uplink.send(_reading()) is False


def test_without_endpoint_readings_are_printed() -> None:
    lines: List[str] = []
    uplink = Uplink(endpoint=None, echo=lines.append)

    assert uplink.send(_reading()) is True

    assert len(lines) == 1
    assert lines[0].endswith(f"{'Sensor 3':<20} {'T_TEMPERATURE':>13} = 21.500 (7)")


@pytest.mark.parametrize(
    "overrides",
    [{"sensor_id": 6}, {"sensor_id": 255}, {"rtype": 4}, {"rtype": 0xFFFF}],
)
def test_unknown_sensor_or_type_is_skipped_when_printing(overrides) -> None:
    lines: List[str] = []
    uplink = Uplink(endpoint=None, echo=lines.append)

    assert uplink.send(_reading(**overrides)) is False
    assert lines == []


def test_format_reading_uses_display_tables() -> None:
    line = format_reading(_reading(sensor_id=0, rtype=3, value=3.3, seqno=12))

    assert f"{'Sensor 1':<20} {'T_VOLTAGE':>13} = 3.300 (12)" in line
