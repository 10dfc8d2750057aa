"""Best-effort relay of decoded readings to the collector."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Callable, Optional

import httpx
import typer

from models.records import (
    Reading,
    ReadingType,
    UnknownReadingTypeError,
    UnknownSensorError,
    sensor_display_name,
)

logger = logging.getLogger(__name__)

READINGS_PATH = "/api/v1/readings"


def encode_reading(reading: Reading) -> bytes:
    """Canonical wire form: the five reading fields, compact, in fixed order."""
    return json.dumps(reading.to_wire(), separators=(",", ":")).encode("utf-8")


def format_reading(reading: Reading) -> str:
    """Render a reading as a console line.

    Raises :class:`UnknownSensorError` or :class:`UnknownReadingTypeError`
    when the reading falls outside the display tables.
    """
    name = sensor_display_name(reading.sensor_id)
    label = ReadingType.from_code(reading.rtype).label
    received = datetime.fromtimestamp(reading.time // 1_000_000_000)
    return (
        f"{received:%Y-%m-%d %H:%M:%S} {name:<20} {label:>13} = "
        f"{reading.value:5.3f} ({reading.seqno})"
    )


class Uplink:
    """Sends each reading once to ``endpoint`` or prints it locally.

    Delivery is at-most-once: failures are logged and dropped so the caller
    can go straight back to reading the radio.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: float = 2.0,
        client: Optional[httpx.Client] = None,
        echo: Callable[[str], None] = typer.echo,
    ) -> None:
        self.endpoint = endpoint.rstrip("/") if endpoint else None
        self._echo = echo
        self._client: Optional[httpx.Client] = None
        if self.endpoint:
            self._client = client or httpx.Client(timeout=timeout)

    def send(self, reading: Reading) -> bool:
        if self._client is None:
            return self._print(reading)
        return self._post(reading)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def __enter__(self) -> "Uplink":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def _post(self, reading: Reading) -> bool:
        assert self._client is not None
        url = f"{self.endpoint}{READINGS_PATH}"
        try:
            response = self._client.post(
                url,
                content=encode_reading(reading),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Uplink request failed: %s",
                exc,
                extra={"endpoint": url, "sensor_id": reading.sensor_id, "seqno": reading.seqno},
            )
            return False

        if not response.is_success:
            logger.warning(
                "Collector rejected reading",
                extra={
                    "endpoint": url,
                    "status": response.status_code,
                    "sensor_id": reading.sensor_id,
                    "seqno": reading.seqno,
                },
            )
            return False
        return True

    def _print(self, reading: Reading) -> bool:
        try:
            line = format_reading(reading)
        except (UnknownSensorError, UnknownReadingTypeError) as exc:
            logger.warning(
                "Skipping reading: %s",
                exc,
                extra={"sensor_id": reading.sensor_id, "rtype": reading.rtype},
            )
            return False
        except (OverflowError, OSError, ValueError) as exc:
            logger.warning(
                "Skipping reading with unrepresentable time: %s",
                exc,
                extra={"sensor_id": reading.sensor_id, "seqno": reading.seqno},
            )
            return False
        self._echo(line)
        return True
