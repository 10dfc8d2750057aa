from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable

import typer

from models.records import ReadingType, UnknownReadingTypeError


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def _format_time(nanoseconds: Any) -> str:
    try:
        moment = datetime.fromtimestamp(int(nanoseconds) / 1_000_000_000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return str(nanoseconds)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def _type_label(code: Any) -> str:
    try:
        return ReadingType.from_code(int(code)).label
    except (TypeError, ValueError, UnknownReadingTypeError):
        return f"type {code}"


def render_readings(title: str, readings: Iterable[Dict[str, Any]]) -> None:
    echo_heading(title)
    rows = list(readings)
    if not rows:
        typer.echo("No readings.")
        return
    for reading in rows:
        typer.echo(
            f"  {_format_time(reading.get('time'))}  sensor {reading.get('sensor_id')}  "
            f"{_type_label(reading.get('rtype')):>13} = {reading.get('value')}"
            f"  (seq {reading.get('seqno')})"
        )


def render_sensors(sensors: Iterable[Dict[str, Any]]) -> None:
    echo_heading("Sensors")
    rows = list(sensors)
    if not rows:
        typer.echo("No sensors registered.")
        return
    for sensor in rows:
        suffix = " [internal]" if sensor.get("internal") else ""
        typer.echo(f"  - {sensor.get('sensor_id')}: {sensor.get('name')}{suffix}")
