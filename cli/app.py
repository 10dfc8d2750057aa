from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_readings, render_sensors
from logging_config import configure_logging
from settings import get_settings
from station.decoder import FloatPolicy, FrameDecoder
from station.device import RadioDevice
from station.runner import BaseStation
from station.uplink import Uplink

logger = logging.getLogger(__name__)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Base station and collector utilities for the radio telemetry system.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Collector base URL (defaults to API_BASE_URL env or http://localhost:8080).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for collector responses.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("station")
def station_command(
    device: Optional[Path] = typer.Option(
        None,
        "--device",
        "-d",
        help="Radio character device (defaults to TELEMETRY_DEVICE_PATH).",
    ),
    endpoint: Optional[str] = typer.Option(
        None,
        "--endpoint",
        "-e",
        help="Collector URL to upload readings to; readings are printed when unset.",
    ),
    float_policy: Optional[FloatPolicy] = typer.Option(
        None,
        "--float-policy",
        help="Handling of frames whose value is not a finite number.",
    ),
) -> None:
    """Relay frames from the radio device to the collector."""
    configure_logging()
    settings = get_settings()
    device_path = device or Path(settings.device_path)
    decoder = FrameDecoder(float_policy or settings.float_policy)
    uplink = Uplink(endpoint or settings.uplink_endpoint, timeout=settings.uplink_timeout)

    with uplink:
        try:
            with RadioDevice(device_path) as radio:
                BaseStation(radio, decoder, uplink).run()
        except OSError as exc:
            logger.critical("Radio device failure on %s: %s", device_path, exc)
            typer.secho(f"Radio device failure: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc


@app.command("serve")
def serve_command(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: int = typer.Option(8080, "--port", "-p", help="Port to listen on."),
) -> None:
    """Run the collector HTTP service."""
    import uvicorn

    uvicorn.run("app.main:app", host=host, port=port)


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    start: Optional[int] = typer.Option(None, "--start", min=0, help="Inclusive lower bound (ns)."),
    end: Optional[int] = typer.Option(None, "--end", min=0, help="Exclusive upper bound (ns)."),
) -> None:
    """List stored readings in a time range."""
    state = _get_state(ctx)
    render_readings("Readings", state.client.get_readings(start=start, end=end))


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recent reading of every sensor."""
    state = _get_state(ctx)
    render_readings("Latest readings", state.client.get_latest())


@app.command("sensors")
def sensors_command(ctx: typer.Context) -> None:
    """List the sensor directory."""
    state = _get_state(ctx)
    render_sensors(state.client.get_sensors())


@app.command("set-sensor")
def set_sensor_command(
    ctx: typer.Context,
    sensor_id: int = typer.Argument(..., min=0, max=5, help="Radio pipe of the sensor."),
    name: str = typer.Argument(..., help="Display name."),
    internal: bool = typer.Option(False, "--internal/--public", help="Mark as an infrastructure sensor."),
) -> None:
    """Create or rename a sensor."""
    state = _get_state(ctx)
    sensor = state.client.put_sensor(sensor_id, name, internal)
    typer.secho(f"Saved sensor {sensor.get('sensor_id')}: {sensor.get('name')}", fg=typer.colors.GREEN)
