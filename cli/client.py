from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the collector's query and sensor endpoints."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_readings(self, start: Optional[int] = None, end: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {}
        if start is not None:
            params["start"] = str(start)
        if end is not None:
            params["end"] = str(end)
        return self._get("/api/v1/readings", params=params)

    def get_latest(self) -> List[Dict[str, Any]]:
        return self._get("/api/v1/readings/latest")

    def get_sensors(self) -> List[Dict[str, Any]]:
        return self._get("/api/v1/sensors")

    def put_sensor(self, sensor_id: int, name: str, internal: bool) -> Dict[str, Any]:
        try:
            response = self._client.post(
                "/api/v1/sensors",
                json={"sensor_id": sensor_id, "name": name, "internal": internal},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            self._handle_transport_error(exc)
        return response.json()

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            self._handle_transport_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    def _handle_transport_error(self, exc: httpx.HTTPError) -> None:
        typer.secho(
            f"Could not reach collector at {self._config.base_url}: {exc}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)
