from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig

SAVE_PATH = "/api/v1/data/save"
LATEST_PATH = "/api/v1/data/latest"


class ApiClient:
    """HTTP client playing the device's side of the relay API."""

    def __init__(
        self, config: CLIConfig, transport: Optional[httpx.BaseTransport] = None
    ) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=10.0, transport=transport)

    def close(self) -> None:
        self._client.close()

    def save_reading(self, device_id: str, temperature: float) -> str:
        try:
            response = self._client.post(
                SAVE_PATH,
                json={"device_id": device_id, "temperature": temperature},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            self._handle_transport_error(exc)
        return response.json().get("message", "")

    def get_latest(self, device_id: str) -> Optional[Dict[str, Any]]:
        """Return the latest reading, or ``None`` when the device has no data."""
        try:
            response = self._client.get(LATEST_PATH, params={"device": device_id})
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            self._handle_transport_error(exc)
        return response.json()

    def _handle_transport_error(self, exc: httpx.TransportError) -> None:
        typer.secho(
            f"Could not reach {self._config.base_url}: {exc}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        try:
            data = exc.response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            detail = data.get("error")
        else:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
