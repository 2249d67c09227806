from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_latest(device_id: str, payload: Dict[str, Any]) -> None:
    echo_heading("Latest Reading")
    echo_key_values(
        [
            ("device_id", device_id),
            ("temperature", payload.get("temperature")),
            ("timestamp", payload.get("timestamp")),
        ]
    )
