from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_latest


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Act as a device against the sensor relay API.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def simulate_temperature() -> float:
    """Random reading in [20.0, 30.0) with one decimal, like the firmware's demo sensor."""
    return random.randint(200, 299) / 10.0


def _show_latest(state: CLIState, device_id: str) -> None:
    payload = state.client.get_latest(device_id)
    if payload is None:
        typer.secho(f"No data found for device {device_id}.", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)
    render_latest(device_id, payload)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Relay API base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    device: Optional[str] = typer.Option(
        None,
        "--device",
        "-d",
        help="Device identifier (defaults to DEVICE_ID env or ESP32_001).",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, device_id=device)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("save")
def save_command(
    ctx: typer.Context,
    temperature: float = typer.Argument(..., help="Temperature to report."),
) -> None:
    """Push a single reading."""
    state = _get_state(ctx)
    device_id = state.config.device_id
    message = state.client.save_reading(device_id, temperature)
    typer.secho(f"{device_id} @ {temperature}: {message}", fg=typer.colors.GREEN)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Fetch the most recent reading stored for the device."""
    state = _get_state(ctx)
    _show_latest(state, state.config.device_id)


@app.command("simulate")
def simulate_command(
    ctx: typer.Context,
    count: int = typer.Option(5, "--count", "-n", min=1, help="Number of readings to push."),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        min=0.0,
        help="Seconds between readings (defaults to CLI_SIMULATE_INTERVAL env or 5).",
    ),
) -> None:
    """Push simulated readings, then show what the relay reports as latest."""
    state = _get_state(ctx)
    device_id = state.config.device_id
    delay = interval if interval is not None else state.config.simulate_interval

    for index in range(count):
        if index:
            time.sleep(delay)
        temperature = simulate_temperature()
        state.client.save_reading(device_id, temperature)
        typer.echo(f"[{index + 1}/{count}] sent {device_id} @ {temperature}")

    typer.echo()
    _show_latest(state, device_id)
