from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_DEVICE_ID = "ESP32_001"
DEFAULT_SIMULATE_INTERVAL = 5.0

_BASE_URL_ENV = "API_BASE_URL"
_DEVICE_ID_ENV = "DEVICE_ID"
_SIMULATE_INTERVAL_ENV = "CLI_SIMULATE_INTERVAL"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    device_id: str = DEFAULT_DEVICE_ID
    simulate_interval: float = DEFAULT_SIMULATE_INTERVAL


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def load_config(
    base_url: Optional[str] = None,
    device_id: Optional[str] = None,
    simulate_interval: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    device = (device_id or os.getenv(_DEVICE_ID_ENV) or "").strip() or DEFAULT_DEVICE_ID
    if simulate_interval is None:
        simulate_interval = _read_float(
            os.getenv(_SIMULATE_INTERVAL_ENV), DEFAULT_SIMULATE_INTERVAL
        )
    return CLIConfig(
        base_url=url.rstrip("/"),
        device_id=device,
        simulate_interval=simulate_interval,
    )
