"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


class SaveReadingRequest(BaseModel):
    """Body posted by a device to store one reading."""

    device_id: str = Field(..., description="Identifier of the reporting device.")
    temperature: float = Field(..., description="Measured temperature.")

    @field_validator("device_id", mode="before")
    @classmethod
    def _require_device_id(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("device_id must be a string")
        candidate = value.strip()
        if not candidate:
            raise ValueError("device_id must not be empty")
        return candidate

    @field_validator("temperature", mode="before")
    @classmethod
    def _require_number(cls, value: Any) -> float:
        # bool is an int subclass; "26.5" must not be coerced either.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("temperature must be a number")
        try:
            number = float(value)
        except OverflowError as exc:
            raise ValueError("temperature is out of range") from exc
        if not math.isfinite(number):
            raise ValueError("temperature must be finite")
        return number


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


class LatestReadingResponse(BaseModel):
    """Latest reading for a device; internal identifiers are not exposed."""

    temperature: float
    timestamp: datetime
