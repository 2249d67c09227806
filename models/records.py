"""Domain models shared across the API and the datastore."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single temperature reading reported by a device.

    ``timestamp`` is stamped with the current UTC time when the reading is
    built without one, which is how every ingested reading gets its time.
    """

    device_id: str
    temperature: float
    timestamp: datetime = field(default_factory=utc_now)

    def to_document(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "temperature": self.temperature,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "SensorReading":
        timestamp: datetime = document["timestamp"]
        # BSON dates come back naive unless the client is tz-aware.
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            device_id=document["device_id"],
            temperature=document["temperature"],
            timestamp=timestamp.astimezone(timezone.utc),
        )
