"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


@dataclass(frozen=True, slots=True)
class Reading:
    """A single outdoor temperature sample, timestamped with an aware instant."""

    timestamp: datetime
    value: float

    @property
    def epoch(self) -> float:
        return self.timestamp.timestamp()


@dataclass(slots=True)
class TemperatureDay:
    """One sensor-local calendar day of readings, in no particular order."""

    day: str
    readings: List[Reading] = field(default_factory=list)
