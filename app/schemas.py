"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_validator

from models.almanac import AlmanacYear
from models.records import Reading, TemperatureDay
from services.partitioner import parse_day


class ReadingPayload(BaseModel):
    """A reading submitted by an external provider."""

    timestamp: datetime = Field(..., description="ISO-8601 instant; naive values are UTC.")
    value: float


class TemperatureDayPayload(BaseModel):
    """One sensor-local day of readings."""

    day: str = Field(..., description="Civil date in the reference timezone (YYYY-MM-DD).")
    readings: List[ReadingPayload] = Field(default_factory=list)

    @field_validator("day")
    @classmethod
    def _check_day(cls, value: str) -> str:
        return parse_day(value).isoformat()

    def to_domain(self, tz: ZoneInfo) -> TemperatureDay:
        readings = []
        for reading in self.readings:
            stamp = reading.timestamp
            if stamp.tzinfo is None:
                stamp = stamp.replace(tzinfo=timezone.utc)
            readings.append(Reading(timestamp=stamp.astimezone(tz), value=reading.value))
        return TemperatureDay(day=self.day, readings=readings)


class DayUpdateResponse(BaseModel):
    """Result of folding one day into the almanac."""

    day: str
    year: str
    almanac_year: AlmanacYear
