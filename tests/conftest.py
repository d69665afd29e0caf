"""Shared fixtures: a realistic single-day sensor feed for 2021-01-02."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Tuple
from zoneinfo import ZoneInfo

import pytest

from models.records import Reading, TemperatureDay

VANCOUVER = ZoneInfo("America/Vancouver")
REFERENCE_DAY = "2021-01-02"

NOON_READING = (timedelta(hours=12, seconds=59), 0.75)
LAST_READING = (timedelta(hours=23, minutes=53, seconds=6), 1.5625)
COLDEST_INDEX = 30


def local(day: str, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    year, month, dom = (int(part) for part in day.split("-"))
    return datetime(year, month, dom, hour, minute, second, tzinfo=VANCOUVER)


def readings_at(day: str, points: Iterable[Tuple[int, int, float]]) -> List[Reading]:
    """Build readings from ``(hour, minute, value)`` tuples."""
    return [Reading(timestamp=local(day, hour, minute), value=value) for hour, minute, value in points]


def build_reference_day() -> TemperatureDay:
    """150 readings, roughly every 9.5 minutes, valued between 0.0625 and 1.5625."""
    start = local(REFERENCE_DAY)
    readings = []
    for index in range(148):
        offset = timedelta(seconds=600 + 570 * index)
        value = 0.0625 if index == COLDEST_INDEX else 0.125 + 0.0625 * (index % 20)
        readings.append(Reading(timestamp=start + offset, value=value))
    for offset, value in (NOON_READING, LAST_READING):
        readings.append(Reading(timestamp=start + offset, value=value))
    return TemperatureDay(day=REFERENCE_DAY, readings=readings)


@pytest.fixture()
def reference_day() -> TemperatureDay:
    return build_reference_day()
