"""Reduce one day of readings to candidate extrema and averages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence
from zoneinfo import ZoneInfo

from models.almanac import AverageMetric, HiLowMetric, MovingAverage
from models.records import Reading
from services.partitioner import DayPartitions

NOON_SECONDS = 12 * 3600
MIDNIGHT_SECONDS = 24 * 3600


@dataclass
class DailyMetrics:
    hi_lows: Dict[HiLowMetric, Optional[Reading]] = field(default_factory=dict)
    averages: Dict[AverageMetric, Optional[MovingAverage]] = field(default_factory=dict)


def sort_by_value(readings: Sequence[Reading]) -> list[Reading]:
    return sorted(readings, key=lambda reading: (reading.value, reading.epoch))


def mean(readings: Sequence[Reading]) -> Optional[MovingAverage]:
    if not readings:
        return None
    total = sum(reading.value for reading in readings)
    return MovingAverage(average=total / len(readings), n=len(readings))


def seconds_of_day(reading: Reading, tz: ZoneInfo) -> int:
    """Civil time of day in ``tz``, so DST days compare on the local clock."""
    local = reading.timestamp.astimezone(tz)
    return local.hour * 3600 + local.minute * 60 + local.second


def nearest_to_time(
    readings: Sequence[Reading], target_seconds: int, tz: ZoneInfo
) -> Optional[Reading]:
    """Reading whose local time of day is closest to ``target_seconds``.

    Ties go to the first reading in iteration order.
    """
    best: Optional[Reading] = None
    best_distance: Optional[int] = None
    for reading in readings:
        distance = abs(seconds_of_day(reading, tz) - target_seconds)
        if best_distance is None or distance < best_distance:
            best = reading
            best_distance = distance
    return best


def _single_point(reading: Optional[Reading]) -> Optional[MovingAverage]:
    if reading is None:
        return None
    return MovingAverage(average=reading.value, n=1)


def _first(readings: Sequence[Reading]) -> Optional[Reading]:
    return readings[0] if readings else None


def _last(readings: Sequence[Reading]) -> Optional[Reading]:
    return readings[-1] if readings else None


def extract_daily_metrics(
    sorted_readings: Sequence[Reading], partitions: DayPartitions, tz: ZoneInfo
) -> DailyMetrics:
    """Build the day's candidates.

    ``sorted_readings`` and the partition subsets must be ordered by
    ``(value, timestamp)``.
    """
    daytime = partitions.daytime
    nighttime = partitions.nighttime

    hi_lows = {
        HiLowMetric.hottest_days: _last(sorted_readings),
        HiLowMetric.coldest_days: _first(sorted_readings),
        HiLowMetric.hottest_nighttime: _last(nighttime),
        HiLowMetric.coldest_nighttime: _first(nighttime),
        HiLowMetric.hottest_daytime: _last(daytime),
        HiLowMetric.coldest_daytime: _first(daytime),
    }
    averages = {
        AverageMetric.average: mean(sorted_readings),
        AverageMetric.average_nighttime: mean(nighttime),
        AverageMetric.average_daytime: mean(daytime),
        AverageMetric.average_noon: _single_point(
            nearest_to_time(sorted_readings, NOON_SECONDS, tz)
        ),
        AverageMetric.average_midnight: _single_point(
            nearest_to_time(sorted_readings, MIDNIGHT_SECONDS, tz)
        ),
    }
    return DailyMetrics(hi_lows=hi_lows, averages=averages)
