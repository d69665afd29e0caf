"""Fold one day of readings into the almanac."""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, Optional, Sequence

from models.almanac import (
    ALL,
    AlmanacSeason,
    AlmanacYear,
    Almanac,
    AverageMetric,
    HiLowMetric,
    ReadingType,
    RecordedReading,
    Season,
)
from models.records import Reading, TemperatureDay
from services.averages import combine
from services.metrics import DailyMetrics, extract_daily_metrics, sort_by_value
from services.partitioner import get_season, parse_day, partition_day, start_of_day
from services.sequences import (
    update_first_freeze_sequence,
    update_hi_low_sequence,
    update_last_freeze_sequence,
)
from settings import AlmanacConfig

logger = logging.getLogger(__name__)

HI_LOW_KINDS: Dict[HiLowMetric, ReadingType] = {
    HiLowMetric.hottest_days: ReadingType.high,
    HiLowMetric.coldest_days: ReadingType.low,
    HiLowMetric.hottest_nighttime: ReadingType.high,
    HiLowMetric.coldest_nighttime: ReadingType.low,
    HiLowMetric.hottest_daytime: ReadingType.high,
    HiLowMetric.coldest_daytime: ReadingType.low,
}


def first_freeze(readings: Iterable[Reading]) -> Optional[Reading]:
    """First freezing reading in iteration order.

    Over readings sorted by ``(value, timestamp)`` this is the coldest freezing
    reading of the day, not the earliest by clock time.
    """
    return next((reading for reading in readings if reading.value <= 0), None)


def last_freeze(readings: Iterable[Reading]) -> Optional[Reading]:
    """Chronologically latest freezing reading."""
    freezing = [reading for reading in readings if reading.value <= 0]
    if not freezing:
        return None
    return max(freezing, key=lambda reading: reading.epoch)


def drop_invalid(readings: Sequence[Reading]) -> list[Reading]:
    return [reading for reading in readings if math.isfinite(reading.value)]


class AlmanacUpdater:
    """Pure almanac update component; persistence is left to the caller."""

    def __init__(self, config: Optional[AlmanacConfig] = None) -> None:
        self.config = config or AlmanacConfig()

    def update(self, almanac: Almanac, temperature_day: TemperatureDay) -> Almanac:
        try:
            day = parse_day(temperature_day.day)
        except ValueError:
            logger.warning(
                "Skipping day with malformed date",
                extra={"day": temperature_day.day, "reason": "malformed day"},
            )
            return almanac

        tz = self.config.tz
        year_label = str(day.year)
        year = almanac.ensure_year(year_label)
        all_time = almanac.ensure_year(ALL)

        readings = drop_invalid(temperature_day.readings)
        dropped = len(temperature_day.readings) - len(readings)
        if dropped:
            logger.warning(
                "Dropped non-finite readings",
                extra={"day": temperature_day.day, "dropped_count": dropped},
            )

        sorted_readings = sort_by_value(readings)
        partitions = partition_day(day, sorted_readings, self.config)
        metrics = extract_daily_metrics(sorted_readings, partitions, tz)
        season = get_season(start_of_day(day, tz), tz)

        targets = (
            year.season(Season.year),
            all_time.season(Season.year),
            year.season(season),
            all_time.season(season),
        )
        self._update_hi_lows(metrics, targets)

        day_key = day.isoformat()
        if day_key in year.averaged_days:
            logger.debug(
                "Averages already include day",
                extra={"day": temperature_day.day, "year": year_label},
            )
        elif any(average is not None for average in metrics.averages.values()):
            self._update_averages(metrics, targets)
            year.averaged_days.append(day_key)
            year.averaged_days.sort()

        self._update_freezes(year, partitions.before_summer, partitions.after_summer)

        logger.debug(
            "Updated almanac",
            extra={
                "day": temperature_day.day,
                "year": year_label,
                "season": season.value,
                "reading_count": len(sorted_readings),
            },
        )
        return almanac

    def update_many(self, almanac: Almanac, days: Iterable[TemperatureDay]) -> Almanac:
        for temperature_day in days:
            self.update(almanac, temperature_day)
        return almanac

    def _update_hi_lows(
        self, metrics: DailyMetrics, targets: Sequence[AlmanacSeason]
    ) -> None:
        size = self.config.sequence_size
        for metric, kind in HI_LOW_KINDS.items():
            candidate = metrics.hi_lows.get(metric)
            if candidate is None:
                continue
            recorded = RecordedReading.from_reading(candidate)
            for target in targets:
                update_hi_low_sequence(recorded, target.sequence(metric), kind, size)

    def _update_averages(
        self, metrics: DailyMetrics, targets: Sequence[AlmanacSeason]
    ) -> None:
        for metric in AverageMetric:
            daily = metrics.averages.get(metric)
            if daily is None:
                continue
            for target in targets:
                target.set_average(metric, combine(target.get_average(metric), daily))

    def _update_freezes(
        self,
        year: AlmanacYear,
        before_summer: Sequence[Reading],
        after_summer: Sequence[Reading],
    ) -> None:
        size = self.config.sequence_size

        def recorded(reading: Optional[Reading]) -> Optional[RecordedReading]:
            return RecordedReading.from_reading(reading) if reading is not None else None

        update_first_freeze_sequence(
            recorded(first_freeze(after_summer)), year.first_freezes_after_summer, size
        )
        update_first_freeze_sequence(
            recorded(first_freeze(before_summer)), year.first_freezes_before_summer, size
        )
        update_last_freeze_sequence(
            recorded(last_freeze(before_summer)), year.last_freezes_before_summer, size
        )
