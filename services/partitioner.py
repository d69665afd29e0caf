"""Day/night, summer split and astronomical season classification.

Every boundary is built as an aware datetime in the reference timezone and all
comparisons are made on epoch seconds, never on wall-clock fields.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Sequence
from zoneinfo import ZoneInfo

from models.almanac import Season
from models.records import Reading
from settings import AlmanacConfig

logger = logging.getLogger(__name__)

# Equinox and solstice instants for 2021. They are reused for every year, which
# drifts by up to about a day near the boundaries.
REFERENCE_YEAR = 2021
_SEASON_STARTS = (
    (Season.spring, datetime(2021, 3, 20, 9, 37, tzinfo=timezone.utc)),
    (Season.summer, datetime(2021, 6, 21, 3, 32, tzinfo=timezone.utc)),
    (Season.fall, datetime(2021, 9, 22, 19, 21, tzinfo=timezone.utc)),
    (Season.winter, datetime(2021, 12, 21, 15, 59, tzinfo=timezone.utc)),
)


@dataclass
class DayPartitions:
    daytime: List[Reading] = field(default_factory=list)
    nighttime: List[Reading] = field(default_factory=list)
    before_summer: List[Reading] = field(default_factory=list)
    after_summer: List[Reading] = field(default_factory=list)


def parse_day(day: str) -> date:
    """Parse a ``YYYY-MM-DD`` string, raising ``ValueError`` when malformed."""
    return datetime.strptime(day.strip(), "%Y-%m-%d").date()


def local_datetime(day: date, at: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, at, tzinfo=tz)


def start_of_day(day: date, tz: ZoneInfo) -> datetime:
    return local_datetime(day, time(0, 0), tz)


def summer_split(year: int, config: AlmanacConfig) -> datetime:
    return datetime(year, config.summer_split_month, config.summer_split_day, tzinfo=config.tz)


def partition_day(
    day: date, readings: Sequence[Reading], config: AlmanacConfig
) -> DayPartitions:
    """Split readings into daytime/nighttime and before/after-summer subsets.

    Input order is preserved within every subset.
    """
    tz = config.tz
    previous_day = day - timedelta(days=1)
    next_day = day + timedelta(days=1)
    dawn = time(config.daytime_start_hour, 0)
    dusk = time(config.daytime_end_hour, 0)

    day_start = local_datetime(day, dawn, tz).timestamp()
    day_end = local_datetime(day, dusk, tz).timestamp()
    previous_dusk = local_datetime(previous_day, dusk, tz).timestamp()
    next_dawn = local_datetime(next_day, dawn, tz).timestamp()
    split = summer_split(day.year, config).timestamp()

    partitions = DayPartitions()
    for reading in readings:
        instant = reading.epoch
        if day_start <= instant <= day_end:
            partitions.daytime.append(reading)
        elif day_end < instant < next_dawn or previous_dusk < instant < day_start:
            partitions.nighttime.append(reading)

        if instant < split:
            partitions.before_summer.append(reading)
        else:
            partitions.after_summer.append(reading)
    return partitions


def _project_to_reference_year(instant: datetime, tz: ZoneInfo) -> datetime:
    local = instant.astimezone(tz)
    day = local.day
    if local.month == 2 and day == 29:
        day = 28
    return local.replace(year=REFERENCE_YEAR, day=day, fold=0)


def get_season(instant: datetime, tz: ZoneInfo) -> Season:
    """Astronomical season of ``instant``, ignoring its year."""
    projected = _project_to_reference_year(instant, tz).timestamp()

    for index, (season, start) in enumerate(_SEASON_STARTS):
        start_epoch = start.timestamp()
        if index + 1 < len(_SEASON_STARTS):
            end_epoch = _SEASON_STARTS[index + 1][1].timestamp()
            if start_epoch <= projected < end_epoch:
                return season
        elif projected >= start_epoch or projected < _SEASON_STARTS[0][1].timestamp():
            return season

    logger.warning(
        "Could not classify season, defaulting to spring",
        extra={"reason": instant.isoformat()},
    )
    return Season.spring
