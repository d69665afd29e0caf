"""Unit tests for day/night, summer split and season classification."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from conftest import VANCOUVER, local
from models.almanac import Season
from models.records import Reading
from services.partitioner import get_season, parse_day, partition_day
from settings import AlmanacConfig

CONFIG = AlmanacConfig()


def _reading(stamp: datetime, value: float = 1.0) -> Reading:
    return Reading(timestamp=stamp, value=value)


def test_daytime_bounds_are_inclusive() -> None:
    dawn = _reading(local("2021-01-02", 6))
    dusk = _reading(local("2021-01-02", 18))

    partitions = partition_day(date(2021, 1, 2), [dawn, dusk], CONFIG)

    assert partitions.daytime == [dawn, dusk]
    assert partitions.nighttime == []


def test_nighttime_windows_on_both_sides_of_the_day() -> None:
    early = _reading(local("2021-01-02", 5, 59))
    late = _reading(local("2021-01-02", 18, 0, 1))
    previous_evening = _reading(local("2021-01-01", 18, 30))
    next_morning = _reading(local("2021-01-03", 5, 0))

    partitions = partition_day(
        date(2021, 1, 2), [early, late, previous_evening, next_morning], CONFIG
    )

    assert partitions.nighttime == [early, late, previous_evening, next_morning]
    assert partitions.daytime == []


def test_reading_outside_both_windows_still_counts_toward_summer_split() -> None:
    previous_afternoon = _reading(local("2021-01-01", 17, 0))
    next_dawn = _reading(local("2021-01-03", 6, 0))

    partitions = partition_day(date(2021, 1, 2), [previous_afternoon, next_dawn], CONFIG)

    assert partitions.daytime == []
    assert partitions.nighttime == []
    assert partitions.before_summer == [previous_afternoon, next_dawn]


def test_summer_split_at_july_first_local_midnight() -> None:
    before = _reading(local("2021-06-30", 23, 59, 59))
    at_split = _reading(local("2021-07-01", 0))

    partitions = partition_day(date(2021, 6, 30), [before, at_split], CONFIG)

    assert partitions.before_summer == [before]
    assert partitions.after_summer == [at_split]


def test_partition_compares_instants_not_wall_clock() -> None:
    # 02:00 UTC on Jan 3 is 18:00 PST on Jan 2: the closed dusk boundary.
    utc_dusk = _reading(datetime(2021, 1, 3, 2, 0, tzinfo=timezone.utc))
    utc_after_dusk = _reading(datetime(2021, 1, 3, 2, 0, 1, tzinfo=timezone.utc))

    partitions = partition_day(date(2021, 1, 2), [utc_dusk, utc_after_dusk], CONFIG)

    assert partitions.daytime == [utc_dusk]
    assert partitions.nighttime == [utc_after_dusk]


def test_daylight_saving_day_uses_local_dawn() -> None:
    # Clocks spring forward on 2021-03-14; 06:00 that morning is PDT.
    before_dawn = _reading(local("2021-03-14", 5, 59))
    dawn = _reading(local("2021-03-14", 6, 0))

    partitions = partition_day(date(2021, 3, 14), [before_dawn, dawn], CONFIG)

    assert partitions.nighttime == [before_dawn]
    assert partitions.daytime == [dawn]


def test_custom_daytime_window() -> None:
    config = AlmanacConfig(daytime_start_hour=8, daytime_end_hour=20)
    seven = _reading(local("2021-01-02", 7))
    nineteen = _reading(local("2021-01-02", 19))

    partitions = partition_day(date(2021, 1, 2), [seven, nineteen], config)

    assert partitions.nighttime == [seven]
    assert partitions.daytime == [nineteen]


@pytest.mark.parametrize(
    ("stamp", "expected"),
    [
        (local("2021-01-10"), Season.winter),
        (local("2021-04-10"), Season.spring),
        (local("2021-07-10"), Season.summer),
        (local("2021-10-10"), Season.fall),
        (local("2021-12-30"), Season.winter),
        (local("2019-07-15", 12), Season.summer),
        (local("2022-10-01"), Season.fall),
        (local("2024-02-29", 12), Season.winter),
        (local("2020-12-25"), Season.winter),
    ],
)
def test_get_season(stamp: datetime, expected: Season) -> None:
    assert get_season(stamp, VANCOUVER) is expected


def test_season_start_is_inclusive() -> None:
    # March equinox 2021: 09:37 UTC, 02:37 PDT.
    equinox = datetime(2021, 3, 20, 9, 37, tzinfo=timezone.utc)
    one_second_before = datetime(2021, 3, 20, 9, 36, 59, tzinfo=timezone.utc)

    assert get_season(equinox, VANCOUVER) is Season.spring
    assert get_season(one_second_before, VANCOUVER) is Season.winter


def test_parse_day_rejects_malformed_strings() -> None:
    assert parse_day("2021-01-02") == date(2021, 1, 2)
    with pytest.raises(ValueError):
        parse_day("2021-13-02")
    with pytest.raises(ValueError):
        parse_day("not-a-day")
