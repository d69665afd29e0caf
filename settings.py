from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


_TIMEZONE_ENV = "ALMANAC_TIMEZONE"
_SEQUENCE_SIZE_ENV = "ALMANAC_SEQUENCE_SIZE"
_SUMMER_SPLIT_ENV = "ALMANAC_SUMMER_SPLIT"
_ALMANAC_PATH_ENV = "ALMANAC_PATH"
_ARCHIVE_ROOT_ENV = "ALMANAC_ARCHIVE_ROOT"
_CHANNEL_ID_ENV = "THINGSPEAK_CHANNEL_ID"
_FIELD_ENV = "THINGSPEAK_FIELD"
_BASE_URL_ENV = "THINGSPEAK_BASE_URL"
_WORKER_COUNT_ENV = "FETCH_WORKER_COUNT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_TIMEZONE = "America/Vancouver"


@dataclass(frozen=True)
class AlmanacConfig:
    """Parameters the almanac core needs; never read from the environment directly."""

    timezone: str = DEFAULT_TIMEZONE
    sequence_size: int = 5
    summer_split_month: int = 7
    summer_split_day: int = 1
    daytime_start_hour: int = 6
    daytime_end_hour: int = 18

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class Settings:
    timezone: str
    sequence_size: int
    summer_split: Tuple[int, int]
    almanac_path: str
    archive_root: Optional[str]
    channel_id: str
    channel_field: str
    thingspeak_base_url: str
    fetch_workers: int
    log_level: str

    def almanac_config(self) -> AlmanacConfig:
        month, day = self.summer_split
        return AlmanacConfig(
            timezone=self.timezone,
            sequence_size=self.sequence_size,
            summer_split_month=month,
            summer_split_day=day,
        )


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timezone(default: str) -> str:
    candidate = _read_str_env(_TIMEZONE_ENV, default)
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return candidate


def _read_summer_split(default: Tuple[int, int]) -> Tuple[int, int]:
    value = os.getenv(_SUMMER_SPLIT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    month_raw, sep, day_raw = candidate.partition("-")
    if not sep:
        return default
    try:
        month, day = int(month_raw), int(day_raw)
    except ValueError:
        return default
    if not 1 <= month <= 12 or not 1 <= day <= 28:
        return default
    return month, day


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        timezone=_read_timezone(DEFAULT_TIMEZONE),
        sequence_size=_read_positive_int(_SEQUENCE_SIZE_ENV, 5),
        summer_split=_read_summer_split((7, 1)),
        almanac_path=_read_str_env(_ALMANAC_PATH_ENV, "./output/lake-almanac.json"),
        archive_root=_read_optional_env(_ARCHIVE_ROOT_ENV, "./output/responses-archive"),
        channel_id=_read_str_env(_CHANNEL_ID_ENV, "581842"),
        channel_field=_read_str_env(_FIELD_ENV, "field2"),
        thingspeak_base_url=_read_str_env(_BASE_URL_ENV, "https://api.thingspeak.com"),
        fetch_workers=_read_positive_int(_WORKER_COUNT_ENV, 4),
        log_level=_read_log_level("INFO"),
    )
