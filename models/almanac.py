"""Persisted almanac structure.

Field aliases are the keys of the published almanac document, so the JSON stays
compatible with existing consumers (including the historical ``HottestNightime``
spelling).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import Reading

ALL = "All"
METADATA_KEY = "_metadata"


class Season(str, Enum):
    year = "Year"
    spring = "Spring"
    summer = "Summer"
    fall = "Fall"
    winter = "Winter"


ASTRONOMICAL_SEASONS = (Season.spring, Season.summer, Season.fall, Season.winter)


class ReadingType(str, Enum):
    high = "high"
    low = "low"


class HiLowMetric(str, Enum):
    hottest_days = "HottestDays"
    coldest_days = "ColdestDays"
    hottest_nighttime = "HottestNightime"
    coldest_nighttime = "ColdestNighttime"
    hottest_daytime = "HottestDaytime"
    coldest_daytime = "ColdestDaytime"


class AverageMetric(str, Enum):
    average = "Average"
    average_nighttime = "AverageNighttime"
    average_daytime = "AverageDaytime"
    average_noon = "AverageNoon"
    average_midnight = "AverageMidnight"


class RecordedReading(BaseModel):
    """A reading as it is kept in a sequence."""

    model_config = ConfigDict(frozen=True)

    date: datetime
    value: float

    @classmethod
    def from_reading(cls, reading: Reading) -> "RecordedReading":
        return cls(date=reading.timestamp, value=reading.value)

    @property
    def epoch(self) -> float:
        return self.date.timestamp()

    def matches(self, other: "RecordedReading") -> bool:
        """Same instant and same value."""
        return self.epoch == other.epoch and self.value == other.value


class MovingAverage(BaseModel):
    """Average over ``n`` samples; zero samples is represented by ``None``."""

    model_config = ConfigDict(frozen=True)

    average: float
    n: int = Field(..., ge=1)


class AlmanacSeason(BaseModel):
    """Hi/low sequences and running averages for one (year, season) slot."""

    model_config = ConfigDict(populate_by_name=True)

    hottest_days: List[RecordedReading] = Field(default_factory=list, alias="HottestDays")
    coldest_days: List[RecordedReading] = Field(default_factory=list, alias="ColdestDays")
    hottest_nighttime: List[RecordedReading] = Field(
        default_factory=list, alias="HottestNightime"
    )
    coldest_nighttime: List[RecordedReading] = Field(
        default_factory=list, alias="ColdestNighttime"
    )
    hottest_daytime: List[RecordedReading] = Field(default_factory=list, alias="HottestDaytime")
    coldest_daytime: List[RecordedReading] = Field(default_factory=list, alias="ColdestDaytime")

    average: Optional[MovingAverage] = Field(default=None, alias="Average")
    average_nighttime: Optional[MovingAverage] = Field(default=None, alias="AverageNighttime")
    average_daytime: Optional[MovingAverage] = Field(default=None, alias="AverageDaytime")
    average_noon: Optional[MovingAverage] = Field(default=None, alias="AverageNoon")
    average_midnight: Optional[MovingAverage] = Field(default=None, alias="AverageMidnight")

    def sequence(self, metric: HiLowMetric) -> List[RecordedReading]:
        return getattr(self, metric.name)

    def get_average(self, metric: AverageMetric) -> Optional[MovingAverage]:
        return getattr(self, metric.name)

    def set_average(self, metric: AverageMetric, value: Optional[MovingAverage]) -> None:
        setattr(self, metric.name, value)


class AlmanacYear(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    year: AlmanacSeason = Field(default_factory=AlmanacSeason, alias="Year")
    spring: AlmanacSeason = Field(default_factory=AlmanacSeason, alias="Spring")
    summer: AlmanacSeason = Field(default_factory=AlmanacSeason, alias="Summer")
    fall: AlmanacSeason = Field(default_factory=AlmanacSeason, alias="Fall")
    winter: AlmanacSeason = Field(default_factory=AlmanacSeason, alias="Winter")

    first_freezes_before_summer: List[RecordedReading] = Field(
        default_factory=list, alias="FirstFreezesBeforeSummer"
    )
    first_freezes_after_summer: List[RecordedReading] = Field(
        default_factory=list, alias="FirstFreezesAfterSummer"
    )
    last_freezes_before_summer: List[RecordedReading] = Field(
        default_factory=list, alias="LastFreezesBeforeSummer"
    )

    # Days already folded into this year's averages.
    averaged_days: List[str] = Field(default_factory=list, alias="AveragedDays")

    def season(self, season: Season) -> AlmanacSeason:
        return getattr(self, season.name)


class AlmanacMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    missed_days: List[str] = Field(default_factory=list, alias="missedDays")


class Almanac(BaseModel):
    """Year label (``"2021"``, ``"All"``) to statistics, plus run metadata."""

    years: Dict[str, AlmanacYear] = Field(default_factory=dict)
    metadata: AlmanacMetadata = Field(default_factory=AlmanacMetadata)

    def ensure_year(self, label: str) -> AlmanacYear:
        existing = self.years.get(label)
        if existing is None:
            existing = AlmanacYear()
            self.years[label] = existing
        return existing

    def __getitem__(self, label: str) -> AlmanacYear:
        return self.years[label]

    def __contains__(self, label: object) -> bool:
        return label in self.years

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the published document layout."""
        document: Dict[str, Any] = {
            METADATA_KEY: self.metadata.model_dump(mode="json", by_alias=True, exclude_none=True)
        }
        for label, year in self.years.items():
            document[label] = year.model_dump(mode="json", by_alias=True, exclude_none=True)
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Almanac":
        payload = dict(document)
        metadata = AlmanacMetadata.model_validate(payload.pop(METADATA_KEY, None) or {})
        years = {label: AlmanacYear.model_validate(value) for label, value in payload.items()}
        return cls(years=years, metadata=metadata)
