"""Start/end date and missed-day bookkeeping kept alongside the almanac."""

from __future__ import annotations

import bisect
import logging

from models.almanac import Almanac

logger = logging.getLogger(__name__)


def record_success(almanac: Almanac, day: str) -> None:
    metadata = almanac.metadata
    if metadata.start_date is None or day < metadata.start_date:
        metadata.start_date = day
    if metadata.end_date is None or day > metadata.end_date:
        metadata.end_date = day
    if day in metadata.missed_days:
        metadata.missed_days.remove(day)


def record_failure(almanac: Almanac, day: str, error: BaseException) -> None:
    missed = almanac.metadata.missed_days
    if day not in missed:
        bisect.insort(missed, day)
    logger.error(
        "Failed to process day",
        extra={"day": day, "reason": str(error), "missed_count": len(missed)},
    )


def forget_missed_day(almanac: Almanac, day: str) -> None:
    if day in almanac.metadata.missed_days:
        almanac.metadata.missed_days.remove(day)
