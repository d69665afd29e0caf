"""Export archived sensor responses to CSV suitable for a Postgres ``COPY``."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, TextIO, Tuple

from clients.thingspeak import parse_timestamp
from storage.archive import ResponseArchive, iter_days

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("date_recorded", "entry_id", "indoor_temp", "outdoor_temp", "channel_id")
LARGE_GAP_MINUTES = 10.0


@dataclass
class DayGap:
    from_day: str
    to_day: str
    minutes: float


@dataclass
class GapStats:
    total_gaps: int
    average_small_gap_minutes: float
    min_gap_minutes: float
    max_gap_minutes: float
    large_gaps: List[DayGap] = field(default_factory=list)


@dataclass
class ExportSummary:
    days_processed: int = 0
    days_skipped: int = 0
    row_count: int = 0
    gaps: Optional[GapStats] = None


def feed_rows(payload: Dict[str, Any]) -> List[Tuple[Any, ...]]:
    if not isinstance(payload, dict):
        return []
    channel_id = (payload.get("channel") or {}).get("id")
    rows = []
    for feed in payload.get("feeds") or []:
        if not isinstance(feed, dict):
            continue
        indoor = feed.get("field1") or None
        outdoor = feed.get("field2") or None
        if indoor is None and outdoor is None:
            continue
        rows.append((feed.get("created_at"), feed.get("entry_id"), indoor, outdoor, channel_id))
    return rows


def gap_stats(stamps: List[Tuple[datetime, str]]) -> Optional[GapStats]:
    """Gaps between the last reading of one day and the first of the next."""
    ordered = sorted(stamps, key=lambda item: item[0].timestamp())
    gaps: List[DayGap] = []
    for (previous, previous_day), (current, current_day) in zip(ordered, ordered[1:]):
        if previous_day == current_day:
            continue
        minutes = (current.timestamp() - previous.timestamp()) / 60
        gaps.append(DayGap(from_day=previous_day, to_day=current_day, minutes=minutes))

    if not gaps:
        return None

    small = [gap.minutes for gap in gaps if gap.minutes <= LARGE_GAP_MINUTES]
    minutes = [gap.minutes for gap in gaps]
    return GapStats(
        total_gaps=len(gaps),
        average_small_gap_minutes=sum(small) / len(small) if small else 0.0,
        min_gap_minutes=min(minutes),
        max_gap_minutes=max(minutes),
        large_gaps=[gap for gap in gaps if gap.minutes > LARGE_GAP_MINUTES],
    )


def export_csv(archive: ResponseArchive, start: date, end: date, handle: TextIO) -> ExportSummary:
    """Write archived days in ``[start, end)`` to ``handle``."""
    writer = csv.writer(handle, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)

    summary = ExportSummary()
    stamps: List[Tuple[datetime, str]] = []
    for current in iter_days(start, end):
        day = current.isoformat()
        try:
            payload = archive.get_day(day)
        except KeyError:
            logger.warning("No archived data for day", extra={"day": day})
            summary.days_skipped += 1
            continue
        except ValueError as exc:
            logger.warning("Unreadable archive for day", extra={"day": day, "reason": str(exc)})
            summary.days_skipped += 1
            continue

        rows = feed_rows(payload)
        if not rows:
            logger.warning("Archived day has no feeds", extra={"day": day})
            summary.days_skipped += 1
            continue

        for row in rows:
            writer.writerow(["" if cell is None else cell for cell in row])
            try:
                stamps.append((parse_timestamp(str(row[0])), day))
            except ValueError:
                continue
        summary.row_count += len(rows)
        summary.days_processed += 1

    summary.gaps = gap_stats(stamps)
    logger.info(
        "Exported archive to CSV",
        extra={"processed_count": summary.days_processed, "reading_count": summary.row_count},
    )
    return summary
