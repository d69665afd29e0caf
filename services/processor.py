"""Batch orchestration: fetch days, fold them into the almanac, persist once."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Protocol
from zoneinfo import ZoneInfo

from clients.thingspeak import DayResponse, SensorApiError, to_temperature_day
from datastore.almanac_store import AlmanacStore
from models.almanac import Almanac
from services.metadata import forget_missed_day, record_failure, record_success
from services.updater import AlmanacUpdater
from storage.archive import ResponseArchive, iter_days

logger = logging.getLogger(__name__)

_DAY_ERRORS = (SensorApiError, ValueError, KeyError)


class DaySource(Protocol):
    def fetch_day(self, day: str) -> DayResponse: ...


class RunStatus(str, Enum):
    processed = "processed"
    partial = "partial"
    failed = "failed"


@dataclass
class RunSummary:
    processed_days: List[str] = field(default_factory=list)
    failed_days: List[str] = field(default_factory=list)
    processing_ms: int = 0

    @property
    def status(self) -> RunStatus:
        if self.failed_days and not self.processed_days:
            return RunStatus.failed
        if self.failed_days:
            return RunStatus.partial
        return RunStatus.processed


class AlmanacProcessor:
    """Coordinates the day source, archive, updater and almanac store."""

    def __init__(
        self,
        source: Optional[DaySource],
        store: AlmanacStore,
        updater: AlmanacUpdater,
        archive: Optional[ResponseArchive] = None,
        field: str = "field2",
        workers: int = 4,
    ) -> None:
        self.source = source
        self.store = store
        self.updater = updater
        self.archive = archive
        self.field = field
        self.executor = ThreadPoolExecutor(max_workers=workers)

    @property
    def tz(self) -> ZoneInfo:
        return self.updater.config.tz

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)
        close = getattr(self.source, "close", None)
        if close is not None:
            close()

    def process_range(self, start: date, end: date, save_responses: bool = False) -> RunSummary:
        """Fetch and apply every day in ``[start, end)``."""
        days = [current.isoformat() for current in iter_days(start, end)]
        return self._run(days, self._fetch, save_responses=save_responses)

    def retry_missed(
        self, save_responses: bool = False, remove_failed: bool = False
    ) -> RunSummary:
        """Re-fetch every day listed as missed in the almanac metadata."""
        almanac = self.store.load()
        days = list(almanac.metadata.missed_days)
        if not days:
            logger.info("No missed days to retry")
            return RunSummary()
        logger.info("Retrying missed days", extra={"missed_count": len(days)})
        return self._run(
            days,
            self._fetch,
            save_responses=save_responses,
            remove_failed=remove_failed,
            almanac=almanac,
        )

    def rebuild_from_archive(self, start: date, end: date) -> RunSummary:
        """Fold archived responses for ``[start, end)`` into the almanac."""
        if self.archive is None:
            raise ValueError("Rebuilding requires a response archive.")
        archive = self.archive
        days = [current.isoformat() for current in iter_days(start, end)]
        return self._run(days, lambda day: DayResponse(day=day, payload=archive.get_day(day)))

    def _fetch(self, day: str) -> DayResponse:
        if self.source is None:
            raise ValueError("No sensor source configured.")
        return self.source.fetch_day(day)

    def _run(
        self,
        days: Iterable[str],
        fetch: Callable[[str], DayResponse],
        save_responses: bool = False,
        remove_failed: bool = False,
        almanac: Optional[Almanac] = None,
    ) -> RunSummary:
        start_time = time.perf_counter()
        almanac = almanac if almanac is not None else self.store.load()
        summary = RunSummary()

        # Fetches run concurrently; updates are applied one at a time in day order.
        futures: Dict[str, Future[DayResponse]] = {
            day: self.executor.submit(fetch, day) for day in days
        }
        for day, future in futures.items():
            try:
                response = future.result()
                if save_responses and self.archive is not None:
                    self.archive.put_day(day, response.payload)
                temperature_day = to_temperature_day(response, self.field, self.tz)
                self.updater.update(almanac, temperature_day)
            except _DAY_ERRORS as exc:
                summary.failed_days.append(day)
                if remove_failed:
                    forget_missed_day(almanac, day)
                    logger.warning(
                        "Dropped failed day from missed days",
                        extra={"day": day, "reason": str(exc)},
                    )
                else:
                    record_failure(almanac, day, exc)
                continue

            record_success(almanac, day)
            summary.processed_days.append(day)
            logger.info(
                "Processed day",
                extra={"day": day, "reading_count": len(temperature_day.readings)},
            )

        self.store.save(almanac)
        summary.processing_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Run finished",
            extra={
                "status": summary.status.value,
                "processed_count": len(summary.processed_days),
                "missed_count": len(summary.failed_days),
                "processing_ms": summary.processing_ms,
            },
        )
        return summary

