from __future__ import annotations
import io
import json
import logging
import re
import zipfile
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterator, List, Optional, Set

logger = logging.getLogger(__name__)

_DAY_ARCHIVE = re.compile(r"^\d{4}-\d{2}-\d{2}\.zip$")


@dataclass
class MigrationStats:
    migrated_count: int = 0
    skipped_count: int = 0


def iter_days(start: date, end: date) -> Iterator[date]:
    """Days in ``[start, end)``."""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


class ResponseArchive:
    """Raw sensor responses, one zipped JSON document per day.

    On disk a day lives at ``<root>/<YYYY>/<YYYY-MM-DD>.zip``; without a root
    the archive only keeps days in memory.
    """

    def __init__(self, root_path: Optional[Path] = None) -> None:
        self._objects: Dict[str, bytes] = {}
        self._known_days: Set[str] = set()
        self.root_path = root_path
        self._lock = Lock()
        if root_path:
            root_path.mkdir(parents=True, exist_ok=True)
            self._load_existing_days()

    def path_for(self, day: str) -> Path:
        assert self.root_path is not None
        return self.root_path / day[:4] / f"{day}.zip"

    def put_day(self, day: str, payload: Any) -> None:
        data = self._zip(day, payload)
        with self._lock:
            self._objects[day] = data
            self._known_days.add(day)
            if self.root_path:
                path = self.path_for(day)
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(data)
        logger.debug("Archived response", extra={"day": day})

    def get_day(self, day: str) -> Any:
        with self._lock:
            data = self._objects.get(day)

        if data is None and self.root_path:
            path = self.path_for(day)
            if path.exists():
                data = path.read_bytes()
                with self._lock:
                    self._objects[day] = data
                    self._known_days.add(day)

        if data is None:
            raise KeyError(f"No archived response for day {day!r}.")
        return self._unzip(day, data)

    def has_day(self, day: str) -> bool:
        with self._lock:
            if day in self._known_days:
                return True
        return bool(self.root_path) and self.path_for(day).exists()

    def list_days(self) -> List[str]:
        with self._lock:
            days = set(self._known_days)
        if self.root_path:
            for path in self.root_path.glob("*/*.zip"):
                if _DAY_ARCHIVE.match(path.name):
                    days.add(path.stem)
        return sorted(days)

    def missing_days(self, start: date, end: date) -> List[str]:
        """Days in ``[start, end)`` with no archived response."""
        return [
            current.isoformat()
            for current in iter_days(start, end)
            if not self.has_day(current.isoformat())
        ]

    def migrate_flat_layout(self) -> MigrationStats:
        """Move ``<root>/YYYY-MM-DD.zip`` files into per-year folders."""
        stats = MigrationStats()
        if not self.root_path:
            return stats

        for path in sorted(self.root_path.glob("*.zip")):
            if not _DAY_ARCHIVE.match(path.name):
                continue
            target = self.path_for(path.stem)
            if target.exists():
                logger.info("Skipping archive already migrated", extra={"path": str(path)})
                stats.skipped_count += 1
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            path.rename(target)
            with self._lock:
                self._known_days.add(path.stem)
            stats.migrated_count += 1
        return stats

    @staticmethod
    def _zip(day: str, payload: Any) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(f"{day}.json", json.dumps(payload))
        return buffer.getvalue()

    @staticmethod
    def _unzip(day: str, data: bytes) -> Any:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                names = archive.namelist()
                name = f"{day}.json" if f"{day}.json" in names else (names[0] if names else None)
                if name is None:
                    raise KeyError(f"Archive for day {day!r} is empty.")
                raw = archive.read(name)
        except zipfile.BadZipFile as exc:
            raise ValueError(f"Archive for day {day!r} is not a valid zip file.") from exc
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError(f"Archive for day {day!r} does not hold valid JSON.") from exc

    def _load_existing_days(self) -> None:
        assert self.root_path is not None
        for path in self.root_path.glob("*/*.zip"):
            if _DAY_ARCHIVE.match(path.name):
                self._known_days.add(path.stem)

