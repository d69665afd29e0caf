from __future__ import annotations
import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Optional

from pydantic import ValidationError

from models.almanac import Almanac
from settings import get_settings

logger = logging.getLogger(__name__)


class AlmanacStore:
    """Whole-document JSON persistence for the almanac."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = Lock()

    def load(self) -> Almanac:
        """Return the stored almanac, or an empty one when nothing is stored yet."""
        with self._lock:
            if not self.path.exists():
                logger.info("No almanac found, starting empty", extra={"path": str(self.path)})
                return Almanac()
            try:
                raw = self.path.read_text(encoding="utf-8") or "{}"
                document = json.loads(raw)
                return Almanac.from_document(document)
            except (json.JSONDecodeError, ValidationError) as exc:
                raise ValueError(f"Almanac at {self.path} is not valid: {exc}") from exc

    def save(self, almanac: Almanac) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(almanac.to_document(), indent=2, sort_keys=True)
            self.path.write_text(payload, encoding="utf-8")
        logger.info(
            "Saved almanac",
            extra={"path": str(self.path), "missed_count": len(almanac.metadata.missed_days)},
        )


@lru_cache
def build_default_store(path: Optional[str] = None) -> AlmanacStore:
    settings = get_settings()
    almanac_path = settings.almanac_path if path is None else path
    return AlmanacStore(path=Path(almanac_path))
