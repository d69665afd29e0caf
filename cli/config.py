from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from settings import Settings, get_settings

DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass(frozen=True)
class CLIConfig:
    almanac_path: str
    archive_root: Optional[str]
    channel_id: str
    channel_field: str
    base_url: str
    workers: int
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def load_config(
    almanac_path: Optional[str] = None,
    archive_root: Optional[str] = None,
    workers: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> CLIConfig:
    settings = settings or get_settings()
    return CLIConfig(
        almanac_path=almanac_path or settings.almanac_path,
        archive_root=archive_root or settings.archive_root,
        channel_id=settings.channel_id,
        channel_field=settings.channel_field,
        base_url=settings.thingspeak_base_url.rstrip("/"),
        workers=workers if workers and workers > 0 else settings.fetch_workers,
    )
