"""ThingSpeak channel feed client and feed parsing."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import httpx

from models.records import Reading, TemperatureDay
from services.partitioner import parse_day

logger = logging.getLogger(__name__)

EARLIEST_DAY = date(2018, 10, 1)
# ThingSpeak's own name for the sensor's zone; same offsets as the reference zone.
REQUEST_TIMEZONE = "America/Los_Angeles"


class SensorApiError(RuntimeError):
    """Raised when the sensor API cannot return a usable feed."""


@dataclass
class DayResponse:
    day: str
    payload: Dict[str, Any]


def _format_bound(day: date) -> str:
    return f"{day.isoformat()} 00:00:00"


def parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_value(raw: Any) -> Optional[float]:
    if raw is None:
        return None
    candidate = str(raw).strip()
    if not candidate:
        return None
    try:
        value = float(candidate)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_feed(payload: Dict[str, Any], field: str, tz: ZoneInfo) -> List[Reading]:
    """Readings for ``field`` with timestamps expressed in ``tz``.

    Feeds with a missing, blank or non-numeric value are dropped here so that
    only finite values reach the almanac. Raises ``ValueError`` when the payload
    is not a feed document.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("feeds") or [], list):
        raise ValueError("Sensor payload has no feeds list.")

    readings: List[Reading] = []
    dropped = 0
    for feed in payload.get("feeds") or []:
        if not isinstance(feed, dict):
            dropped += 1
            continue
        value = _parse_value(feed.get(field))
        created_at = feed.get("created_at")
        if value is None or not created_at:
            dropped += 1
            continue
        try:
            timestamp = parse_timestamp(created_at)
        except ValueError:
            dropped += 1
            continue
        readings.append(Reading(timestamp=timestamp.astimezone(tz), value=value))

    if dropped:
        logger.debug(
            "Dropped unusable feeds",
            extra={"dropped_count": dropped, "reading_count": len(readings)},
        )
    return readings


def to_temperature_day(response: DayResponse, field: str, tz: ZoneInfo) -> TemperatureDay:
    return TemperatureDay(day=response.day, readings=parse_feed(response.payload, field, tz))


class ThingSpeakClient:
    """Fetches one sensor-local day of channel feeds."""

    def __init__(
        self,
        channel_id: str,
        base_url: str = "https://api.thingspeak.com",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.channel_id = channel_id
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ThingSpeakClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch_day(self, day: str) -> DayResponse:
        start = parse_day(day)
        if start < EARLIEST_DAY:
            raise ValueError(
                f"Invalid day requested {day}, no data before {EARLIEST_DAY.isoformat()}"
            )
        params = {
            "start": _format_bound(start),
            "end": _format_bound(start + timedelta(days=1)),
            "timezone": REQUEST_TIMEZONE,
        }
        logger.debug("Fetching sensor feed", extra={"day": day})
        try:
            response = self._client.get(f"/channels/{self.channel_id}/feed.json", params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise SensorApiError(
                f"Request for {day} failed with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise SensorApiError(f"Request for {day} failed: {exc}") from exc
        except ValueError as exc:
            raise SensorApiError(f"Response for {day} is not valid JSON.") from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("feeds"), list):
            raise SensorApiError(f"Unexpected response payload for {day}.")
        return DayResponse(day=day, payload=payload)
