"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import DayUpdateResponse, TemperatureDayPayload
from datastore.almanac_store import AlmanacStore, build_default_store
from models.almanac import AlmanacSeason, AlmanacYear, Season
from services.metadata import record_success
from services.updater import AlmanacUpdater
from settings import get_settings

router = APIRouter()


def get_store() -> AlmanacStore:
    return build_default_store()


def get_updater() -> AlmanacUpdater:
    return AlmanacUpdater(get_settings().almanac_config())


def _load_year(store: AlmanacStore, year: str) -> AlmanacYear:
    try:
        almanac = store.load()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    if year not in almanac:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No almanac entry for year {year!r}.",
        )
    return almanac[year]


@router.get(
    "/almanac",
    summary="Full almanac document, keyed by year label.",
)
async def get_almanac(store: AlmanacStore = Depends(get_store)) -> Dict[str, Any]:
    try:
        return store.load().to_document()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc


@router.get(
    "/almanac/{year}",
    response_model=AlmanacYear,
    response_model_exclude_none=True,
    summary="Statistics for one year label (e.g. 2021 or All).",
)
async def get_year(year: str, store: AlmanacStore = Depends(get_store)) -> AlmanacYear:
    return _load_year(store, year)


@router.get(
    "/almanac/{year}/{season}",
    response_model=AlmanacSeason,
    response_model_exclude_none=True,
    summary="Statistics for one season (or Year) of one year label.",
)
async def get_season(
    year: str,
    season: Season,
    store: AlmanacStore = Depends(get_store),
) -> AlmanacSeason:
    return _load_year(store, year).season(season)


@router.post(
    "/days",
    response_model=DayUpdateResponse,
    response_model_exclude_none=True,
    summary="Fold one day of readings into the almanac.",
)
async def post_day(
    payload: TemperatureDayPayload,
    store: AlmanacStore = Depends(get_store),
    updater: AlmanacUpdater = Depends(get_updater),
) -> DayUpdateResponse:
    temperature_day = payload.to_domain(updater.config.tz)
    try:
        almanac = store.load()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    updater.update(almanac, temperature_day)
    record_success(almanac, temperature_day.day)
    store.save(almanac)
    year = payload.day[:4]
    return DayUpdateResponse(day=payload.day, year=year, almanac_year=almanac[year])


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
