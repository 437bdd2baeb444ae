# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from app.api.deps import AdminDep, AuthDep, CacheDep
from app.db import SessionDep
from app.schemas.holiday import (
    CopyHolidaysRequest,
    CopyHolidaysResponse,
    CreateHolidayRequest,
    HolidayListResponse,
    HolidayResponse,
)
from app.services import holiday as holiday_service

holidays_router = APIRouter(
    prefix="/holidays",
    tags=["holidays"],
)


@holidays_router.post(
    "",
    response_model=HolidayResponse,
    status_code=201,
)
async def create_holiday(
    payload: CreateHolidayRequest,
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
) -> HolidayResponse:
    """Create a public holiday (admin only)."""
    return await holiday_service.create_holiday(session, auth, payload, cache)


@holidays_router.get(
    "",
    response_model=HolidayListResponse,
)
async def list_holidays(
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None),
    entity_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> HolidayListResponse:
    """List public holidays with optional year and entity filters."""
    return await holiday_service.list_holidays(session, year, entity_id, offset, limit)


@holidays_router.post(
    "/copy",
    response_model=CopyHolidaysResponse,
)
async def copy_holidays(
    payload: CopyHolidaysRequest,
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
) -> CopyHolidaysResponse:
    """Copy one year's holidays into another year (admin only)."""
    return await holiday_service.copy_holidays_to_year(session, auth, payload, cache)


@holidays_router.delete(
    "/{holiday_id}",
    status_code=204,
)
async def delete_holiday(
    holiday_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
) -> None:
    """Delete a public holiday (admin only)."""
    await holiday_service.delete_holiday(session, auth, holiday_id, cache)
