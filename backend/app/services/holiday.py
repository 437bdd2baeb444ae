from __future__ import annotations

import calendar
import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select
from sqlmodel import col

from app.exceptions import AppError
from app.models.enums import AuditEntityType, AuditEvent
from app.models.holiday import PublicHoliday
from app.schemas.holiday import CopyHolidaysResponse, HolidayListResponse, HolidayResponse
from app.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from app.schemas.auth import AuthContext
    from app.schemas.holiday import CopyHolidaysRequest, CreateHolidayRequest
    from app.services.cache import LeaveCache


def _build_holiday_response(holiday: PublicHoliday) -> HolidayResponse:
    return HolidayResponse(
        id=holiday.id,
        entity_id=holiday.entity_id,
        date=holiday.date,
        name=holiday.name,
        country=holiday.country,
        state_region=holiday.state_region,
        is_paid=holiday.is_paid,
        is_active=holiday.is_active,
    )


def _shift_year(value: datetime.date, year: int) -> datetime.date:
    """Move a date into another year, clamping Feb 29 to Feb 28."""
    day = min(value.day, calendar.monthrange(year, value.month)[1])
    return value.replace(year=year, day=day)


def _entity_filter(entity_id: uuid.UUID | None) -> list:
    """Global holidays, plus the entity's own when an entity is given."""
    if entity_id is None:
        return [col(PublicHoliday.entity_id).is_(None)]
    return [or_(col(PublicHoliday.entity_id).is_(None), col(PublicHoliday.entity_id) == entity_id)]


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


async def holidays_in_range(
    session: AsyncSession,
    entity_id: uuid.UUID | None,
    start_date: datetime.date,
    end_date: datetime.date,
) -> list[PublicHoliday]:
    """Active holidays applying to an entity within [start_date, end_date]."""
    result = await session.execute(
        select(PublicHoliday)
        .where(
            col(PublicHoliday.is_active).is_(True),
            col(PublicHoliday.date) >= start_date,
            col(PublicHoliday.date) <= end_date,
            *_entity_filter(entity_id),
        )
        .order_by(col(PublicHoliday.date))
    )
    return list(result.scalars().all())


async def holiday_dates_in_range(
    session: AsyncSession,
    entity_id: uuid.UUID | None,
    start_date: datetime.date,
    end_date: datetime.date,
) -> set[datetime.date]:
    """Dates of the holidays returned by :func:`holidays_in_range`."""
    return {h.date for h in await holidays_in_range(session, entity_id, start_date, end_date)}


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


async def create_holiday(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateHolidayRequest,
    cache: LeaveCache | None = None,
) -> HolidayResponse:
    """Create a public holiday."""
    existing = await session.execute(
        select(PublicHoliday).where(
            col(PublicHoliday.date) == payload.date,
            col(PublicHoliday.name) == payload.name,
            col(PublicHoliday.entity_id).is_(None)
            if payload.entity_id is None
            else col(PublicHoliday.entity_id) == payload.entity_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise AppError("Holiday already exists for this date", status_code=409)

    holiday = PublicHoliday(
        entity_id=payload.entity_id,
        date=payload.date,
        name=payload.name,
        country=payload.country,
        state_region=payload.state_region,
        is_paid=payload.is_paid,
    )
    session.add(holiday)
    await session.flush()

    await write_audit_log(
        session,
        event_type=AuditEvent.HOLIDAY_CREATED,
        entity_type=AuditEntityType.PUBLIC_HOLIDAY,
        entity_id=holiday.id,
        actor_id=auth.user_id,
        description=f"Created public holiday {holiday.name} on {holiday.date.isoformat()}",
        after_json=model_to_audit_dict(holiday),
    )

    await session.commit()
    await session.refresh(holiday)
    if cache is not None:
        cache.invalidate()
    return _build_holiday_response(holiday)


async def list_holidays(
    session: AsyncSession,
    year: int | None = None,
    entity_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> HolidayListResponse:
    """List holidays with optional year and entity filters.

    With an entity, global holidays are included alongside the entity's own.
    """
    base_filter = []
    if year is not None:
        base_filter.append(col(PublicHoliday.date) >= datetime.date(year, 1, 1))
        base_filter.append(col(PublicHoliday.date) <= datetime.date(year, 12, 31))
    if entity_id is not None:
        base_filter.extend(_entity_filter(entity_id))

    count_result = await session.execute(select(func.count()).select_from(PublicHoliday).where(*base_filter))
    total = count_result.scalar_one()

    result = await session.execute(
        select(PublicHoliday).where(*base_filter).order_by(col(PublicHoliday.date)).offset(offset).limit(limit)
    )
    holidays = list(result.scalars().all())

    return HolidayListResponse(
        items=[_build_holiday_response(h) for h in holidays],
        total=total,
    )


async def get_holiday(
    session: AsyncSession,
    holiday_id: uuid.UUID,
) -> PublicHoliday:
    """Get a single holiday or raise 404."""
    result = await session.execute(select(PublicHoliday).where(col(PublicHoliday.id) == holiday_id))
    holiday = result.scalar_one_or_none()
    if holiday is None:
        raise AppError("Holiday not found", status_code=404)
    return holiday


async def delete_holiday(
    session: AsyncSession,
    auth: AuthContext,
    holiday_id: uuid.UUID,
    cache: LeaveCache | None = None,
) -> None:
    """Delete a public holiday."""
    holiday = await get_holiday(session, holiday_id)

    await write_audit_log(
        session,
        event_type=AuditEvent.HOLIDAY_DELETED,
        entity_type=AuditEntityType.PUBLIC_HOLIDAY,
        entity_id=holiday.id,
        actor_id=auth.user_id,
        description=f"Deleted public holiday {holiday.name} on {holiday.date.isoformat()}",
        before_json=model_to_audit_dict(holiday),
    )

    await session.delete(holiday)
    await session.commit()
    if cache is not None:
        cache.invalidate()


async def copy_holidays_to_year(
    session: AsyncSession,
    auth: AuthContext,
    payload: CopyHolidaysRequest,
    cache: LeaveCache | None = None,
) -> CopyHolidaysResponse:
    """Copy a year's holidays into another year.

    Copies the entity's own holidays, or only global ones when no entity is
    given. Holidays already present on the shifted date are skipped.
    """
    source_filter = (
        col(PublicHoliday.entity_id).is_(None)
        if payload.entity_id is None
        else col(PublicHoliday.entity_id) == payload.entity_id
    )
    result = await session.execute(
        select(PublicHoliday).where(
            source_filter,
            col(PublicHoliday.is_active).is_(True),
            col(PublicHoliday.date) >= datetime.date(payload.source_year, 1, 1),
            col(PublicHoliday.date) <= datetime.date(payload.source_year, 12, 31),
        )
    )
    sources = list(result.scalars().all())

    existing_result = await session.execute(
        select(col(PublicHoliday.date), col(PublicHoliday.name)).where(
            source_filter,
            col(PublicHoliday.date) >= datetime.date(payload.target_year, 1, 1),
            col(PublicHoliday.date) <= datetime.date(payload.target_year, 12, 31),
        )
    )
    existing = {(row[0], row[1]) for row in existing_result.all()}

    copied = 0
    skipped = 0
    for source in sources:
        target_date = _shift_year(source.date, payload.target_year)
        if (target_date, source.name) in existing:
            skipped += 1
            continue
        session.add(
            PublicHoliday(
                entity_id=source.entity_id,
                date=target_date,
                name=source.name,
                country=source.country,
                state_region=source.state_region,
                is_paid=source.is_paid,
            )
        )
        existing.add((target_date, source.name))
        copied += 1

    await session.commit()
    if copied and cache is not None:
        cache.invalidate()
    return CopyHolidaysResponse(copied=copied, skipped=skipped)
