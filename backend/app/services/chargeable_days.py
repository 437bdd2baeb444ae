# ruff: noqa: TC003
from __future__ import annotations

import uuid
from collections.abc import Container
from datetime import date, timedelta
from typing import TYPE_CHECKING

from app.models.enums import PartialDayType
from app.schemas.request import ChargeableDaysResult
from app.services.accrual import DEFAULT_HOURS_PER_DAY
from app.services.employee import load_employee
from app.services.holiday import holiday_dates_in_range

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.services.cache import LeaveCache

_HALF_DAY_TYPES = (PartialDayType.HALF_AM, PartialDayType.HALF_PM)


def is_half_day(partial_day_type: PartialDayType | str | None) -> bool:
    return partial_day_type in _HALF_DAY_TYPES


def hours_per_day_for(hours_per_week: float | None) -> float:
    """An employee's working day: a fifth of their week, else 7.6h."""
    if hours_per_week is not None and hours_per_week > 0:
        return hours_per_week / 5
    return DEFAULT_HOURS_PER_DAY


def count_chargeable_days(
    start_date: date,
    end_date: date,
    partial_day_type: PartialDayType = PartialDayType.FULL,
    holidays: Container[date] = frozenset(),
) -> tuple[int, float]:
    """Return (calendar days, chargeable days) for an inclusive range.

    Weekends and holidays are free. The only day of a single-day half-day
    request counts 0.5.
    """
    half_day = is_half_day(partial_day_type) and start_date == end_date
    total_days = 0
    chargeable = 0.0
    current = start_date
    one_day = timedelta(days=1)

    while current <= end_date:
        total_days += 1
        if current.weekday() < 5 and current not in holidays:
            chargeable += 0.5 if half_day else 1.0
        current += one_day

    return total_days, chargeable


async def compute_chargeable_days(
    session: AsyncSession,
    employee_id: uuid.UUID | None,
    start_date: date | None,
    end_date: date | None,
    partial_day_type: PartialDayType = PartialDayType.FULL,
    cache: LeaveCache | None = None,
) -> ChargeableDaysResult:
    """Convert a date range into payable leave days and hours.

    Public holidays are those of the employee's entity plus global ones.
    A missing employee or date gives a zeroed result rather than an error.
    """
    empty = ChargeableDaysResult(partial_day_type=partial_day_type)
    if employee_id is None or start_date is None or end_date is None:
        return empty

    employee = await load_employee(employee_id, cache)
    if employee is None:
        return empty

    holidays = await holiday_dates_in_range(session, employee.entity_id, start_date, end_date)
    total_days, chargeable = count_chargeable_days(start_date, end_date, partial_day_type, holidays)
    hours_per_day = hours_per_day_for(employee.hours_per_week)

    return ChargeableDaysResult(
        total_days=total_days,
        chargeable_days=chargeable,
        hours_per_day=hours_per_day,
        hours_deducted=round(chargeable * hours_per_day, 2),
        is_half_day=is_half_day(partial_day_type),
        partial_day_type=partial_day_type,
    )
