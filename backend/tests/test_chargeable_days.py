"""Tests for chargeable-day counting: weekends, public holidays, half days and hours."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

from app.models.enums import PartialDayType
from app.models.holiday import PublicHoliday
from app.services.chargeable_days import (
    compute_chargeable_days,
    count_chargeable_days,
    hours_per_day_for,
    is_half_day,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.schemas.employee import EmployeeInfo

MONDAY = date(2025, 1, 6)
FRIDAY = date(2025, 1, 10)
SATURDAY = date(2025, 1, 11)
SUNDAY = date(2025, 1, 12)


# ---------------------------------------------------------------------------
# Pure counting
# ---------------------------------------------------------------------------


def test_monday_to_friday_is_five_days() -> None:
    assert count_chargeable_days(MONDAY, FRIDAY) == (5, 5.0)


def test_weekend_is_free() -> None:
    assert count_chargeable_days(SATURDAY, SUNDAY) == (2, 0.0)


def test_fortnight_skips_both_weekends() -> None:
    assert count_chargeable_days(MONDAY, date(2025, 1, 17)) == (12, 10.0)


def test_holiday_inside_range_is_free() -> None:
    total, chargeable = count_chargeable_days(MONDAY, FRIDAY, holidays={date(2025, 1, 8)})
    assert total == 5
    assert chargeable == 4.0


def test_single_half_day_counts_half() -> None:
    assert count_chargeable_days(MONDAY, MONDAY, PartialDayType.HALF_AM) == (1, 0.5)


def test_half_day_on_weekend_counts_nothing() -> None:
    assert count_chargeable_days(SATURDAY, SATURDAY, PartialDayType.HALF_PM) == (1, 0.0)


def test_half_day_over_several_days_charges_full_days() -> None:
    # The half-day rule only applies to a single day; callers reject the rest.
    assert count_chargeable_days(MONDAY, FRIDAY, PartialDayType.HALF_AM) == (5, 5.0)


def test_is_half_day() -> None:
    assert is_half_day(PartialDayType.HALF_AM)
    assert is_half_day("half_pm")
    assert not is_half_day(PartialDayType.FULL)
    assert not is_half_day(None)


def test_hours_per_day_for() -> None:
    assert hours_per_day_for(38) == 7.6
    assert hours_per_day_for(30) == 6.0
    assert hours_per_day_for(None) == 7.6
    assert hours_per_day_for(0) == 7.6


# ---------------------------------------------------------------------------
# compute_chargeable_days
# ---------------------------------------------------------------------------


async def test_compute_full_week_for_full_timer(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee(hours_per_week=38)
    result = await compute_chargeable_days(db_session, employee.id, MONDAY, FRIDAY)
    assert result.total_days == 5
    assert result.chargeable_days == 5.0
    assert result.hours_per_day == 7.6
    assert result.hours_deducted == 38.0
    assert result.is_half_day is False


async def test_compute_uses_employee_week(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee(hours_per_week=30)
    result = await compute_chargeable_days(db_session, employee.id, MONDAY, FRIDAY)
    assert result.hours_per_day == 6.0
    assert result.hours_deducted == 30.0


async def test_compute_defaults_to_standard_day(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee(hours_per_week=None)
    result = await compute_chargeable_days(db_session, employee.id, MONDAY, MONDAY, PartialDayType.HALF_PM)
    assert result.chargeable_days == 0.5
    assert result.hours_per_day == 7.6
    assert result.hours_deducted == 3.8
    assert result.is_half_day is True
    assert result.partial_day_type == PartialDayType.HALF_PM


async def test_compute_missing_employee_is_zeroed(db_session: AsyncSession) -> None:
    result = await compute_chargeable_days(db_session, uuid.uuid4(), MONDAY, FRIDAY)
    assert result.total_days == 0
    assert result.chargeable_days == 0.0
    assert result.hours_deducted == 0.0


async def test_compute_missing_dates_is_zeroed(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee()
    result = await compute_chargeable_days(db_session, employee.id, None, FRIDAY)
    assert result.total_days == 0
    assert result.hours_per_day == 0.0


async def test_compute_excludes_global_and_entity_holidays(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    entity_id = uuid.uuid4()
    other_entity = uuid.uuid4()
    db_session.add(PublicHoliday(date=date(2025, 1, 7), name="Global Day"))
    db_session.add(PublicHoliday(date=date(2025, 1, 8), name="Entity Day", entity_id=entity_id))
    db_session.add(PublicHoliday(date=date(2025, 1, 9), name="Elsewhere Day", entity_id=other_entity))
    db_session.add(PublicHoliday(date=date(2025, 1, 10), name="Retired Day", is_active=False))
    await db_session.commit()

    employee = make_employee(entity_id=entity_id)
    result = await compute_chargeable_days(db_session, employee.id, MONDAY, FRIDAY)
    assert result.total_days == 5
    assert result.chargeable_days == 3.0
    assert result.hours_deducted == 22.8


async def test_preview_endpoint(
    async_client: AsyncClient,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee()
    resp = await async_client.post(
        "/leave-requests/preview",
        json={
            "employee_id": str(employee.id),
            "start_date": MONDAY.isoformat(),
            "end_date": SUNDAY.isoformat(),
        },
        headers={"X-User-Id": str(employee.user_id), "X-Employee-Id": str(employee.id)},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_days"] == 7
    assert data["chargeable_days"] == 5.0
    assert data["hours_deducted"] == 38.0


async def test_preview_rejects_reversed_dates(
    async_client: AsyncClient,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee()
    resp = await async_client.post(
        "/leave-requests/preview",
        json={
            "employee_id": str(employee.id),
            "start_date": FRIDAY.isoformat(),
            "end_date": MONDAY.isoformat(),
        },
        headers={"X-User-Id": str(employee.user_id)},
    )
    assert resp.status_code == 422
