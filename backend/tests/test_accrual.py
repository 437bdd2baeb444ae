"""Tests for the accrual calculator, the LSL gate and the scheduled accrual run."""

from __future__ import annotations

import math
import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select
from sqlmodel import col

from app.models.balance import LeaveBalance
from app.models.enums import EmployeeStatus, EmploymentType, LeaveCategory
from app.models.policy import LeavePolicy
from app.schemas.employee import EmployeeInfo
from app.services.accrual import (
    add_years,
    calculate_accrual_for_period,
    calculate_employee_fte,
    calculate_lsl_accrual,
    days_to_hours,
    get_service_start_date,
    hours_to_days,
    run_scheduled_accruals,
    uses_service_threshold,
)
from app.services.balance import accrue_balance

if TYPE_CHECKING:
    from collections.abc import Callable

    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession


def _employee(**overrides: object) -> EmployeeInfo:
    fields: dict[str, object] = {
        "id": uuid.uuid4(),
        "first_name": "Pat",
        "last_name": "Doe",
        "email": "pat@example.com",
        "hours_per_week": 38.0,
        "service_start_date": date(2023, 1, 1),
    }
    fields.update(overrides)
    return EmployeeInfo(**fields)  # type: ignore[arg-type]


def _annual_policy(**overrides: object) -> LeavePolicy:
    fields: dict[str, object] = {
        "name": "Annual",
        "leave_type": "annual",
        "accrual_unit": "weeks_per_year",
        "accrual_rate": 4.0,
        "is_default": True,
    }
    fields.update(overrides)
    return LeavePolicy(**fields)


def _lsl_policy(**overrides: object) -> LeavePolicy:
    fields: dict[str, object] = {
        "name": "Long Service",
        "leave_type": "long_service",
        "accrual_unit": "hours_per_year",
        "accrual_rate": 36.5,
        "min_service_years_before_accrual": 7,
        "is_default": True,
    }
    fields.update(overrides)
    return LeavePolicy(**fields)


async def _balance(session: AsyncSession, employee_id: uuid.UUID, category: str) -> LeaveBalance:
    result = await session.execute(
        select(LeaveBalance).where(
            col(LeaveBalance.employee_id) == employee_id,
            col(LeaveBalance.leave_type) == category,
        )
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# FTE and period accrual
# ---------------------------------------------------------------------------


def test_full_year_full_time_accrues_four_weeks() -> None:
    assert calculate_accrual_for_period(_annual_policy(), 365, None, _employee()) == 152.0


def test_part_time_is_pro_rated() -> None:
    employee = _employee(employment_type=EmploymentType.PART_TIME, hours_per_week=19.0)
    assert calculate_employee_fte(employee, _annual_policy()) == 0.5
    assert calculate_accrual_for_period(_annual_policy(), 365, None, employee) == 76.0


def test_fte_is_capped_at_one() -> None:
    employee = _employee(employment_type=EmploymentType.PART_TIME, hours_per_week=45.0)
    assert calculate_employee_fte(employee, _annual_policy()) == 1.0


def test_fte_without_hours_is_one() -> None:
    employee = _employee(employment_type=EmploymentType.CASUAL, hours_per_week=None)
    assert calculate_employee_fte(employee, _annual_policy()) == 1.0


def test_full_time_ignores_short_week() -> None:
    employee = _employee(employment_type=EmploymentType.FULL_TIME, hours_per_week=20.0)
    assert calculate_employee_fte(employee, _annual_policy()) == 1.0


def test_no_employee_means_no_pro_rata() -> None:
    assert calculate_accrual_for_period(_annual_policy(), 365) == 152.0


def test_days_per_year_unit() -> None:
    policy = _annual_policy(leave_type="personal", accrual_unit="days_per_year", accrual_rate=10.0)
    assert calculate_accrual_for_period(policy, 365) == 76.0


def test_hours_per_year_unit() -> None:
    policy = _annual_policy(accrual_unit="hours_per_year", accrual_rate=100.0)
    assert calculate_accrual_for_period(policy, 73) == 20.0


def test_rate_override_wins() -> None:
    policy = _annual_policy(accrual_unit="hours_per_year", accrual_rate=100.0)
    assert calculate_accrual_for_period(policy, 365, 200.0) == 200.0


@pytest.mark.parametrize("days", [0, -5])
def test_non_positive_days_accrue_nothing(days: int) -> None:
    assert calculate_accrual_for_period(_annual_policy(), days) == 0.0


def test_missing_policy_or_rate_accrues_nothing() -> None:
    assert calculate_accrual_for_period(None, 365) == 0.0
    assert calculate_accrual_for_period(_annual_policy(accrual_rate=None), 365) == 0.0
    assert calculate_accrual_for_period(_annual_policy(accrual_rate=0.0), 365) == 0.0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def test_service_start_falls_back_to_start_date() -> None:
    employee = _employee(service_start_date=None, start_date=date(2022, 5, 1))
    assert get_service_start_date(employee) == date(2022, 5, 1)
    assert get_service_start_date(_employee(service_start_date=None)) is None
    assert get_service_start_date(None) is None


def test_add_years_clamps_leap_day() -> None:
    assert add_years(date(2020, 2, 29), 1) == date(2021, 2, 28)
    assert add_years(date(2020, 2, 29), 4) == date(2024, 2, 29)


def test_add_years_fractional_part_is_days() -> None:
    assert add_years(date(2020, 1, 1), 1.2) == date(2021, 3, 15)


def test_hours_days_conversions() -> None:
    assert hours_to_days(38.0) == 5.0
    assert hours_to_days(7.6, 0) == 1.0
    assert hours_to_days(None) == 0.0
    assert hours_to_days(math.nan) == 0.0
    assert days_to_hours(2) == 15.2
    assert days_to_hours(2, LeavePolicy(name="x", leave_type="annual", standard_hours_per_day=8.0)) == 16.0
    assert days_to_hours(math.inf) == 0.0


def test_uses_service_threshold() -> None:
    assert uses_service_threshold(_lsl_policy(), LeaveCategory.LONG_SERVICE)
    assert not uses_service_threshold(_lsl_policy(min_service_years_before_accrual=None), "long_service")
    assert not uses_service_threshold(_annual_policy(min_service_years_before_accrual=7), "annual")
    assert not uses_service_threshold(None, "long_service")


# ---------------------------------------------------------------------------
# LSL gate
# ---------------------------------------------------------------------------


def test_lsl_not_eligible_before_threshold() -> None:
    employee = _employee(service_start_date=date(2015, 1, 1))
    result = calculate_lsl_accrual(_lsl_policy(), employee, date(2020, 1, 1), None)
    assert result.eligible is False
    assert result.accrued_hours == 0.0
    assert result.eligibility_date == date(2022, 1, 1)
    assert result.message == "Not yet eligible. 7 years of service required."


def test_lsl_gate_uses_calendar_years_across_leap_days() -> None:
    employee = _employee(service_start_date=date(2016, 1, 1))
    policy = _lsl_policy(min_service_years_before_accrual=10)

    # 3651 days of service is over 10 * 365, but the tenth anniversary is later.
    before = calculate_lsl_accrual(policy, employee, date(2025, 12, 30), None)
    assert before.eligible is False
    assert before.accrued_hours == 0.0
    assert before.eligibility_date == date(2026, 1, 1)
    assert before.years_of_service == 10.0

    on_anniversary = calculate_lsl_accrual(policy, employee, date(2026, 1, 1), None)
    assert on_anniversary.eligible is True
    assert on_anniversary.accrued_hours == 0.0
    assert on_anniversary.message == "Already up to date"


def test_lsl_accrues_from_eligibility_date() -> None:
    employee = _employee(service_start_date=date(2010, 1, 1))
    result = calculate_lsl_accrual(_lsl_policy(), employee, date(2020, 1, 1), None)
    assert result.eligible is True
    assert result.eligibility_date == date(2017, 1, 1)
    assert result.days_accrued == 1095
    assert result.accrued_hours == 109.5


def test_lsl_uses_rate_after_threshold() -> None:
    employee = _employee(service_start_date=date(2010, 1, 1))
    policy = _lsl_policy(accrual_rate_after_threshold=73.0)
    result = calculate_lsl_accrual(policy, employee, date(2020, 1, 1), None)
    assert result.accrued_hours == 219.0


def test_lsl_accrues_only_since_last_accrual() -> None:
    employee = _employee(service_start_date=date(2010, 1, 1))
    result = calculate_lsl_accrual(_lsl_policy(), employee, date(2020, 1, 1), date(2019, 1, 1))
    assert result.days_accrued == 365
    assert result.accrued_hours == 36.5


def test_lsl_already_up_to_date() -> None:
    employee = _employee(service_start_date=date(2010, 1, 1))
    result = calculate_lsl_accrual(_lsl_policy(), employee, date(2020, 1, 1), date(2020, 1, 1))
    assert result.eligible is True
    assert result.accrued_hours == 0.0
    assert result.message == "Already up to date"


def test_lsl_without_service_start() -> None:
    employee = _employee(service_start_date=None)
    result = calculate_lsl_accrual(_lsl_policy(), employee, date(2020, 1, 1), None)
    assert result.eligible is False
    assert result.message == "No service start date set for employee"


# ---------------------------------------------------------------------------
# accrue_balance
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("nes_policies")
async def test_accrue_full_year(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee(service_start_date=date(2023, 1, 1))
    outcome = await accrue_balance(db_session, employee, LeaveCategory.ANNUAL, date(2024, 1, 1))
    await db_session.commit()

    assert outcome.accrued_hours == 152.0
    assert outcome.days_in_period == 365
    balance = await _balance(db_session, employee.id, "annual")
    assert balance.accrued_hours == 152.0
    assert balance.available_hours == 152.0
    assert balance.last_accrual_date == date(2024, 1, 1)
    assert balance.policy_id is not None


@pytest.mark.usefixtures("nes_policies")
async def test_accrue_is_idempotent_for_same_date(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee(service_start_date=date(2023, 1, 1))
    await accrue_balance(db_session, employee, LeaveCategory.ANNUAL, date(2024, 1, 1))
    await db_session.commit()
    version_after_first = (await _balance(db_session, employee.id, "annual")).version

    again = await accrue_balance(db_session, employee, LeaveCategory.ANNUAL, date(2024, 1, 1))
    await db_session.commit()

    assert again.skipped is True
    assert again.accrued_hours == 0.0
    balance = await _balance(db_session, employee.id, "annual")
    assert balance.accrued_hours == 152.0
    assert balance.version == version_after_first


@pytest.mark.usefixtures("nes_policies")
async def test_accrue_in_two_steps_matches_one(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee(service_start_date=date(2023, 1, 1))
    first = await accrue_balance(db_session, employee, LeaveCategory.ANNUAL, date(2023, 7, 2))
    second = await accrue_balance(db_session, employee, LeaveCategory.ANNUAL, date(2024, 1, 1))
    await db_session.commit()

    assert first.days_in_period == 182
    assert second.days_in_period == 183
    balance = await _balance(db_session, employee.id, "annual")
    assert balance.accrued_hours == pytest.approx(152.0, abs=0.01)


@pytest.mark.usefixtures("nes_policies")
async def test_part_time_accrual_is_pro_rated(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee(
        employment_type=EmploymentType.PART_TIME,
        hours_per_week=19.0,
        service_start_date=date(2023, 1, 1),
    )
    outcome = await accrue_balance(db_session, employee, LeaveCategory.ANNUAL, date(2024, 1, 1))
    await db_session.commit()
    assert outcome.accrued_hours == 76.0
    assert outcome.policy_name == "Annual Leave - Part Time (AU NES)"


@pytest.mark.usefixtures("nes_policies")
async def test_terminated_employee_accrues_nothing(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee(status=EmployeeStatus.TERMINATED, termination_date=date(2023, 6, 30))
    outcome = await accrue_balance(db_session, employee, LeaveCategory.ANNUAL, date(2024, 1, 1))
    assert outcome.skipped is True
    assert outcome.accrued_hours == 0.0


@pytest.mark.usefixtures("nes_policies")
async def test_accrual_stops_at_termination_date(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee(
        status=EmployeeStatus.OFFBOARDING,
        service_start_date=date(2023, 1, 1),
        termination_date=date(2023, 7, 2),
    )
    outcome = await accrue_balance(db_session, employee, LeaveCategory.ANNUAL, date(2024, 1, 1))
    await db_session.commit()

    assert outcome.days_in_period == 182
    balance = await _balance(db_session, employee.id, "annual")
    assert balance.last_accrual_date == date(2023, 7, 2)


@pytest.mark.usefixtures("nes_policies")
async def test_missing_service_start_is_a_soft_skip(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee(service_start_date=None)
    outcome = await accrue_balance(db_session, employee, LeaveCategory.ANNUAL, date(2024, 1, 1))
    assert outcome.skipped is True
    assert outcome.eligible is False
    assert outcome.message == "No service start date set"
    assert outcome.accrued_hours == 0.0


async def test_no_policy_means_no_accrual(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    employee = make_employee()
    outcome = await accrue_balance(db_session, employee, LeaveCategory.LONG_SERVICE, date(2024, 1, 1))
    assert outcome.skipped is True
    assert outcome.message == "No applicable policy"


async def test_lsl_gate_blocks_accrual_and_keeps_last_date(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    db_session.add(_lsl_policy())
    await db_session.commit()
    employee = make_employee(service_start_date=date(2021, 1, 1))

    outcome = await accrue_balance(db_session, employee, LeaveCategory.LONG_SERVICE, date(2024, 1, 1))
    await db_session.commit()

    assert outcome.eligible is False
    assert outcome.accrued_hours == 0.0
    balance = await _balance(db_session, employee.id, "long_service")
    assert balance.accrued_hours == 0.0
    assert balance.last_accrual_date == date(2021, 1, 1)


async def test_lsl_accrues_once_eligible(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    db_session.add(_lsl_policy())
    await db_session.commit()
    employee = make_employee(service_start_date=date(2010, 1, 1))

    outcome = await accrue_balance(db_session, employee, LeaveCategory.LONG_SERVICE, date(2020, 1, 1))
    await db_session.commit()

    assert outcome.eligible is True
    assert outcome.accrued_hours == 109.5
    balance = await _balance(db_session, employee.id, "long_service")
    assert balance.available_hours == 109.5


# ---------------------------------------------------------------------------
# Scheduled run
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("nes_policies")
async def test_scheduled_run_counts_outcomes(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    accruing = make_employee(service_start_date=date(2023, 1, 1))
    make_employee(status=EmployeeStatus.TERMINATED, termination_date=date(2023, 3, 1))
    make_employee(service_start_date=None)

    result = await run_scheduled_accruals(db_session, date(2024, 1, 1))

    assert result.target_date == date(2024, 1, 1)
    assert result.processed == 3
    assert result.accrued == 1
    assert result.skipped == 2
    assert result.errors == 0
    balance = await _balance(db_session, accruing.id, "annual")
    assert balance.accrued_hours == 152.0


@pytest.mark.usefixtures("nes_policies")
async def test_scheduled_run_continues_after_failure(
    db_session: AsyncSession,
    make_employee: Callable[..., EmployeeInfo],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    broken = make_employee(service_start_date=date(2023, 1, 1))
    healthy = make_employee(service_start_date=date(2023, 1, 1))

    from app.services import balance as balance_module

    real_accrue = balance_module.accrue_employee

    async def _flaky(session: AsyncSession, employee_id: uuid.UUID, as_of: date, cache: object = None) -> list:
        if employee_id == broken.id:
            raise RuntimeError("directory timeout")
        return await real_accrue(session, employee_id, as_of, cache=cache)  # type: ignore[arg-type]

    monkeypatch.setattr(balance_module, "accrue_employee", _flaky)
    result = await run_scheduled_accruals(db_session, date(2024, 1, 1))

    assert result.processed == 2
    assert result.errors == 1
    assert result.accrued == 1
    balance = await _balance(db_session, healthy.id, "annual")
    assert balance.accrued_hours == 152.0


async def test_scheduled_run_endpoint(
    async_client: AsyncClient,
    nes_policies: None,
    make_employee: Callable[..., EmployeeInfo],
) -> None:
    make_employee(service_start_date=date(2023, 1, 1))
    resp = await async_client.post(
        "/accruals/run",
        params={"target_date": "2024-01-01"},
        headers={"X-User-Id": str(uuid.uuid4()), "X-Role": "admin"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"target_date": "2024-01-01", "processed": 1, "accrued": 1, "skipped": 0, "errors": 0}


async def test_scheduled_run_endpoint_requires_admin(async_client: AsyncClient) -> None:
    resp = await async_client.post("/accruals/run", headers={"X-User-Id": str(uuid.uuid4())})
    assert resp.status_code == 403
