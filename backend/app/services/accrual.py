"""Accrual engine: pure accrual arithmetic and the scheduled accrual run."""

from __future__ import annotations

import calendar
import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING

from app.models.enums import AccrualUnit, EmployeeStatus, EmploymentType, LeaveCategory

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.models.policy import LeavePolicy
    from app.schemas.employee import EmployeeInfo
    from app.services.cache import LeaveCache

logger = logging.getLogger(__name__)

DEFAULT_HOURS_PER_DAY = 7.6
DEFAULT_HOURS_PER_WEEK = 38.0
DAYS_PER_YEAR = 365

# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class LSLAccrualResult:
    """Outcome of the long-service-leave eligibility gate."""

    accrued_hours: float = 0.0
    eligible: bool = False
    years_of_service: float = 0.0
    eligibility_date: date | None = None
    days_accrued: int = 0
    message: str | None = None


@dataclass
class AccrualRunResult:
    """Summary of a scheduled accrual run."""

    target_date: date
    processed: int = 0
    accrued: int = 0
    skipped: int = 0
    errors: int = 0


# ---------------------------------------------------------------------------
# Pure computation helpers (no DB)
# ---------------------------------------------------------------------------


def _positive(value: float | None, default: float) -> float:
    if value is None or not math.isfinite(value) or value <= 0:
        return default
    return value


def _round2(value: float) -> float:
    return round(value, 2)


def add_years(start: date, years: float) -> date:
    """Add whole calendar years, then any fractional year as days.

    Feb 29 lands on Feb 28 in non-leap target years.
    """
    whole = int(years)
    target_year = start.year + whole
    day = min(start.day, calendar.monthrange(target_year, start.month)[1])
    shifted = start.replace(year=target_year, day=day)
    fraction = years - whole
    if fraction > 0:
        shifted += timedelta(days=round(fraction * DAYS_PER_YEAR))
    return shifted


def get_service_start_date(employee: EmployeeInfo | None) -> date | None:
    """Continuous-service start date: ``service_start_date``, else ``start_date``."""
    if employee is None:
        return None
    return employee.service_start_date or employee.start_date


def calculate_employee_fte(employee: EmployeeInfo | None, policy: LeavePolicy | None = None) -> float:
    """Fraction of full-time hours the employee works, capped at 1.0.

    Full-time staff are always 1.0; anyone else is pro-rated against the
    policy's reference week when their weekly hours are known.
    """
    full_time_hours = _positive(policy.hours_per_week_reference if policy else None, DEFAULT_HOURS_PER_WEEK)
    if employee is None or employee.employment_type == EmploymentType.FULL_TIME:
        return 1.0
    if employee.hours_per_week:
        return min(employee.hours_per_week / full_time_hours, 1.0)
    return 1.0


def annual_hours_for_policy(policy: LeavePolicy, rate: float) -> float:
    """Convert an accrual rate in the policy's unit to hours per year."""
    if policy.accrual_unit == AccrualUnit.HOURS_PER_YEAR:
        return rate
    if policy.accrual_unit == AccrualUnit.WEEKS_PER_YEAR:
        return rate * _positive(policy.hours_per_week_reference, DEFAULT_HOURS_PER_WEEK)
    return rate * _positive(policy.standard_hours_per_day, DEFAULT_HOURS_PER_DAY)


def calculate_accrual_for_period(
    policy: LeavePolicy | None,
    days_elapsed: int,
    rate_override: float | None = None,
    employee: EmployeeInfo | None = None,
) -> float:
    """Hours accrued over ``days_elapsed`` days, rounded to 2 dp.

    Pro-rated by FTE only when an employee is supplied.
    """
    if policy is None or days_elapsed <= 0:
        return 0.0
    rate = rate_override if rate_override is not None else policy.accrual_rate
    if not rate:
        return 0.0

    hours_per_year = annual_hours_for_policy(policy, rate)
    if employee is not None:
        hours_per_year *= calculate_employee_fte(employee, policy)

    return _round2(hours_per_year / DAYS_PER_YEAR * days_elapsed)


def uses_service_threshold(policy: LeavePolicy | None, category: LeaveCategory | str) -> bool:
    """Whether accrual for this category runs through the LSL gate."""
    return (
        policy is not None
        and LeaveCategory(category) == LeaveCategory.LONG_SERVICE
        and bool(policy.min_service_years_before_accrual)
    )


def calculate_lsl_accrual(
    policy: LeavePolicy,
    employee: EmployeeInfo,
    as_of: date,
    last_accrual_date: date | None,
) -> LSLAccrualResult:
    """Long-service accrual with a minimum-service gate.

    Nothing accrues before the eligibility date, service start plus
    ``min_service_years_before_accrual`` calendar years; ``years_of_service``
    is reported for display only. After that only the days since the later
    of the last accrual and the eligibility date accrue, at
    ``accrual_rate_after_threshold`` when set.
    """
    service_start = get_service_start_date(employee)
    if service_start is None:
        return LSLAccrualResult(message="No service start date set for employee")

    years_of_service = (as_of - service_start).days / DAYS_PER_YEAR
    min_years = policy.min_service_years_before_accrual or 0
    eligibility_date = add_years(service_start, min_years)
    rounded_years = _round2(years_of_service)

    if as_of < eligibility_date:
        return LSLAccrualResult(
            eligible=False,
            years_of_service=rounded_years,
            eligibility_date=eligibility_date,
            message=f"Not yet eligible. {min_years:g} years of service required.",
        )

    effective_start = eligibility_date
    if last_accrual_date is not None and last_accrual_date > eligibility_date:
        effective_start = last_accrual_date
    days_to_accrue = (as_of - effective_start).days

    if days_to_accrue <= 0:
        return LSLAccrualResult(
            eligible=True,
            years_of_service=rounded_years,
            eligibility_date=eligibility_date,
            message="Already up to date",
        )

    rate = policy.accrual_rate_after_threshold or policy.accrual_rate
    return LSLAccrualResult(
        accrued_hours=calculate_accrual_for_period(policy, days_to_accrue, rate),
        eligible=True,
        years_of_service=rounded_years,
        eligibility_date=eligibility_date,
        days_accrued=days_to_accrue,
    )


def hours_to_days(hours: float | None, standard_hours_per_day: float | None = DEFAULT_HOURS_PER_DAY) -> float:
    """Convert hours to days for display; invalid input gives 0."""
    safe_hours = hours if hours is not None and math.isfinite(hours) else 0.0
    return _round2(safe_hours / _positive(standard_hours_per_day, DEFAULT_HOURS_PER_DAY))


def days_to_hours(days: float | None, policy: LeavePolicy | None = None) -> float:
    """Convert days to hours at the policy's standard day."""
    safe_days = days if days is not None and math.isfinite(days) else 0.0
    return safe_days * _positive(policy.standard_hours_per_day if policy else None, DEFAULT_HOURS_PER_DAY)


# ---------------------------------------------------------------------------
# Scheduled accrual orchestration
# ---------------------------------------------------------------------------


async def run_scheduled_accruals(
    session: AsyncSession,
    target_date: date,
    cache: LeaveCache | None = None,
) -> AccrualRunResult:
    """Accrue every non-terminated employee in the directory up to ``target_date``.

    A failure for one employee is logged and counted; the run carries on
    with the next employee.
    """
    from app.services.balance import accrue_employee
    from app.services.employee import get_employee_service

    result = AccrualRunResult(target_date=target_date)
    employees = await get_employee_service().list_employees()

    for employee in employees:
        result.processed += 1
        if employee.status == EmployeeStatus.TERMINATED:
            result.skipped += 1
            continue
        try:
            outcome = await accrue_employee(session, employee.id, target_date, cache=cache)
        except Exception:
            await session.rollback()
            logger.exception("Error running accrual for employee=%s on %s", employee.id, target_date)
            result.errors += 1
            continue

        if any(r.accrued_hours > 0 for r in outcome):
            result.accrued += 1
        else:
            result.skipped += 1

    return result
