# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from app.exceptions import AppError
from app.models.balance import LeaveBalance
from app.models.base import now_utc
from app.models.enums import (
    AuditEntityType,
    AuditEvent,
    EmployeeStatus,
    LeaveCategory,
    LeaveRequestStatus,
)
from app.models.leave_type import LeaveType
from app.models.request import LeaveRequest
from app.schemas.accrual import RecalculateEntityResponse
from app.schemas.balance import (
    BalanceRecordListResponse,
    BalanceRecordResponse,
    CategoryBalance,
    EmployeeBalancesResponse,
)
from app.services.accrual import (
    DEFAULT_HOURS_PER_DAY,
    calculate_accrual_for_period,
    calculate_lsl_accrual,
    get_service_start_date,
    hours_to_days,
    uses_service_threshold,
)
from app.services.audit import model_to_audit_dict, write_audit_log
from app.services.employee import get_employee_service, load_employee
from app.services.policy import resolve_policy

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.models.policy import LeavePolicy
    from app.schemas.auth import AuthContext
    from app.schemas.balance import CreateAdjustmentRequest
    from app.schemas.employee import EmployeeInfo
    from app.services.cache import LeaveCache

logger = logging.getLogger(__name__)

# Tolerance when comparing needed hours against available hours.
BALANCE_EPSILON_HOURS = 0.01


@dataclass
class BalanceAccrualOutcome:
    """What an accrual or recalculation did to one category's balance."""

    category: LeaveCategory
    accrued_hours: float = 0.0
    available_hours: float = 0.0
    days_in_period: int = 0
    skipped: bool = False
    eligible: bool = True
    message: str | None = None
    policy_name: str | None = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_balance_record_response(balance: LeaveBalance) -> BalanceRecordResponse:
    """Map a balance row to its response schema."""
    return BalanceRecordResponse(
        id=balance.id,
        employee_id=balance.employee_id,
        leave_type=LeaveCategory(balance.leave_type),
        policy_id=balance.policy_id,
        opening_balance_hours=balance.opening_balance_hours,
        accrued_hours=balance.accrued_hours,
        adjusted_hours=balance.adjusted_hours,
        taken_hours=balance.taken_hours,
        available_hours=balance.available_hours,
        last_accrual_date=balance.last_accrual_date,
        version=balance.version,
        updated_at=balance.updated_at,
    )


def recompute_available(balance: LeaveBalance) -> float:
    """Re-derive available hours and record the mutation on the row."""
    balance.available_hours = round(
        balance.opening_balance_hours + balance.accrued_hours + balance.adjusted_hours - balance.taken_hours,
        2,
    )
    balance.version += 1
    balance.updated_at = now_utc()
    return balance.available_hours


def has_sufficient_balance(available_hours: float, needed_hours: float, allow_negative: bool = False) -> bool:
    """Whether ``needed_hours`` fits in ``available_hours`` (within 0.01h)."""
    return allow_negative or needed_hours <= available_hours + BALANCE_EPSILON_HOURS


def _balance_query(employee_id: uuid.UUID, category: LeaveCategory):
    return select(LeaveBalance).where(
        col(LeaveBalance.employee_id) == employee_id,
        col(LeaveBalance.leave_type) == category.value,
    )


async def _lock_balance(
    session: AsyncSession,
    employee_id: uuid.UUID,
    category: LeaveCategory,
) -> LeaveBalance | None:
    """Fetch the balance row with a FOR UPDATE lock."""
    result = await session.execute(_balance_query(employee_id, category).with_for_update())
    return result.scalar_one_or_none()


async def _get_employee_or_404(employee_id: uuid.UUID, cache: LeaveCache | None = None) -> EmployeeInfo:
    employee = await load_employee(employee_id, cache)
    if employee is None:
        raise AppError("Employee not found", status_code=404)
    return employee


def _effective_as_of(employee: EmployeeInfo, as_of: date) -> date:
    """Clamp a date to the employee's termination date."""
    if employee.termination_date is not None and as_of > employee.termination_date:
        return employee.termination_date
    return as_of


# ---------------------------------------------------------------------------
# Ledger primitives (caller owns the transaction)
# ---------------------------------------------------------------------------


async def get_or_create_balance(
    session: AsyncSession,
    employee: EmployeeInfo,
    category: LeaveCategory,
) -> LeaveBalance:
    """Get the locked balance row, creating a zeroed one if absent.

    New rows start accruing from the employee's service start date, or
    today when none is recorded.
    """
    balance = await _lock_balance(session, employee.id, category)
    if balance is not None:
        return balance

    balance = LeaveBalance(
        employee_id=employee.id,
        leave_type=category.value,
        last_accrual_date=get_service_start_date(employee) or date.today(),
    )
    await session.flush()
    try:
        async with session.begin_nested():
            session.add(balance)
    except IntegrityError:
        # Created concurrently by another transaction.
        balance = await _lock_balance(session, employee.id, category)
        if balance is None:
            raise
    return balance


async def accrue_balance(
    session: AsyncSession,
    employee: EmployeeInfo,
    category: LeaveCategory,
    as_of: date,
    policy: LeavePolicy | None = None,
) -> BalanceAccrualOutcome:
    """Accrue one category's balance up to ``as_of``.

    Skips when the balance has already accrued to that date. Terminated
    employees accrue nothing; for everyone else ``as_of`` is clamped to
    their termination date.
    """
    outcome = BalanceAccrualOutcome(category=category)

    if employee.status == EmployeeStatus.TERMINATED:
        outcome.skipped = True
        outcome.message = "Cannot accrue leave for terminated employee"
        return outcome

    if policy is None:
        policy = await resolve_policy(session, employee, category)
    if policy is None:
        outcome.skipped = True
        outcome.eligible = False
        outcome.message = "No applicable policy"
        return outcome
    outcome.policy_name = policy.name

    balance = await get_or_create_balance(session, employee, category)
    if balance.policy_id is None:
        balance.policy_id = policy.id
    outcome.available_hours = balance.available_hours

    if get_service_start_date(employee) is None:
        logger.warning("Employee %s has no service start date; %s accrual skipped", employee.id, category.value)
        outcome.skipped = True
        outcome.eligible = False
        outcome.message = "No service start date set"
        return outcome

    as_of = _effective_as_of(employee, as_of)
    last_accrual = balance.last_accrual_date
    if last_accrual is not None and last_accrual >= as_of:
        outcome.skipped = True
        outcome.message = "Already accrued to this date"
        return outcome

    days = (as_of - last_accrual).days if last_accrual is not None else 0
    outcome.days_in_period = days

    if uses_service_threshold(policy, category):
        lsl = calculate_lsl_accrual(policy, employee, as_of, last_accrual)
        if not lsl.eligible:
            outcome.skipped = True
            outcome.eligible = False
            outcome.message = lsl.message
            return outcome
        accrued = lsl.accrued_hours
        outcome.days_in_period = lsl.days_accrued
    else:
        accrued = calculate_accrual_for_period(policy, days, None, employee)

    balance.accrued_hours = round(balance.accrued_hours + accrued, 2)
    balance.last_accrual_date = as_of
    outcome.accrued_hours = accrued
    outcome.available_hours = recompute_available(balance)
    await session.flush()
    return outcome


async def deduct_hours(
    session: AsyncSession,
    employee_id: uuid.UUID,
    category: LeaveCategory,
    hours: float,
) -> LeaveBalance | None:
    """Charge ``hours`` to the balance's taken hours.

    Returns None when the employee has no balance row for the category;
    that is a no-op, not an error.
    """
    balance = await _lock_balance(session, employee_id, category)
    if balance is None:
        logger.warning("No %s balance for employee %s; deduction of %.2fh skipped", category.value, employee_id, hours)
        return None
    balance.taken_hours = round(balance.taken_hours + hours, 2)
    recompute_available(balance)
    await session.flush()
    return balance


async def restore_hours(
    session: AsyncSession,
    employee_id: uuid.UUID,
    category: LeaveCategory,
    hours: float,
) -> LeaveBalance | None:
    """Give ``hours`` back from the balance's taken hours.

    Returns None when the employee has no balance row for the category.
    """
    balance = await _lock_balance(session, employee_id, category)
    if balance is None:
        logger.warning("No %s balance for employee %s; restore of %.2fh skipped", category.value, employee_id, hours)
        return None
    balance.taken_hours = round(balance.taken_hours - hours, 2)
    recompute_available(balance)
    await session.flush()
    return balance


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


async def accrue_employee(
    session: AsyncSession,
    employee_id: uuid.UUID,
    as_of: date,
    cache: LeaveCache | None = None,
) -> list[BalanceAccrualOutcome]:
    """Accrue every category the employee has a policy for, then commit."""
    employee = await _get_employee_or_404(employee_id, cache)

    outcomes: list[BalanceAccrualOutcome] = []
    for category in LeaveCategory:
        policy = await resolve_policy(session, employee, category)
        if policy is None:
            continue
        outcomes.append(await accrue_balance(session, employee, category, as_of, policy))

    await session.commit()
    if cache is not None:
        cache.invalidate(employee_id)
    return outcomes


async def adjust_balance(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateAdjustmentRequest,
    cache: LeaveCache | None = None,
) -> BalanceRecordResponse:
    """Apply an admin correction to ``adjusted_hours``.

    A negative correction may not take the balance below zero unless the
    governing policy allows negative balances.
    """
    employee = await _get_employee_or_404(payload.employee_id, cache)
    balance = await get_or_create_balance(session, employee, payload.leave_type)
    before = model_to_audit_dict(balance)

    if payload.delta_hours < 0:
        policy = await resolve_policy(session, employee, payload.leave_type)
        allow_negative = policy.allow_negative_balance if policy is not None else False
        if not has_sufficient_balance(balance.available_hours, -payload.delta_hours, allow_negative):
            raise AppError("Insufficient balance for this adjustment", status_code=400)

    balance.adjusted_hours = round(balance.adjusted_hours + payload.delta_hours, 2)
    recompute_available(balance)
    await session.flush()

    await write_audit_log(
        session,
        event_type=AuditEvent.BALANCE_ADJUSTED,
        entity_type=AuditEntityType.LEAVE_BALANCE,
        entity_id=balance.id,
        actor_id=auth.user_id,
        related_employee_id=employee.id,
        description=f"Adjusted {payload.leave_type.value} balance by {payload.delta_hours:+.2f}h: {payload.reason}",
        before_json=before,
        after_json=model_to_audit_dict(balance),
    )

    await session.commit()
    await session.refresh(balance)
    if cache is not None:
        cache.invalidate(employee.id)
    return _build_balance_record_response(balance)


async def recalculate_all_balances(
    session: AsyncSession,
    employee_id: uuid.UUID,
    today: date | None = None,
    cache: LeaveCache | None = None,
    actor_id: uuid.UUID | None = None,
) -> list[BalanceAccrualOutcome]:
    """Re-derive accrued hours from service start for every category.

    Opening, adjusted and taken hours are left untouched.
    """
    today = today or date.today()
    employee = await _get_employee_or_404(employee_id, cache)
    service_start = get_service_start_date(employee)
    if service_start is None:
        logger.warning("Employee %s has no service start date; recalculation skipped", employee_id)
        return []

    as_of = _effective_as_of(employee, today)
    days_since_start = (as_of - service_start).days
    outcomes: list[BalanceAccrualOutcome] = []

    for category in LeaveCategory:
        policy = await resolve_policy(session, employee, category)
        if policy is None:
            continue
        outcome = BalanceAccrualOutcome(category=category, policy_name=policy.name)
        balance = await get_or_create_balance(session, employee, category)
        if balance.policy_id is None:
            balance.policy_id = policy.id

        if days_since_start <= 0:
            outcome.skipped = True
            outcome.message = "No service days"
            outcome.available_hours = balance.available_hours
            outcomes.append(outcome)
            continue

        before = model_to_audit_dict(balance)
        if uses_service_threshold(policy, category):
            lsl = calculate_lsl_accrual(policy, employee, as_of, service_start)
            accrued = lsl.accrued_hours if lsl.eligible else 0.0
            outcome.eligible = lsl.eligible
            outcome.message = lsl.message
        else:
            accrued = calculate_accrual_for_period(policy, days_since_start, None, employee)

        balance.accrued_hours = round(accrued, 2)
        balance.last_accrual_date = as_of
        outcome.accrued_hours = balance.accrued_hours
        outcome.days_in_period = days_since_start
        outcome.available_hours = recompute_available(balance)
        await session.flush()

        await write_audit_log(
            session,
            event_type=AuditEvent.BALANCE_RECALCULATED,
            entity_type=AuditEntityType.LEAVE_BALANCE,
            entity_id=balance.id,
            actor_id=actor_id,
            related_employee_id=employee.id,
            description=f"Recalculated {category.value} accrual from {service_start.isoformat()} to {as_of.isoformat()}",
            before_json=before,
            after_json=model_to_audit_dict(balance),
        )
        outcomes.append(outcome)

    await session.commit()
    if cache is not None:
        cache.invalidate(employee_id)
    return outcomes


async def recalculate_balances_for_entity(
    session: AsyncSession,
    entity_id: uuid.UUID | None = None,
    today: date | None = None,
    cache: LeaveCache | None = None,
    actor_id: uuid.UUID | None = None,
) -> RecalculateEntityResponse:
    """Recalculate every active employee, optionally within one entity."""
    employees = await get_employee_service().list_employees(entity_id)
    active = [e for e in employees if e.status == EmployeeStatus.ACTIVE]

    processed = 0
    errors: list[str] = []
    for employee in active:
        try:
            await recalculate_all_balances(session, employee.id, today, cache=cache, actor_id=actor_id)
        except Exception as exc:
            await session.rollback()
            logger.exception("Balance recalculation failed for employee=%s", employee.id)
            errors.append(f"{employee.id}: {exc}")
            continue
        processed += 1

    return RecalculateEntityResponse(entity_id=entity_id, processed=processed, total=len(active), errors=errors)


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def list_balance_records(
    session: AsyncSession,
    employee_id: uuid.UUID,
) -> BalanceRecordListResponse:
    """Stored balance rows for an employee."""
    result = await session.execute(
        select(LeaveBalance)
        .where(col(LeaveBalance.employee_id) == employee_id)
        .order_by(col(LeaveBalance.leave_type))
    )
    balances = list(result.scalars().all())
    return BalanceRecordListResponse(
        items=[_build_balance_record_response(b) for b in balances],
        total=len(balances),
    )


async def _used_hours(
    session: AsyncSession,
    employee_id: uuid.UUID,
    category: LeaveCategory,
) -> tuple[float, float]:
    """(approved, pending) hours of live requests in a category."""
    result = await session.execute(
        select(LeaveRequest)
        .join(LeaveType, col(LeaveType.id) == col(LeaveRequest.leave_type_id))
        .where(
            col(LeaveRequest.employee_id) == employee_id,
            col(LeaveType.category) == category.value,
            col(LeaveRequest.status).in_([LeaveRequestStatus.APPROVED.value, LeaveRequestStatus.PENDING.value]),
        )
    )
    approved = 0.0
    pending = 0.0
    for request in result.scalars().all():
        if request.status == LeaveRequestStatus.APPROVED.value:
            approved += request.hours_deducted or request.total_days * request.hours_per_day
        else:
            pending += request.total_days * request.hours_per_day
    return round(approved, 2), round(pending, 2)


async def pending_hours(session: AsyncSession, employee_id: uuid.UUID, category: LeaveCategory) -> float:
    """Hours held by pending requests, which the stored balance does not yet reflect."""
    _, pending = await _used_hours(session, employee_id, category)
    return pending


async def _project_category(
    session: AsyncSession,
    employee: EmployeeInfo,
    category: LeaveCategory,
    as_of: date,
    stored: LeaveBalance | None,
) -> CategoryBalance:
    policy = await resolve_policy(session, employee, category)
    service_start = get_service_start_date(employee)

    accrued = 0.0
    eligible = True
    message: str | None = None
    years_of_service: float | None = None
    eligibility_date: date | None = None
    days_of_service: int | None = None

    if policy is None:
        eligible = False
        message = "No applicable policy"
    elif service_start is None:
        eligible = False
        message = "No service start date set"
    else:
        effective = _effective_as_of(employee, as_of)
        days_of_service = (effective - service_start).days
        if days_of_service <= 0:
            message = "Employment not yet started"
        elif uses_service_threshold(policy, category):
            lsl = calculate_lsl_accrual(policy, employee, effective, service_start)
            eligible = lsl.eligible
            message = lsl.message if not lsl.eligible else None
            years_of_service = lsl.years_of_service
            eligibility_date = lsl.eligibility_date
            accrued = lsl.accrued_hours if lsl.eligible else 0.0
        else:
            accrued = calculate_accrual_for_period(policy, days_of_service, None, employee)

    used_approved, used_pending = await _used_hours(session, employee.id, category)
    used = round(used_approved + used_pending, 2)
    opening = stored.opening_balance_hours if stored is not None else 0.0
    adjusted = stored.adjusted_hours if stored is not None else 0.0
    total_entitlement = round(accrued + opening + adjusted, 2)

    available = round(total_entitlement - used, 2)
    if policy is None or not policy.allow_negative_balance:
        available = max(0.0, available)

    standard_hours = (policy.standard_hours_per_day if policy is not None else None) or DEFAULT_HOURS_PER_DAY
    return CategoryBalance(
        category=category,
        accrued_hours=round(accrued, 2),
        opening_balance_hours=opening,
        adjusted_hours=adjusted,
        total_entitlement_hours=total_entitlement,
        used_hours=used,
        used_approved_hours=used_approved,
        used_pending_hours=used_pending,
        available_hours=available,
        available_days=hours_to_days(available, standard_hours),
        eligible=eligible,
        message=message,
        years_of_service=years_of_service,
        eligibility_date=eligibility_date,
        days_of_service=days_of_service,
        standard_hours_per_day=standard_hours,
        policy_id=policy.id if policy is not None else None,
        policy_name=policy.name if policy is not None else None,
    )


async def get_balances(
    session: AsyncSession,
    employee_id: uuid.UUID,
    as_of: date | None = None,
    cache: LeaveCache | None = None,
) -> EmployeeBalancesResponse:
    """Project every category's balance as of a date without writing anything.

    Accrual is re-derived from service start; used hours count approved and
    pending requests; opening and adjusted hours come from the stored rows.
    """
    as_of = as_of or date.today()
    employee = await _get_employee_or_404(employee_id, cache)

    result = await session.execute(select(LeaveBalance).where(col(LeaveBalance.employee_id) == employee_id))
    stored = {b.leave_type: b for b in result.scalars().all()}

    items = [
        await _project_category(session, employee, category, as_of, stored.get(category.value))
        for category in LeaveCategory
    ]
    return EmployeeBalancesResponse(
        employee_id=employee_id,
        as_of_date=as_of,
        employment_start_date=get_service_start_date(employee),
        items=items,
    )
