# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Query, status

from app.api.deps import AdminDep, AuthDep, CacheDep
from app.db import SessionDep
from app.schemas.accrual import AccrualOutcomeResponse, EmployeeAccrualResponse
from app.schemas.balance import (
    BalanceRecordListResponse,
    BalanceRecordResponse,
    CreateAdjustmentRequest,
    EmployeeBalancesResponse,
)
from app.services import balance as balance_service

employee_balance_router = APIRouter(
    prefix="/employees/{employee_id}/balances",
    tags=["balances"],
)

adjustment_router = APIRouter(
    prefix="/adjustments",
    tags=["balances"],
)


def _outcomes_response(
    employee_id: uuid.UUID,
    as_of: date,
    outcomes: list[balance_service.BalanceAccrualOutcome],
) -> EmployeeAccrualResponse:
    return EmployeeAccrualResponse(
        employee_id=employee_id,
        as_of_date=as_of,
        items=[AccrualOutcomeResponse(**asdict(o)) for o in outcomes],
    )


@employee_balance_router.get("", response_model=EmployeeBalancesResponse)
async def get_employee_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    cache: CacheDep,
    as_of: date | None = Query(default=None),
) -> EmployeeBalancesResponse:
    """Project every leave category's balance for an employee."""
    return await balance_service.get_balances(session, employee_id, as_of, cache)


@employee_balance_router.get("/records", response_model=BalanceRecordListResponse)
async def get_balance_records(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> BalanceRecordListResponse:
    """Get the stored balance rows for an employee."""
    return await balance_service.list_balance_records(session, employee_id)


@employee_balance_router.post("/accrue", response_model=EmployeeAccrualResponse)
async def accrue_employee_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
    as_of: date | None = Query(default=None),
) -> EmployeeAccrualResponse:
    """Accrue every category up to ``as_of`` (default today) (admin only)."""
    as_of = as_of or date.today()
    outcomes = await balance_service.accrue_employee(session, employee_id, as_of, cache)
    return _outcomes_response(employee_id, as_of, outcomes)


@employee_balance_router.post("/recalculate", response_model=EmployeeAccrualResponse)
async def recalculate_employee_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
    as_of: date | None = Query(default=None),
) -> EmployeeAccrualResponse:
    """Re-derive accrued hours from service start (admin only)."""
    as_of = as_of or date.today()
    outcomes = await balance_service.recalculate_all_balances(
        session, employee_id, as_of, cache=cache, actor_id=auth.user_id
    )
    return _outcomes_response(employee_id, as_of, outcomes)


@adjustment_router.post("", response_model=BalanceRecordResponse, status_code=status.HTTP_201_CREATED)
async def create_adjustment(
    payload: CreateAdjustmentRequest,
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
) -> BalanceRecordResponse:
    """Apply a signed correction to an employee's balance (admin only)."""
    return await balance_service.adjust_balance(session, auth, payload, cache)
