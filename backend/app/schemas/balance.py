# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from app.models.enums import LeaveCategory

# ---------------------------------------------------------------------------
# Stored balance
# ---------------------------------------------------------------------------


class BalanceRecordResponse(BaseModel):
    """The persisted ledger row for one employee and category."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveCategory
    policy_id: uuid.UUID | None
    opening_balance_hours: float
    accrued_hours: float
    adjusted_hours: float
    taken_hours: float
    available_hours: float
    last_accrual_date: date | None
    version: int
    updated_at: datetime | None


class BalanceRecordListResponse(BaseModel):
    """All stored balance rows for an employee."""

    items: list[BalanceRecordResponse]
    total: int


# ---------------------------------------------------------------------------
# Projected balance
# ---------------------------------------------------------------------------


class CategoryBalance(BaseModel):
    """Projected balance for one category as of a date.

    ``used_hours`` counts approved and pending requests; pending hours are
    reserved even though the ledger has not been charged yet.
    """

    category: LeaveCategory
    accrued_hours: float
    opening_balance_hours: float
    adjusted_hours: float
    total_entitlement_hours: float
    used_hours: float
    used_approved_hours: float
    used_pending_hours: float
    available_hours: float
    available_days: float
    eligible: bool
    message: str | None = None
    years_of_service: float | None = None
    eligibility_date: date | None = None
    days_of_service: int | None = None
    standard_hours_per_day: float
    policy_id: uuid.UUID | None = None
    policy_name: str | None = None


class EmployeeBalancesResponse(BaseModel):
    """Projected balances for every category."""

    employee_id: uuid.UUID
    as_of_date: date
    employment_start_date: date | None
    items: list[CategoryBalance]


# ---------------------------------------------------------------------------
# Adjustments
# ---------------------------------------------------------------------------


class CreateAdjustmentRequest(BaseModel):
    """Request body for an admin balance correction."""

    employee_id: uuid.UUID
    leave_type: LeaveCategory
    delta_hours: float = Field(description="Signed hours: positive to add, negative to deduct")
    reason: str = Field(min_length=1, max_length=1000)
