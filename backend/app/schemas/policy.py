# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from app.models.enums import AccrualUnit, EmploymentTypeScope, LeaveCategory

# ---------------------------------------------------------------------------
# Policy payloads
# ---------------------------------------------------------------------------


class CreatePolicyRequest(BaseModel):
    """Request body for creating a leave policy."""

    name: str = Field(min_length=1, max_length=255)
    code: str | None = Field(default=None, max_length=100)
    country: str | None = Field(default="AU", max_length=10)
    leave_type: LeaveCategory
    employment_type_scope: EmploymentTypeScope = EmploymentTypeScope.ANY
    accrual_unit: AccrualUnit = AccrualUnit.WEEKS_PER_YEAR
    accrual_rate: float = Field(ge=0)
    standard_hours_per_day: float = Field(default=7.6, gt=0, le=24)
    hours_per_week_reference: float = Field(default=38.0, gt=0, le=168)
    is_default: bool = False
    min_service_years_before_accrual: float | None = Field(default=None, ge=0)
    accrual_rate_after_threshold: float | None = Field(default=None, ge=0)
    allow_negative_balance: bool = False
    notes: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def _validate_threshold(self) -> Self:
        if self.accrual_rate_after_threshold is not None and self.min_service_years_before_accrual is None:
            msg = "accrual_rate_after_threshold requires min_service_years_before_accrual"
            raise ValueError(msg)
        return self


class UpdatePolicyRequest(BaseModel):
    """Partial update for a leave policy. Unset fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    employment_type_scope: EmploymentTypeScope | None = None
    accrual_unit: AccrualUnit | None = None
    accrual_rate: float | None = Field(default=None, ge=0)
    standard_hours_per_day: float | None = Field(default=None, gt=0, le=24)
    hours_per_week_reference: float | None = Field(default=None, gt=0, le=168)
    is_default: bool | None = None
    is_active: bool | None = None
    min_service_years_before_accrual: float | None = Field(default=None, ge=0)
    accrual_rate_after_threshold: float | None = Field(default=None, ge=0)
    allow_negative_balance: bool | None = None
    notes: str | None = Field(default=None, max_length=2000)


class PolicyResponse(BaseModel):
    """Response schema for a leave policy."""

    id: uuid.UUID
    name: str
    code: str | None
    country: str | None
    leave_type: LeaveCategory
    employment_type_scope: EmploymentTypeScope
    accrual_unit: AccrualUnit | None
    accrual_rate: float | None
    standard_hours_per_day: float | None
    hours_per_week_reference: float | None
    is_default: bool
    is_active: bool
    is_system: bool
    min_service_years_before_accrual: float | None
    accrual_rate_after_threshold: float | None
    allow_negative_balance: bool
    notes: str | None
    created_at: datetime


class PolicyListResponse(BaseModel):
    """List of leave policies."""

    items: list[PolicyResponse]
    total: int


class ResolvedPolicyResponse(BaseModel):
    """Outcome of policy resolution for one employee and category.

    ``policy`` is null when the employee has no entitlement in the category.
    """

    employee_id: uuid.UUID
    category: LeaveCategory
    source: str | None
    policy: PolicyResponse | None


# ---------------------------------------------------------------------------
# Employment agreements
# ---------------------------------------------------------------------------


class CreateAgreementRequest(BaseModel):
    """Request body for creating an employment agreement."""

    name: str = Field(min_length=1, max_length=255)
    default_annual_leave_policy_id: uuid.UUID | None = None
    default_personal_leave_policy_id: uuid.UUID | None = None
    default_long_service_leave_policy_id: uuid.UUID | None = None


class AgreementResponse(BaseModel):
    """Response schema for an employment agreement."""

    id: uuid.UUID
    name: str
    is_active: bool
    default_annual_leave_policy_id: uuid.UUID | None
    default_personal_leave_policy_id: uuid.UUID | None
    default_long_service_leave_policy_id: uuid.UUID | None
    created_at: datetime


class AgreementListResponse(BaseModel):
    """List of employment agreements."""

    items: list[AgreementResponse]
    total: int
