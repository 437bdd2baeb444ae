# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, Field

from app.models.enums import EmployeeStatus, EmploymentType


class EmployeeInfo(BaseModel):
    """Employee record as held by the directory store."""

    id: uuid.UUID
    user_id: uuid.UUID | None = None
    first_name: str
    last_name: str
    email: str
    hours_per_week: float | None = None
    employment_type: EmploymentType | None = EmploymentType.FULL_TIME
    manager_id: uuid.UUID | None = None
    is_manager: bool = False
    service_start_date: date | None = None
    start_date: date | None = None
    termination_date: date | None = None
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    entity_id: uuid.UUID | None = None
    employment_agreement_id: uuid.UUID | None = None
    annual_leave_policy_id: uuid.UUID | None = None
    personal_leave_policy_id: uuid.UUID | None = None
    long_service_leave_policy_id: uuid.UUID | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class UpsertEmployeeRequest(BaseModel):
    """Request body for upserting an employee in the directory stub."""

    user_id: uuid.UUID | None = None
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=1, max_length=255)
    hours_per_week: float | None = Field(default=None, ge=0, le=168)
    employment_type: EmploymentType = EmploymentType.FULL_TIME
    manager_id: uuid.UUID | None = None
    is_manager: bool = False
    service_start_date: date | None = None
    start_date: date | None = None
    termination_date: date | None = None
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    entity_id: uuid.UUID | None = None
    employment_agreement_id: uuid.UUID | None = None
    annual_leave_policy_id: uuid.UUID | None = None
    personal_leave_policy_id: uuid.UUID | None = None
    long_service_leave_policy_id: uuid.UUID | None = None


class EmployeeListResponse(BaseModel):
    """List of directory employees."""

    items: list[EmployeeInfo]
    total: int
