# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel

from app.models.enums import LeaveCategory


class AccrualRunResponse(BaseModel):
    """Response from the scheduled accrual trigger endpoint."""

    target_date: date
    processed: int
    accrued: int
    skipped: int
    errors: int


class AccrualOutcomeResponse(BaseModel):
    """What an accrual or recalculation did to one category."""

    category: LeaveCategory
    accrued_hours: float
    available_hours: float
    days_in_period: int
    skipped: bool
    eligible: bool
    message: str | None
    policy_name: str | None


class EmployeeAccrualResponse(BaseModel):
    """Per-category outcomes of accruing or recalculating one employee."""

    employee_id: uuid.UUID
    as_of_date: date
    items: list[AccrualOutcomeResponse]


class RecalculateEntityResponse(BaseModel):
    """Response from an entity-wide balance recalculation."""

    entity_id: uuid.UUID | None
    processed: int
    total: int
    errors: list[str]
