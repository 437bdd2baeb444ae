# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from app.models.enums import LeaveErrorCode, LeaveRequestStatus, PartialDayType

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateLeaveRequestPayload(BaseModel):
    """Request body for creating a leave request."""

    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    partial_day_type: PartialDayType = PartialDayType.FULL
    reason: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must be on or after start_date"
            raise ValueError(msg)
        return self


class ChargeableDaysRequest(BaseModel):
    """Request body for previewing the chargeable days of a date range."""

    employee_id: uuid.UUID
    start_date: date
    end_date: date
    partial_day_type: PartialDayType = PartialDayType.FULL

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must be on or after start_date"
            raise ValueError(msg)
        return self


class DecisionPayload(BaseModel):
    """Request body for approve actions."""

    comment: str | None = Field(default=None, max_length=1000)


class DeclinePayload(BaseModel):
    """Request body for decline actions.

    An empty reason is accepted here and rejected by the workflow so the
    caller receives ``DECLINE_REASON_REQUIRED``.
    """

    reason: str = Field(default="", max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ChargeableDaysResult(BaseModel):
    """Breakdown of a date range into payable leave days."""

    total_days: int = 0
    chargeable_days: float = 0.0
    hours_per_day: float = 0.0
    hours_deducted: float = 0.0
    is_half_day: bool = False
    partial_day_type: PartialDayType = PartialDayType.FULL


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    total_days: float
    hours_per_day: float
    hours_deducted: float
    partial_day_type: PartialDayType
    status: LeaveRequestStatus
    reason: str | None
    manager_id: uuid.UUID | None
    manager_comment: str | None
    rejection_reason: str | None
    approved_at: datetime | None
    approved_by: uuid.UUID | None
    rejected_at: datetime | None
    cancelled_at: datetime | None
    created_at: datetime


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int


class LeaveActionResult(BaseModel):
    """Outcome of a leave workflow operation.

    Business-rule failures come back here with ``success=False`` and an
    ``error`` code rather than as exceptions.
    """

    success: bool
    error: LeaveErrorCode | None = None
    message: str | None = None
    request: LeaveRequestResponse | None = None
    hours_deducted: float = 0.0
    auto_approved: bool = False
