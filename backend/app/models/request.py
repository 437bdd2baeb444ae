# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from app.models.base import TimestampMixin, UUIDBase


class LeaveRequest(UUIDBase, TimestampMixin, table=True):
    """A leave request and its approval state.

    ``total_days`` and ``hours_per_day`` are frozen when the request is
    created; ``hours_deducted`` records what the balance was actually charged.
    """

    __tablename__ = "leave_request"
    __table_args__ = (sa.Index("ix_leave_request_employee_dates", "employee_id", "start_date", "end_date"),)

    employee_id: uuid.UUID = Field(index=True, sa_type=sa.Uuid)
    leave_type_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_type.id", ondelete="RESTRICT"), nullable=False),
    )
    start_date: date
    end_date: date
    total_days: float
    hours_per_day: float
    hours_deducted: float = 0.0
    partial_day_type: str = Field(default="full", max_length=20)
    status: str = Field(max_length=20, index=True)
    reason: str | None = Field(default=None, max_length=1000)
    manager_id: uuid.UUID | None = Field(default=None, sa_type=sa.Uuid)
    manager_comment: str | None = Field(default=None, max_length=1000)
    rejection_reason: str | None = Field(default=None, max_length=1000)
    approved_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # type: ignore[call-overload]
    approved_by: uuid.UUID | None = Field(default=None, sa_type=sa.Uuid)
    rejected_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # type: ignore[call-overload]
    cancelled_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # type: ignore[call-overload]
