# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from app.models.base import UUIDBase, now_utc


class LeaveBalance(UUIDBase, table=True):
    """Authoritative balance for one employee and leave category.

    ``available_hours`` is derived and must always equal
    ``opening + accrued + adjusted - taken``.
    """

    __tablename__ = "leave_balance"
    __table_args__ = (sa.UniqueConstraint("employee_id", "leave_type", name="uq_balance_employee_category"),)

    employee_id: uuid.UUID = Field(index=True, sa_type=sa.Uuid)
    leave_type: str = Field(max_length=50)
    policy_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_policy.id", ondelete="SET NULL"), nullable=True),
    )
    opening_balance_hours: float = Field(default=0.0, sa_column_kwargs={"server_default": "0"})
    accrued_hours: float = Field(default=0.0, sa_column_kwargs={"server_default": "0"})
    adjusted_hours: float = Field(default=0.0, sa_column_kwargs={"server_default": "0"})
    taken_hours: float = Field(default=0.0, sa_column_kwargs={"server_default": "0"})
    available_hours: float = Field(default=0.0, sa_column_kwargs={"server_default": "0"})
    last_accrual_date: date | None = None
    updated_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
