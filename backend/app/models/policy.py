# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from app.models.base import TimestampMixin, UUIDBase


class LeavePolicy(UUIDBase, TimestampMixin, table=True):
    """Accrual rules for one leave category and employment-type scope."""

    __tablename__ = "leave_policy"
    __table_args__ = (sa.Index("ix_leave_policy_lookup", "leave_type", "is_default", "is_active"),)

    name: str = Field(max_length=255)
    code: str | None = Field(default=None, max_length=100)
    country: str | None = Field(default=None, max_length=10)
    leave_type: str = Field(max_length=50)
    employment_type_scope: str = Field(default="any", max_length=50)
    accrual_unit: str | None = Field(default="weeks_per_year", max_length=50)
    accrual_rate: float | None = None
    standard_hours_per_day: float | None = 7.6
    hours_per_week_reference: float | None = 38.0
    is_default: bool = False
    is_active: bool = True
    is_system: bool = False
    min_service_years_before_accrual: float | None = None
    accrual_rate_after_threshold: float | None = None
    allow_negative_balance: bool = False
    notes: str | None = None


class EmploymentAgreement(UUIDBase, TimestampMixin, table=True):
    """An award or enterprise agreement that supplies default policies."""

    __tablename__ = "employment_agreement"

    name: str = Field(max_length=255)
    is_active: bool = True
    default_annual_leave_policy_id: uuid.UUID | None = Field(default=None, sa_type=sa.Uuid)
    default_personal_leave_policy_id: uuid.UUID | None = Field(default=None, sa_type=sa.Uuid)
    default_long_service_leave_policy_id: uuid.UUID | None = Field(default=None, sa_type=sa.Uuid)
