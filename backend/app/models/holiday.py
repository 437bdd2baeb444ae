# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from app.models.base import UUIDBase


class PublicHoliday(UUIDBase, table=True):
    """A public holiday excluded from chargeable leave days.

    A null ``entity_id`` makes the holiday apply to every entity.
    """

    __tablename__ = "public_holiday"
    __table_args__ = (sa.UniqueConstraint("entity_id", "date", "name", name="uq_holiday_entity_date_name"),)

    entity_id: uuid.UUID | None = Field(default=None, index=True, sa_type=sa.Uuid)
    date: datetime.date = Field(index=True)
    name: str = Field(max_length=255)
    country: str | None = Field(default=None, max_length=10)
    state_region: str | None = Field(default=None, max_length=50)
    is_paid: bool = True
    is_active: bool = True
