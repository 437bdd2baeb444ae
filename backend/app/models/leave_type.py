from __future__ import annotations

import sqlalchemy as sa
from sqlmodel import Field

from app.models.base import TimestampMixin, UUIDBase


class LeaveType(UUIDBase, TimestampMixin, table=True):
    """A requestable kind of leave (e.g. "Annual Leave", "Carer's Leave").

    ``category`` is resolved once when the type is registered and is the only
    thing the balance ledger looks at.
    """

    __tablename__ = "leave_type"
    __table_args__ = (sa.UniqueConstraint("code", name="uq_leave_type_code"),)

    code: str = Field(max_length=100)
    name: str = Field(max_length=255)
    category: str = Field(max_length=50, index=True)
    is_paid: bool = True
    is_active: bool = True
