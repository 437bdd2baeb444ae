# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from app.models.enums import LeaveCategory


class CreateLeaveTypeRequest(BaseModel):
    """Request body for registering a leave type.

    ``category`` may be omitted for codes the classifier can place
    unambiguously; ``is_paid`` defaults from the code when omitted.
    """

    code: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    category: LeaveCategory | None = None
    is_paid: bool | None = None


class LeaveTypeResponse(BaseModel):
    """Response schema for a leave type."""

    id: uuid.UUID
    code: str
    name: str
    category: LeaveCategory
    is_paid: bool
    is_active: bool
    created_at: datetime


class LeaveTypeListResponse(BaseModel):
    """List of leave types."""

    items: list[LeaveTypeResponse]
    total: int
