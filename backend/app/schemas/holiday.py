# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid
from typing import Self

from pydantic import BaseModel, Field, model_validator


class CreateHolidayRequest(BaseModel):
    """Request body for creating a public holiday."""

    date: datetime.date
    name: str = Field(min_length=1, max_length=255)
    entity_id: uuid.UUID | None = None
    country: str | None = Field(default=None, max_length=10)
    state_region: str | None = Field(default=None, max_length=50)
    is_paid: bool = True


class CopyHolidaysRequest(BaseModel):
    """Request body for copying one year's holidays into another."""

    source_year: int = Field(ge=1900, le=2999)
    target_year: int = Field(ge=1900, le=2999)
    entity_id: uuid.UUID | None = None

    @model_validator(mode="after")
    def _validate_years(self) -> Self:
        if self.source_year == self.target_year:
            msg = "target_year must differ from source_year"
            raise ValueError(msg)
        return self


class HolidayResponse(BaseModel):
    """Response schema for a public holiday."""

    id: uuid.UUID
    entity_id: uuid.UUID | None
    date: datetime.date
    name: str
    country: str | None
    state_region: str | None
    is_paid: bool
    is_active: bool


class HolidayListResponse(BaseModel):
    """Paginated list of public holidays."""

    items: list[HolidayResponse]
    total: int


class CopyHolidaysResponse(BaseModel):
    """Result of a holiday copy."""

    copied: int
    skipped: int
