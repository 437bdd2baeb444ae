# ruff: noqa: B008, TC001, TC003
"""API endpoints for accrual runs and batch recalculation."""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query

from app.api.deps import AdminDep, CacheDep
from app.db import SessionDep
from app.schemas.accrual import AccrualRunResponse, RecalculateEntityResponse
from app.services.accrual import run_scheduled_accruals
from app.services.balance import recalculate_balances_for_entity

accrual_router = APIRouter(
    prefix="/accruals",
    tags=["accruals"],
)


@accrual_router.post("/run", response_model=AccrualRunResponse)
async def trigger_accruals(
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
    target_date: date | None = Query(default=None),
) -> AccrualRunResponse:
    """Run the scheduled accrual for every employee up to a date (admin only).

    Useful for testing and backfills. Defaults to today.
    """
    result = await run_scheduled_accruals(session, target_date or date.today(), cache)
    return AccrualRunResponse(
        target_date=result.target_date,
        processed=result.processed,
        accrued=result.accrued,
        skipped=result.skipped,
        errors=result.errors,
    )


@accrual_router.post("/recalculate", response_model=RecalculateEntityResponse)
async def recalculate_entity(
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
    entity_id: uuid.UUID | None = Query(default=None),
) -> RecalculateEntityResponse:
    """Recalculate balances for every active employee, optionally in one entity (admin only)."""
    return await recalculate_balances_for_entity(session, entity_id, cache=cache, actor_id=auth.user_id)
