# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from app.api.deps import AuthDep, CacheDep, raise_for_result
from app.db import SessionDep
from app.models.enums import LeaveRequestStatus
from app.schemas.request import (
    ChargeableDaysRequest,
    ChargeableDaysResult,
    CreateLeaveRequestPayload,
    DecisionPayload,
    DeclinePayload,
    LeaveActionResult,
    LeaveRequestListResponse,
    LeaveRequestResponse,
)
from app.services import request as request_service
from app.services.chargeable_days import compute_chargeable_days

requests_router = APIRouter(
    prefix="/leave-requests",
    tags=["leave-requests"],
)


@requests_router.post("/preview", response_model=ChargeableDaysResult)
async def preview_chargeable_days(
    payload: ChargeableDaysRequest,
    session: SessionDep,
    auth: AuthDep,
    cache: CacheDep,
) -> ChargeableDaysResult:
    """Break a date range into chargeable days and hours without booking anything."""
    return await compute_chargeable_days(
        session, payload.employee_id, payload.start_date, payload.end_date, payload.partial_day_type, cache
    )


@requests_router.post("", response_model=LeaveActionResult, status_code=status.HTTP_201_CREATED)
async def create_leave_request(
    payload: CreateLeaveRequestPayload,
    session: SessionDep,
    auth: AuthDep,
    cache: CacheDep,
) -> LeaveActionResult:
    """Submit a leave request. Employees without a manager are auto-approved."""
    return raise_for_result(await request_service.create_leave_request(session, auth, payload, cache))


@requests_router.post("/on-behalf", response_model=LeaveActionResult, status_code=status.HTTP_201_CREATED)
async def create_leave_on_behalf(
    payload: CreateLeaveRequestPayload,
    session: SessionDep,
    auth: AuthDep,
    cache: CacheDep,
) -> LeaveActionResult:
    """Create approved leave for a direct report (managers) or anyone (admins)."""
    return raise_for_result(await request_service.create_leave_as_manager(session, auth, payload, cache))


@requests_router.get("", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    session: SessionDep,
    auth: AuthDep,
    employee_id: uuid.UUID | None = Query(default=None),
    status_filter: LeaveRequestStatus | None = Query(default=None, alias="status"),
    manager_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests with optional filters."""
    return await request_service.list_leave_requests(
        session,
        employee_id,
        status_filter.value if status_filter is not None else None,
        manager_id,
        offset,
        limit,
    )


@requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Get a single leave request."""
    return await request_service.get_leave_request(session, request_id)


@requests_router.post("/{request_id}/approve", response_model=LeaveActionResult)
async def approve_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    cache: CacheDep,
    payload: DecisionPayload | None = None,
) -> LeaveActionResult:
    """Approve a pending request (the employee's manager or an admin)."""
    comment = payload.comment if payload is not None else None
    return raise_for_result(
        await request_service.approve_leave_request(session, auth, request_id, comment, cache)
    )


@requests_router.post("/{request_id}/decline", response_model=LeaveActionResult)
async def decline_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    cache: CacheDep,
    payload: DeclinePayload | None = None,
) -> LeaveActionResult:
    """Decline a pending request. A reason is required."""
    reason = payload.reason if payload is not None else ""
    return raise_for_result(
        await request_service.decline_leave_request(session, auth, request_id, reason, cache)
    )


@requests_router.post("/{request_id}/cancel", response_model=LeaveActionResult)
async def cancel_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    cache: CacheDep,
) -> LeaveActionResult:
    """Cancel a pending request or recall approved leave that has not started."""
    return raise_for_result(await request_service.cancel_leave_request(session, auth, request_id, cache))
