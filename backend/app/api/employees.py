# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from app.api.deps import AdminDep, AuthDep, CacheDep
from app.db import SessionDep
from app.exceptions import AppError
from app.models.enums import LeaveCategory
from app.schemas.employee import EmployeeListResponse, UpsertEmployeeRequest
from app.schemas.policy import ResolvedPolicyResponse
from app.services.employee import EmployeeInfo, get_employee_service, load_employee
from app.services.policy import get_resolved_policy

employees_router = APIRouter(
    prefix="/employees",
    tags=["employees"],
)


@employees_router.put(
    "/{employee_id}",
    response_model=EmployeeInfo,
)
async def upsert_employee(
    employee_id: uuid.UUID,
    payload: UpsertEmployeeRequest,
    auth: AdminDep,
    cache: CacheDep,
) -> EmployeeInfo:
    """Create or update an employee in the stub directory (admin only)."""
    svc = get_employee_service()
    employee = EmployeeInfo(id=employee_id, **payload.model_dump())
    svc.seed(employee)  # ty: ignore[unresolved-attribute]
    cache.invalidate(employee_id)
    return employee


@employees_router.get(
    "/{employee_id}",
    response_model=EmployeeInfo,
)
async def get_employee(
    employee_id: uuid.UUID,
    auth: AuthDep,
    cache: CacheDep,
) -> EmployeeInfo:
    """Get an employee from the directory."""
    employee = await load_employee(employee_id, cache)
    if employee is None:
        raise AppError("Employee not found", status_code=404)
    return employee


@employees_router.get(
    "",
    response_model=EmployeeListResponse,
)
async def list_employees(
    auth: AuthDep,
    entity_id: uuid.UUID | None = Query(default=None),
) -> EmployeeListResponse:
    """List directory employees, optionally within one entity."""
    employees = await get_employee_service().list_employees(entity_id)
    return EmployeeListResponse(items=employees, total=len(employees))


@employees_router.get(
    "/{employee_id}/policies/{category}",
    response_model=ResolvedPolicyResponse,
)
async def resolve_employee_policy(
    employee_id: uuid.UUID,
    category: LeaveCategory,
    session: SessionDep,
    auth: AuthDep,
    cache: CacheDep,
) -> ResolvedPolicyResponse:
    """Show which policy governs an employee's leave category, and why."""
    employee = await load_employee(employee_id, cache)
    if employee is None:
        raise AppError("Employee not found", status_code=404)
    return await get_resolved_policy(session, employee, category)
