from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest

from app.exceptions import AppError
from app.models.enums import LeaveCategory
from app.schemas.auth import AuthContext
from app.schemas.leave_type import CreateLeaveTypeRequest
from app.services.leave_type import (
    classify_leave_category,
    create_leave_type,
    is_paid_leave_code,
    list_leave_types,
    resolve_leave_category,
)

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

ADMIN = AuthContext(user_id=uuid.uuid4(), role="admin")


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("ANNUAL", LeaveCategory.ANNUAL),
        ("SICK", LeaveCategory.PERSONAL),
        ("Personal/Carer", LeaveCategory.PERSONAL),
        ("LSL", LeaveCategory.LONG_SERVICE),
        ("long_service", LeaveCategory.LONG_SERVICE),
        ("PARENTAL", LeaveCategory.ANNUAL),
    ],
)
def test_classify_leave_category(code: str, expected: LeaveCategory) -> None:
    assert classify_leave_category(code) == expected


def test_classify_uses_name_when_code_missing() -> None:
    assert classify_leave_category(None, "Sick Leave") == LeaveCategory.PERSONAL


def test_resolve_requires_a_single_match() -> None:
    assert resolve_leave_category("CARER") == LeaveCategory.PERSONAL

    with pytest.raises(AppError, match="several categories"):
        resolve_leave_category("ANNUAL_LSL")
    with pytest.raises(AppError, match="does not identify a category"):
        resolve_leave_category("PARENTAL")


def test_explicit_category_wins() -> None:
    assert resolve_leave_category("PARENTAL", explicit=LeaveCategory.PERSONAL) == LeaveCategory.PERSONAL


def test_paid_leave_codes() -> None:
    assert is_paid_leave_code("ANNUAL")
    assert is_paid_leave_code("sick")
    assert not is_paid_leave_code("CARER")
    assert not is_paid_leave_code("LSL")


async def test_create_leave_type(db_session: AsyncSession) -> None:
    created = await create_leave_type(db_session, ADMIN, CreateLeaveTypeRequest(code="SICK", name="Sick Leave"))
    assert created.category == LeaveCategory.PERSONAL
    assert created.is_paid is True

    unpaid = await create_leave_type(
        db_session, ADMIN, CreateLeaveTypeRequest(code="UNPAID", name="Unpaid Leave", category="annual", is_paid=False)
    )
    assert unpaid.category == LeaveCategory.ANNUAL
    assert unpaid.is_paid is False

    with pytest.raises(AppError) as exc_info:
        await create_leave_type(db_session, ADMIN, CreateLeaveTypeRequest(code="SICK", name="Sick again"))
    assert exc_info.value.status_code == 409

    listed = await list_leave_types(db_session)
    assert [lt.name for lt in listed.items] == ["Sick Leave", "Unpaid Leave"]


async def test_leave_type_endpoints(async_client: AsyncClient) -> None:
    admin_headers = {"X-User-Id": str(ADMIN.user_id), "X-Role": "admin"}
    user_headers = {"X-User-Id": str(uuid.uuid4())}

    resp = await async_client.post("/leave-types", json={"code": "ANNUAL", "name": "Annual Leave"}, headers=user_headers)
    assert resp.status_code == 403

    resp = await async_client.post("/leave-types", json={"code": "ANNUAL", "name": "Annual Leave"}, headers=admin_headers)
    assert resp.status_code == 201
    leave_type_id = resp.json()["id"]
    assert resp.json()["category"] == "annual"

    resp = await async_client.post(
        "/leave-types", json={"code": "ANNUAL_LSL", "name": "Mixed"}, headers=admin_headers
    )
    assert resp.status_code == 400

    resp = await async_client.get(f"/leave-types/{leave_type_id}", headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["code"] == "ANNUAL"

    resp = await async_client.get("/leave-types", headers=user_headers)
    assert resp.json()["total"] == 1

    resp = await async_client.get(f"/leave-types/{uuid.uuid4()}", headers=user_headers)
    assert resp.status_code == 404
