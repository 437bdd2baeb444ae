# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, Request, status

from app.exceptions import AppError
from app.models.enums import LeaveErrorCode
from app.schemas.auth import AuthContext
from app.schemas.request import LeaveActionResult
from app.services.cache import LeaveCache


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default="employee"),
    x_employee_id: uuid.UUID | None = Header(default=None),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(user_id=x_user_id, role=x_role, employee_id=x_employee_id)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require admin role for the request."""
    if not auth.is_admin:
        raise AppError("Admin access required", status_code=status.HTTP_403_FORBIDDEN)
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


def get_leave_cache(request: Request) -> LeaveCache:
    """The application's leave cache."""
    return request.app.state.leave_cache


CacheDep = Annotated[LeaveCache, Depends(get_leave_cache)]


_ERROR_STATUS: dict[LeaveErrorCode, int] = {
    LeaveErrorCode.NOT_AUTHORIZED: status.HTTP_403_FORBIDDEN,
    LeaveErrorCode.EMPLOYEE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    LeaveErrorCode.OVERLAPPING_LEAVE: status.HTTP_409_CONFLICT,
    LeaveErrorCode.LEAVE_ALREADY_FINALISED: status.HTTP_409_CONFLICT,
    LeaveErrorCode.LEAVE_ALREADY_STARTED: status.HTTP_409_CONFLICT,
    LeaveErrorCode.STORAGE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_result(result: LeaveActionResult) -> LeaveActionResult:
    """Turn a failed workflow result into an ``AppError`` carrying its code.

    Codes without an explicit mapping are client validation failures (400).
    """
    if result.success:
        return result
    code = result.error or LeaveErrorCode.STORAGE_ERROR
    raise AppError(
        result.message or code.value,
        status_code=_ERROR_STATUS.get(code, status.HTTP_400_BAD_REQUEST),
        code=code.value,
    )
