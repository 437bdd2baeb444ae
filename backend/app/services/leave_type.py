"""Leave-type registry and balance-category classification."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from app.exceptions import AppError
from app.models.enums import AuditEntityType, AuditEvent, LeaveCategory
from app.models.leave_type import LeaveType
from app.schemas.leave_type import LeaveTypeListResponse, LeaveTypeResponse
from app.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from app.schemas.auth import AuthContext
    from app.schemas.leave_type import CreateLeaveTypeRequest

logger = logging.getLogger(__name__)

# Substrings that place a code in each category group.
_CATEGORY_KEYWORDS: dict[LeaveCategory, tuple[str, ...]] = {
    LeaveCategory.PERSONAL: ("personal", "sick", "carer"),
    LeaveCategory.LONG_SERVICE: ("long", "lsl"),
    LeaveCategory.ANNUAL: ("annual",),
}

# Codes containing any of these are paid leave and closed to casual employees.
PAID_LEAVE_KEYWORDS = ("annual", "personal", "sick")


def _normalise(code: str | None, name: str | None = None) -> str:
    return (code or name or "").lower()


def classify_leave_category(code: str | None, name: str | None = None) -> LeaveCategory:
    """Legacy substring classification of a leave-type code.

    personal/sick/carer -> personal, long/lsl -> long_service, anything else
    -> annual. The first matching rule wins.
    """
    text = _normalise(code, name)
    if any(k in text for k in _CATEGORY_KEYWORDS[LeaveCategory.PERSONAL]):
        return LeaveCategory.PERSONAL
    if any(k in text for k in _CATEGORY_KEYWORDS[LeaveCategory.LONG_SERVICE]):
        return LeaveCategory.LONG_SERVICE
    return LeaveCategory.ANNUAL


def resolve_leave_category(
    code: str | None,
    name: str | None = None,
    explicit: LeaveCategory | None = None,
) -> LeaveCategory:
    """Resolve the category a new leave type is stored under.

    An explicit category always wins. Otherwise the code must match exactly
    one keyword group; ambiguous or unmatched codes are rejected.
    """
    if explicit is not None:
        return explicit

    text = _normalise(code, name)
    matches = [category for category, keywords in _CATEGORY_KEYWORDS.items() if any(k in text for k in keywords)]
    if len(matches) > 1:
        raise AppError(
            f"Leave type code '{code}' matches several categories ({', '.join(m.value for m in matches)}); "
            "supply a category explicitly",
            status_code=400,
        )
    if not matches:
        raise AppError(
            f"Leave type code '{code}' does not identify a category; supply a category explicitly",
            status_code=400,
        )
    return matches[0]


def is_paid_leave_code(code: str | None, name: str | None = None) -> bool:
    text = _normalise(code, name)
    return any(k in text for k in PAID_LEAVE_KEYWORDS)


def _build_leave_type_response(leave_type: LeaveType) -> LeaveTypeResponse:
    return LeaveTypeResponse(
        id=leave_type.id,
        code=leave_type.code,
        name=leave_type.name,
        category=LeaveCategory(leave_type.category),
        is_paid=leave_type.is_paid,
        is_active=leave_type.is_active,
        created_at=leave_type.created_at,
    )


async def get_leave_type_or_404(session: AsyncSession, leave_type_id: uuid.UUID) -> LeaveType:
    result = await session.execute(select(LeaveType).where(col(LeaveType.id) == leave_type_id))
    leave_type = result.scalar_one_or_none()
    if leave_type is None:
        raise AppError("Leave type not found", status_code=404)
    return leave_type


async def create_leave_type(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateLeaveTypeRequest,
) -> LeaveTypeResponse:
    """Register a leave type, fixing its balance category."""
    category = resolve_leave_category(payload.code, payload.name, payload.category)
    is_paid = payload.is_paid if payload.is_paid is not None else is_paid_leave_code(payload.code, payload.name)

    existing = await session.execute(select(LeaveType).where(col(LeaveType.code) == payload.code))
    if existing.scalar_one_or_none() is not None:
        raise AppError(f"Leave type '{payload.code}' already exists", status_code=409)

    leave_type = LeaveType(
        code=payload.code,
        name=payload.name,
        category=category.value,
        is_paid=is_paid,
    )
    session.add(leave_type)
    await session.flush()

    await write_audit_log(
        session,
        event_type=AuditEvent.LEAVE_TYPE_CREATED,
        entity_type=AuditEntityType.LEAVE_TYPE,
        entity_id=leave_type.id,
        actor_id=auth.user_id,
        description=f"Registered leave type {leave_type.name} as {category.value}",
        after_json=model_to_audit_dict(leave_type),
    )

    await session.commit()
    await session.refresh(leave_type)
    logger.info("Registered leave type %s (%s, paid=%s)", leave_type.code, category.value, is_paid)
    return _build_leave_type_response(leave_type)


async def list_leave_types(
    session: AsyncSession,
    include_inactive: bool = False,
) -> LeaveTypeListResponse:
    """List leave types ordered by name."""
    base_filter = [] if include_inactive else [col(LeaveType.is_active).is_(True)]
    count_result = await session.execute(select(func.count()).select_from(LeaveType).where(*base_filter))
    total = count_result.scalar_one()
    result = await session.execute(select(LeaveType).where(*base_filter).order_by(col(LeaveType.name)))
    return LeaveTypeListResponse(
        items=[_build_leave_type_response(lt) for lt in result.scalars().all()],
        total=total,
    )


async def get_leave_type(session: AsyncSession, leave_type_id: uuid.UUID) -> LeaveTypeResponse:
    """Get a single leave type."""
    return _build_leave_type_response(await get_leave_type_or_404(session, leave_type_id))
