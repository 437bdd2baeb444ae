"""Leave request workflow: create, approve, decline, cancel and create-on-behalf.

Every mutation runs in one transaction covering the request row, the locked
balance row and the audit entry. Notifications go out after commit.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from app.exceptions import AppError
from app.models.enums import (
    AuditEntityType,
    AuditEvent,
    EmploymentType,
    LeaveCategory,
    LeaveErrorCode,
    LeaveRequestStatus,
    NotificationType,
    PartialDayType,
)
from app.models.request import LeaveRequest
from app.schemas.request import LeaveActionResult, LeaveRequestListResponse, LeaveRequestResponse
from app.services.audit import model_to_audit_dict, write_audit_log
from app.services.balance import (
    accrue_balance,
    deduct_hours,
    get_or_create_balance,
    has_sufficient_balance,
    pending_hours,
    restore_hours,
)
from app.services.chargeable_days import compute_chargeable_days, is_half_day
from app.services.employee import load_employee
from app.services.leave_type import get_leave_type_or_404
from app.services.notification import send_notification
from app.services.policy import resolve_policy

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.models.leave_type import LeaveType
    from app.schemas.auth import AuthContext
    from app.schemas.employee import EmployeeInfo
    from app.schemas.request import CreateLeaveRequestPayload
    from app.services.cache import LeaveCache

logger = logging.getLogger(__name__)

_LIVE_STATUSES = (LeaveRequestStatus.PENDING.value, LeaveRequestStatus.APPROVED.value)
_FINALISED_STATUSES = (
    LeaveRequestStatus.APPROVED.value,
    LeaveRequestStatus.DECLINED.value,
    LeaveRequestStatus.CANCELLED.value,
)
_TERMINAL_STATUSES = (LeaveRequestStatus.DECLINED.value, LeaveRequestStatus.CANCELLED.value)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    return LeaveRequestResponse(
        id=request.id,
        employee_id=request.employee_id,
        leave_type_id=request.leave_type_id,
        start_date=request.start_date,
        end_date=request.end_date,
        total_days=request.total_days,
        hours_per_day=request.hours_per_day,
        hours_deducted=request.hours_deducted,
        partial_day_type=PartialDayType(request.partial_day_type),
        status=LeaveRequestStatus(request.status),
        reason=request.reason,
        manager_id=request.manager_id,
        manager_comment=request.manager_comment,
        rejection_reason=request.rejection_reason,
        approved_at=request.approved_at,
        approved_by=request.approved_by,
        rejected_at=request.rejected_at,
        cancelled_at=request.cancelled_at,
        created_at=request.created_at,
    )


def _failure(error: LeaveErrorCode, message: str) -> LeaveActionResult:
    return LeaveActionResult(success=False, error=error, message=message)


async def _storage_failure(session: AsyncSession, action: str, target: object) -> LeaveActionResult:
    await session.rollback()
    logger.exception("Storage error while trying to %s leave request for %s", action, target)
    return _failure(LeaveErrorCode.STORAGE_ERROR, f"Could not {action} the leave request. Please try again.")


async def _get_request_or_404(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
    """Fetch a request by ID. Raises 404 if not found."""
    result = await session.execute(select(LeaveRequest).where(col(LeaveRequest.id) == request_id))
    request = result.scalar_one_or_none()
    if request is None:
        raise AppError("Leave request not found", status_code=404)
    return request


async def _find_overlapping_requests(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> list[LeaveRequest]:
    """Pending or approved requests whose dates intersect [start_date, end_date]."""
    result = await session.execute(
        select(LeaveRequest).where(
            col(LeaveRequest.employee_id) == employee_id,
            col(LeaveRequest.status).in_(_LIVE_STATUSES),
            col(LeaveRequest.start_date) <= end_date,
            col(LeaveRequest.end_date) >= start_date,
        )
    )
    return list(result.scalars().all())


def _can_decide(auth: AuthContext, request: LeaveRequest) -> bool:
    """Admins, or the manager the request was routed to."""
    return auth.is_admin or (auth.employee_id is not None and auth.employee_id == request.manager_id)


def _is_self(auth: AuthContext, employee_id: uuid.UUID) -> bool:
    return auth.employee_id is not None and auth.employee_id == employee_id


def _casual_paid_leave(employee: EmployeeInfo, leave_type: LeaveType) -> bool:
    employment_type = employee.employment_type or EmploymentType.FULL_TIME
    return employment_type == EmploymentType.CASUAL and leave_type.is_paid


class _Rejection(Exception):
    """Internal: a validation step failed with a structured result."""

    def __init__(self, result: LeaveActionResult) -> None:
        super().__init__(result.message)
        self.result = result


async def _validate_new_leave(
    session: AsyncSession,
    employee: EmployeeInfo,
    leave_type: LeaveType,
    payload: CreateLeaveRequestPayload,
    today: date,
    cache: LeaveCache | None,
) -> tuple[float, float, float]:
    """Run the checks shared by both creation paths.

    Returns (chargeable days, hours per day, hours needed). Leaves the
    employee's balance row locked and accrued to ``today``.
    """
    if is_half_day(payload.partial_day_type) and payload.start_date != payload.end_date:
        raise _Rejection(
            _failure(
                LeaveErrorCode.HALF_DAY_MUST_BE_SINGLE_DAY,
                "Half-day leave is only available for single-day requests. "
                "Make the start and end date the same or choose a full day.",
            )
        )

    if _casual_paid_leave(employee, leave_type):
        raise _Rejection(
            _failure(
                LeaveErrorCode.PAID_LEAVE_NOT_ALLOWED_FOR_CASUAL,
                "Casual employees are not eligible for paid annual or personal leave.",
            )
        )

    overlapping = await _find_overlapping_requests(session, employee.id, payload.start_date, payload.end_date)
    if overlapping:
        raise _Rejection(
            _failure(
                LeaveErrorCode.OVERLAPPING_LEAVE,
                f"Leave already booked between {overlapping[0].start_date.isoformat()} "
                f"and {overlapping[0].end_date.isoformat()} overlaps these dates.",
            )
        )

    breakdown = await compute_chargeable_days(
        session, employee.id, payload.start_date, payload.end_date, payload.partial_day_type, cache
    )
    if breakdown.chargeable_days <= 0:
        raise _Rejection(
            _failure(LeaveErrorCode.NO_WORKING_DAYS, "The selected dates contain no working days.")
        )

    category = LeaveCategory(leave_type.category)
    policy = await resolve_policy(session, employee, category)
    balance = await get_or_create_balance(session, employee, category)
    if policy is not None:
        await accrue_balance(session, employee, category, today, policy)

    needed = round(breakdown.chargeable_days * breakdown.hours_per_day, 2)
    allow_negative = policy.allow_negative_balance if policy is not None else False
    # Pending requests are charged on approval, so they are held here.
    available = round(balance.available_hours - await pending_hours(session, employee.id, category), 2)
    if not has_sufficient_balance(available, needed, allow_negative):
        raise _Rejection(
            _failure(
                LeaveErrorCode.INSUFFICIENT_BALANCE,
                f"Insufficient leave balance. {available:.2f} hours available "
                f"but {needed:.2f} hours needed.",
            )
        )

    return breakdown.chargeable_days, breakdown.hours_per_day, needed


async def _notify_manager_of_request(
    employee: EmployeeInfo,
    request: LeaveRequest,
    leave_type: LeaveType,
    cache: LeaveCache | None,
) -> None:
    if employee.manager_id is None:
        return
    manager = await load_employee(employee.manager_id, cache)
    if manager is None:
        return
    await send_notification(
        manager.user_id,
        NotificationType.LEAVE_SUBMITTED,
        f"{employee.full_name} has submitted a leave request ({leave_type.name})",
        f"/leave-requests/{request.id}",
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateLeaveRequestPayload,
    cache: LeaveCache | None = None,
    today: date | None = None,
) -> LeaveActionResult:
    """Create a leave request for an employee.

    Flow:
    1. Authorise (the employee themself or an admin)
    2. Half-day, casual paid-leave and overlap checks
    3. Chargeable days; zero working days is rejected
    4. Resolve policy, lock and accrue the balance, check sufficiency
    5. Persist with days and hours-per-day frozen
    6. No manager: approve and deduct in the same transaction
    7. Audit, commit, notify
    """
    today = today or date.today()
    employee = await load_employee(payload.employee_id, cache)
    if employee is None:
        return _failure(LeaveErrorCode.EMPLOYEE_NOT_FOUND, "Employee not found.")
    if not (auth.is_admin or _is_self(auth, employee.id)):
        return _failure(LeaveErrorCode.NOT_AUTHORIZED, "You can only create leave requests for yourself.")

    leave_type = await get_leave_type_or_404(session, payload.leave_type_id)

    try:
        try:
            total_days, hours_per_day, needed = await _validate_new_leave(
                session, employee, leave_type, payload, today, cache
            )
        except _Rejection as rejection:
            await session.rollback()
            return rejection.result

        has_manager = employee.manager_id is not None
        now = datetime.now(UTC)
        leave_request = LeaveRequest(
            employee_id=employee.id,
            leave_type_id=leave_type.id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            total_days=total_days,
            hours_per_day=hours_per_day,
            partial_day_type=payload.partial_day_type.value,
            status=LeaveRequestStatus.PENDING.value if has_manager else LeaveRequestStatus.APPROVED.value,
            reason=payload.reason,
            manager_id=employee.manager_id,
            approved_at=None if has_manager else now,
        )
        session.add(leave_request)
        await session.flush()

        if not has_manager:
            await deduct_hours(session, employee.id, LeaveCategory(leave_type.category), needed)
            leave_request.hours_deducted = needed
            await session.flush()

        await write_audit_log(
            session,
            event_type=AuditEvent.LEAVE_REQUESTED,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=leave_request.id,
            actor_id=auth.user_id,
            related_employee_id=employee.id,
            description=(
                f"{employee.full_name} requested {leave_type.name} from "
                f"{payload.start_date.isoformat()} to {payload.end_date.isoformat()}"
            ),
            after_json=model_to_audit_dict(leave_request),
        )

        await session.commit()
        await session.refresh(leave_request)
    except SQLAlchemyError:
        return await _storage_failure(session, "create", employee.id)

    if has_manager:
        await _notify_manager_of_request(employee, leave_request, leave_type, cache)
    else:
        await send_notification(
            employee.user_id,
            NotificationType.LEAVE_AUTO_APPROVED,
            f"Your leave from {payload.start_date.isoformat()} to {payload.end_date.isoformat()} "
            "has been auto-approved.",
            f"/leave-requests/{leave_request.id}",
        )

    if cache is not None:
        cache.invalidate(employee.id)
    return LeaveActionResult(
        success=True,
        request=_build_request_response(leave_request),
        hours_deducted=0.0 if has_manager else needed,
        auto_approved=not has_manager,
    )


async def create_leave_as_manager(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateLeaveRequestPayload,
    cache: LeaveCache | None = None,
    today: date | None = None,
) -> LeaveActionResult:
    """Create already-approved leave on behalf of an employee.

    The actor must be an admin, or a manager creating leave for one of their
    direct reports. The same half-day, casual, overlap and balance checks
    apply, and the balance is charged immediately.
    """
    today = today or date.today()
    actor = await load_employee(auth.employee_id, cache) if auth.employee_id is not None else None
    is_manager = actor is not None and actor.is_manager
    if not (auth.is_admin or is_manager):
        return _failure(
            LeaveErrorCode.NOT_AUTHORIZED,
            "You must be an admin or manager to create leave on behalf of employees.",
        )

    employee = await load_employee(payload.employee_id, cache)
    if employee is None:
        return _failure(LeaveErrorCode.EMPLOYEE_NOT_FOUND, "Target employee not found.")
    if not auth.is_admin and employee.manager_id != auth.employee_id:
        return _failure(LeaveErrorCode.NOT_AUTHORIZED, "You can only create leave for employees who report to you.")

    leave_type = await get_leave_type_or_404(session, payload.leave_type_id)

    try:
        try:
            total_days, hours_per_day, needed = await _validate_new_leave(
                session, employee, leave_type, payload, today, cache
            )
        except _Rejection as rejection:
            await session.rollback()
            return rejection.result

        leave_request = LeaveRequest(
            employee_id=employee.id,
            leave_type_id=leave_type.id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            total_days=total_days,
            hours_per_day=hours_per_day,
            hours_deducted=needed,
            partial_day_type=payload.partial_day_type.value,
            status=LeaveRequestStatus.APPROVED.value,
            reason=payload.reason,
            manager_id=employee.manager_id,
            approved_at=datetime.now(UTC),
            approved_by=auth.user_id,
        )
        session.add(leave_request)
        await session.flush()

        await deduct_hours(session, employee.id, LeaveCategory(leave_type.category), needed)

        await write_audit_log(
            session,
            event_type=AuditEvent.LEAVE_CREATED_BY_MANAGER,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=leave_request.id,
            actor_id=auth.user_id,
            related_employee_id=employee.id,
            description=(
                f"Created and approved {leave_type.name} for {employee.full_name} from "
                f"{payload.start_date.isoformat()} to {payload.end_date.isoformat()}"
            ),
            after_json=model_to_audit_dict(leave_request),
        )

        await session.commit()
        await session.refresh(leave_request)
    except SQLAlchemyError:
        return await _storage_failure(session, "create", employee.id)

    await send_notification(
        employee.user_id,
        NotificationType.LEAVE_APPROVED,
        f"Your leave request ({leave_type.name}) has been approved.",
        f"/leave-requests/{leave_request.id}",
    )
    if cache is not None:
        cache.invalidate(employee.id)
    return LeaveActionResult(
        success=True,
        request=_build_request_response(leave_request),
        hours_deducted=needed,
        auto_approved=True,
    )


async def approve_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    comment: str | None = None,
    cache: LeaveCache | None = None,
) -> LeaveActionResult:
    """Approve a pending request and charge its frozen hours to the balance."""
    leave_request = await _get_request_or_404(session, request_id)

    if leave_request.status in _FINALISED_STATUSES:
        return _failure(LeaveErrorCode.LEAVE_ALREADY_FINALISED, "This leave request has already been processed.")
    if not _can_decide(auth, leave_request):
        return _failure(LeaveErrorCode.NOT_AUTHORIZED, "Only the employee's manager or an admin can approve this request.")

    employee = await load_employee(leave_request.employee_id, cache)
    if employee is None:
        return _failure(LeaveErrorCode.EMPLOYEE_NOT_FOUND, "Employee not found.")
    leave_type = await get_leave_type_or_404(session, leave_request.leave_type_id)
    category = LeaveCategory(leave_type.category)
    hours = round(leave_request.total_days * leave_request.hours_per_day, 2)

    try:
        before = model_to_audit_dict(leave_request)
        await get_or_create_balance(session, employee, category)
        await deduct_hours(session, employee.id, category, hours)

        leave_request.status = LeaveRequestStatus.APPROVED.value
        leave_request.hours_deducted = hours
        leave_request.manager_comment = comment or None
        leave_request.approved_at = datetime.now(UTC)
        leave_request.approved_by = auth.user_id
        leave_request.rejected_at = None
        leave_request.rejection_reason = None
        await session.flush()

        await write_audit_log(
            session,
            event_type=AuditEvent.LEAVE_APPROVED,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=leave_request.id,
            actor_id=auth.user_id,
            related_employee_id=employee.id,
            description=(
                f"Approved {employee.full_name}'s {leave_type.name} from "
                f"{leave_request.start_date.isoformat()} to {leave_request.end_date.isoformat()}"
            ),
            before_json=before,
            after_json=model_to_audit_dict(leave_request),
        )

        await session.commit()
        await session.refresh(leave_request)
    except SQLAlchemyError:
        return await _storage_failure(session, "approve", request_id)

    await send_notification(
        employee.user_id,
        NotificationType.LEAVE_APPROVED,
        f"Your leave request ({leave_type.name}) has been approved.",
        f"/leave-requests/{leave_request.id}",
    )
    if cache is not None:
        cache.invalidate(employee.id)
    return LeaveActionResult(success=True, request=_build_request_response(leave_request), hours_deducted=hours)


async def decline_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    reason: str,
    cache: LeaveCache | None = None,
) -> LeaveActionResult:
    """Decline a pending request. The balance is untouched."""
    leave_request = await _get_request_or_404(session, request_id)

    if leave_request.status in _FINALISED_STATUSES:
        return _failure(LeaveErrorCode.LEAVE_ALREADY_FINALISED, "This leave request has already been processed.")
    if not _can_decide(auth, leave_request):
        return _failure(LeaveErrorCode.NOT_AUTHORIZED, "Only the employee's manager or an admin can decline this request.")
    if not reason or not reason.strip():
        return _failure(LeaveErrorCode.DECLINE_REASON_REQUIRED, "A decline reason is required.")

    reason = reason.strip()
    try:
        before = model_to_audit_dict(leave_request)
        leave_request.status = LeaveRequestStatus.DECLINED.value
        leave_request.manager_comment = reason
        leave_request.rejection_reason = reason
        leave_request.rejected_at = datetime.now(UTC)
        leave_request.approved_at = None
        await session.flush()

        await write_audit_log(
            session,
            event_type=AuditEvent.LEAVE_DECLINED,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=leave_request.id,
            actor_id=auth.user_id,
            related_employee_id=leave_request.employee_id,
            description=f"Declined leave request from {leave_request.start_date.isoformat()}: {reason}",
            before_json=before,
            after_json=model_to_audit_dict(leave_request),
        )

        await session.commit()
        await session.refresh(leave_request)
    except SQLAlchemyError:
        return await _storage_failure(session, "decline", request_id)

    employee = await load_employee(leave_request.employee_id, cache)
    if employee is not None:
        await send_notification(
            employee.user_id,
            NotificationType.LEAVE_DECLINED,
            f"Your leave request has been declined: {reason}",
            f"/leave-requests/{leave_request.id}",
        )
    if cache is not None:
        cache.invalidate(leave_request.employee_id)
    return LeaveActionResult(success=True, request=_build_request_response(leave_request))


async def cancel_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    cache: LeaveCache | None = None,
    today: date | None = None,
) -> LeaveActionResult:
    """Cancel a pending request, or recall an approved one that has not started.

    Recalling an approved request gives its deducted hours back.
    """
    today = today or date.today()
    leave_request = await _get_request_or_404(session, request_id)

    if leave_request.status in _TERMINAL_STATUSES:
        return _failure(LeaveErrorCode.LEAVE_ALREADY_FINALISED, "This leave request has already been processed.")
    if not (_is_self(auth, leave_request.employee_id) or _can_decide(auth, leave_request)):
        return _failure(LeaveErrorCode.NOT_AUTHORIZED, "Not authorized to cancel this leave request.")

    was_approved = leave_request.status == LeaveRequestStatus.APPROVED.value
    if was_approved and leave_request.start_date < today:
        return _failure(
            LeaveErrorCode.LEAVE_ALREADY_STARTED,
            "Approved leave that has already started cannot be cancelled.",
        )

    restored = 0.0
    try:
        before = model_to_audit_dict(leave_request)
        if was_approved and leave_request.hours_deducted:
            leave_type = await get_leave_type_or_404(session, leave_request.leave_type_id)
            await restore_hours(
                session, leave_request.employee_id, LeaveCategory(leave_type.category), leave_request.hours_deducted
            )
            restored = leave_request.hours_deducted

        leave_request.status = LeaveRequestStatus.CANCELLED.value
        leave_request.cancelled_at = datetime.now(UTC)
        await session.flush()

        await write_audit_log(
            session,
            event_type=AuditEvent.LEAVE_CANCELLED,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=leave_request.id,
            actor_id=auth.user_id,
            related_employee_id=leave_request.employee_id,
            description=(
                f"Cancelled leave request from {leave_request.start_date.isoformat()} "
                f"to {leave_request.end_date.isoformat()}"
                + (f", restoring {restored:.2f}h" if restored else "")
            ),
            before_json=before,
            after_json=model_to_audit_dict(leave_request),
        )

        await session.commit()
        await session.refresh(leave_request)
    except SQLAlchemyError:
        return await _storage_failure(session, "cancel", request_id)

    if leave_request.manager_id is not None and auth.employee_id != leave_request.manager_id:
        manager = await load_employee(leave_request.manager_id, cache)
        if manager is not None:
            await send_notification(
                manager.user_id,
                NotificationType.LEAVE_CANCELLED,
                f"A leave request from {leave_request.start_date.isoformat()} has been cancelled.",
                f"/leave-requests/{leave_request.id}",
            )
    if cache is not None:
        cache.invalidate(leave_request.employee_id)
    return LeaveActionResult(success=True, request=_build_request_response(leave_request), hours_deducted=-restored)


async def get_leave_request(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequestResponse:
    """Get a single request by ID."""
    return _build_request_response(await _get_request_or_404(session, request_id))


async def list_leave_requests(
    session: AsyncSession,
    employee_id: uuid.UUID | None = None,
    status_filter: str | None = None,
    manager_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """List requests with optional filters, newest start date first."""
    base_filters = []
    if employee_id is not None:
        base_filters.append(col(LeaveRequest.employee_id) == employee_id)
    if status_filter is not None:
        base_filters.append(col(LeaveRequest.status) == status_filter)
    if manager_id is not None:
        base_filters.append(col(LeaveRequest.manager_id) == manager_id)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*base_filters)
        .order_by(col(LeaveRequest.start_date).desc(), col(LeaveRequest.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    return LeaveRequestListResponse(
        items=[_build_request_response(r) for r in result.scalars().all()],
        total=total,
    )
