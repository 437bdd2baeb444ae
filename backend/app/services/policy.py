# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from app.exceptions import AppError
from app.models.balance import LeaveBalance
from app.models.enums import (
    AccrualUnit,
    AuditEntityType,
    AuditEvent,
    EmploymentType,
    EmploymentTypeScope,
    LeaveCategory,
)
from app.models.policy import EmploymentAgreement, LeavePolicy
from app.schemas.policy import (
    AgreementListResponse,
    AgreementResponse,
    PolicyListResponse,
    PolicyResponse,
    ResolvedPolicyResponse,
)
from app.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.schemas.auth import AuthContext
    from app.schemas.employee import EmployeeInfo
    from app.schemas.policy import CreateAgreementRequest, CreatePolicyRequest, UpdatePolicyRequest
    from app.services.cache import LeaveCache

logger = logging.getLogger(__name__)

_EMPLOYEE_OVERRIDE_FIELDS: dict[LeaveCategory, str] = {
    LeaveCategory.ANNUAL: "annual_leave_policy_id",
    LeaveCategory.PERSONAL: "personal_leave_policy_id",
    LeaveCategory.LONG_SERVICE: "long_service_leave_policy_id",
}

_AGREEMENT_DEFAULT_FIELDS: dict[LeaveCategory, str] = {
    LeaveCategory.ANNUAL: "default_annual_leave_policy_id",
    LeaveCategory.PERSONAL: "default_personal_leave_policy_id",
    LeaveCategory.LONG_SERVICE: "default_long_service_leave_policy_id",
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_policy_response(policy: LeavePolicy) -> PolicyResponse:
    """Build a PolicyResponse from a DB model."""
    return PolicyResponse(
        id=policy.id,
        name=policy.name,
        code=policy.code,
        country=policy.country,
        leave_type=LeaveCategory(policy.leave_type),
        employment_type_scope=EmploymentTypeScope(policy.employment_type_scope),
        accrual_unit=AccrualUnit(policy.accrual_unit) if policy.accrual_unit else None,
        accrual_rate=policy.accrual_rate,
        standard_hours_per_day=policy.standard_hours_per_day,
        hours_per_week_reference=policy.hours_per_week_reference,
        is_default=policy.is_default,
        is_active=policy.is_active,
        is_system=policy.is_system,
        min_service_years_before_accrual=policy.min_service_years_before_accrual,
        accrual_rate_after_threshold=policy.accrual_rate_after_threshold,
        allow_negative_balance=policy.allow_negative_balance,
        notes=policy.notes,
        created_at=policy.created_at,
    )


def _build_agreement_response(agreement: EmploymentAgreement) -> AgreementResponse:
    return AgreementResponse(
        id=agreement.id,
        name=agreement.name,
        is_active=agreement.is_active,
        default_annual_leave_policy_id=agreement.default_annual_leave_policy_id,
        default_personal_leave_policy_id=agreement.default_personal_leave_policy_id,
        default_long_service_leave_policy_id=agreement.default_long_service_leave_policy_id,
        created_at=agreement.created_at,
    )


async def _get_active_policy(session: AsyncSession, policy_id: uuid.UUID | None) -> LeavePolicy | None:
    if policy_id is None:
        return None
    policy = await session.get(LeavePolicy, policy_id)
    if policy is None or not policy.is_active:
        return None
    return policy


async def _first_default_policy(
    session: AsyncSession,
    category: LeaveCategory,
    scope: str | None = None,
) -> LeavePolicy | None:
    query = select(LeavePolicy).where(
        col(LeavePolicy.leave_type) == category.value,
        col(LeavePolicy.is_default).is_(True),
        col(LeavePolicy.is_active).is_(True),
    )
    if scope is not None:
        query = query.where(col(LeavePolicy.employment_type_scope) == scope)
    result = await session.execute(query.order_by(col(LeavePolicy.created_at), col(LeavePolicy.name)).limit(1))
    return result.scalar_one_or_none()


async def _get_policy_or_404(session: AsyncSession, policy_id: uuid.UUID) -> LeavePolicy:
    policy = await session.get(LeavePolicy, policy_id)
    if policy is None:
        raise AppError("Policy not found", status_code=404)
    return policy


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


async def resolve_policy_with_source(
    session: AsyncSession,
    employee: EmployeeInfo,
    category: LeaveCategory,
) -> tuple[LeavePolicy | None, str | None]:
    """Find the policy governing an employee's leave in a category.

    Priority, first match wins:
    1. employee override for the category
    2. active employment agreement default
    3. legacy policy link on the balance row
    4. default policy scoped to the employee's employment type
    5. default policy scoped to ``any``
    6. any default policy for the category

    Only active policies are considered. Returns the policy and the name of
    the step that produced it, or ``(None, None)``.
    """
    override_id = getattr(employee, _EMPLOYEE_OVERRIDE_FIELDS[category])
    policy = await _get_active_policy(session, override_id)
    if policy is not None:
        return policy, "employee_override"

    if employee.employment_agreement_id is not None:
        agreement = await session.get(EmploymentAgreement, employee.employment_agreement_id)
        if agreement is not None and agreement.is_active:
            policy = await _get_active_policy(session, getattr(agreement, _AGREEMENT_DEFAULT_FIELDS[category]))
            if policy is not None:
                return policy, "agreement"

    balance_result = await session.execute(
        select(col(LeaveBalance.policy_id)).where(
            col(LeaveBalance.employee_id) == employee.id,
            col(LeaveBalance.leave_type) == category.value,
        )
    )
    policy = await _get_active_policy(session, balance_result.scalar_one_or_none())
    if policy is not None:
        return policy, "balance"

    employment_type = employee.employment_type or EmploymentType.FULL_TIME
    policy = await _first_default_policy(session, category, employment_type.value)
    if policy is not None:
        return policy, "employment_type_default"

    policy = await _first_default_policy(session, category, EmploymentTypeScope.ANY.value)
    if policy is not None:
        return policy, "any_scope_default"

    policy = await _first_default_policy(session, category)
    if policy is not None:
        return policy, "category_default"

    return None, None


async def resolve_policy(
    session: AsyncSession,
    employee: EmployeeInfo,
    category: LeaveCategory,
) -> LeavePolicy | None:
    """Applicable policy, or None meaning no entitlement in the category."""
    policy, _ = await resolve_policy_with_source(session, employee, category)
    return policy


async def get_resolved_policy(
    session: AsyncSession,
    employee: EmployeeInfo,
    category: LeaveCategory,
) -> ResolvedPolicyResponse:
    """Resolve and map to a response."""
    policy, source = await resolve_policy_with_source(session, employee, category)
    return ResolvedPolicyResponse(
        employee_id=employee.id,
        category=category,
        source=source,
        policy=_build_policy_response(policy) if policy is not None else None,
    )


# ---------------------------------------------------------------------------
# Policy administration
# ---------------------------------------------------------------------------


async def create_policy(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreatePolicyRequest,
    cache: LeaveCache | None = None,
) -> PolicyResponse:
    """Create a leave policy."""
    if payload.code is not None:
        existing = await session.execute(select(LeavePolicy).where(col(LeavePolicy.code) == payload.code))
        if existing.scalar_one_or_none() is not None:
            raise AppError("Policy with this code already exists", status_code=409)

    policy = LeavePolicy(
        name=payload.name,
        code=payload.code,
        country=payload.country,
        leave_type=payload.leave_type.value,
        employment_type_scope=payload.employment_type_scope.value,
        accrual_unit=payload.accrual_unit.value,
        accrual_rate=payload.accrual_rate,
        standard_hours_per_day=payload.standard_hours_per_day,
        hours_per_week_reference=payload.hours_per_week_reference,
        is_default=payload.is_default,
        min_service_years_before_accrual=payload.min_service_years_before_accrual,
        accrual_rate_after_threshold=payload.accrual_rate_after_threshold,
        allow_negative_balance=payload.allow_negative_balance,
        notes=payload.notes,
    )
    session.add(policy)
    await session.flush()

    await write_audit_log(
        session,
        event_type=AuditEvent.POLICY_CREATED,
        entity_type=AuditEntityType.LEAVE_POLICY,
        entity_id=policy.id,
        actor_id=auth.user_id,
        description=f"Created leave policy {policy.name}",
        after_json=model_to_audit_dict(policy),
    )

    await session.commit()
    await session.refresh(policy)
    if cache is not None:
        cache.invalidate()
    return _build_policy_response(policy)


async def get_policy(session: AsyncSession, policy_id: uuid.UUID) -> PolicyResponse:
    """Get a single policy."""
    return _build_policy_response(await _get_policy_or_404(session, policy_id))


async def list_policies(
    session: AsyncSession,
    leave_type: LeaveCategory | None = None,
    include_inactive: bool = False,
    offset: int = 0,
    limit: int = 50,
) -> PolicyListResponse:
    """List policies with optional category filter."""
    base_filter = []
    if leave_type is not None:
        base_filter.append(col(LeavePolicy.leave_type) == leave_type.value)
    if not include_inactive:
        base_filter.append(col(LeavePolicy.is_active).is_(True))

    count_result = await session.execute(select(func.count()).select_from(LeavePolicy).where(*base_filter))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeavePolicy)
        .where(*base_filter)
        .order_by(col(LeavePolicy.leave_type), col(LeavePolicy.name))
        .offset(offset)
        .limit(limit)
    )
    return PolicyListResponse(
        items=[_build_policy_response(p) for p in result.scalars().all()],
        total=total,
    )


async def load_policies(session: AsyncSession) -> list[LeavePolicy]:
    """Every stored policy, active or not."""
    result = await session.execute(select(LeavePolicy).order_by(col(LeavePolicy.name)))
    return list(result.scalars().all())


async def update_policy(
    session: AsyncSession,
    auth: AuthContext,
    policy_id: uuid.UUID,
    payload: UpdatePolicyRequest,
    cache: LeaveCache | None = None,
) -> PolicyResponse:
    """Apply a partial update to a policy.

    Existing balances keep their accrued hours; use a recalculation to
    re-derive them under the new rates.
    """
    policy = await _get_policy_or_404(session, policy_id)
    before = model_to_audit_dict(policy)

    changes = payload.model_dump(exclude_unset=True)
    for field_name, value in changes.items():
        if hasattr(value, "value"):
            value = value.value
        setattr(policy, field_name, value)

    if policy.accrual_rate_after_threshold is not None and policy.min_service_years_before_accrual is None:
        raise AppError("accrual_rate_after_threshold requires min_service_years_before_accrual", status_code=400)

    await session.flush()

    await write_audit_log(
        session,
        event_type=AuditEvent.POLICY_UPDATED,
        entity_type=AuditEntityType.LEAVE_POLICY,
        entity_id=policy.id,
        actor_id=auth.user_id,
        description=f"Updated leave policy {policy.name}: {', '.join(sorted(changes)) or 'no changes'}",
        before_json=before,
        after_json=model_to_audit_dict(policy),
    )

    await session.commit()
    await session.refresh(policy)
    if cache is not None:
        cache.invalidate()
    return _build_policy_response(policy)


# ---------------------------------------------------------------------------
# Employment agreements
# ---------------------------------------------------------------------------


async def create_agreement(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateAgreementRequest,
    cache: LeaveCache | None = None,
) -> AgreementResponse:
    """Create an employment agreement. Referenced policies must exist."""
    for category, field_name in _AGREEMENT_DEFAULT_FIELDS.items():
        policy_id = getattr(payload, field_name)
        if policy_id is None:
            continue
        policy = await _get_policy_or_404(session, policy_id)
        if policy.leave_type != category.value:
            raise AppError(
                f"Policy {policy.name} is a {policy.leave_type} policy and cannot be the {category.value} default",
                status_code=400,
            )

    agreement = EmploymentAgreement(
        name=payload.name,
        default_annual_leave_policy_id=payload.default_annual_leave_policy_id,
        default_personal_leave_policy_id=payload.default_personal_leave_policy_id,
        default_long_service_leave_policy_id=payload.default_long_service_leave_policy_id,
    )
    session.add(agreement)
    await session.flush()

    await write_audit_log(
        session,
        event_type=AuditEvent.AGREEMENT_CREATED,
        entity_type=AuditEntityType.EMPLOYMENT_AGREEMENT,
        entity_id=agreement.id,
        actor_id=auth.user_id,
        description=f"Created employment agreement {agreement.name}",
        after_json=model_to_audit_dict(agreement),
    )

    await session.commit()
    await session.refresh(agreement)
    if cache is not None:
        cache.invalidate()
    return _build_agreement_response(agreement)


async def list_agreements(session: AsyncSession) -> AgreementListResponse:
    """List employment agreements ordered by name."""
    result = await session.execute(select(EmploymentAgreement).order_by(col(EmploymentAgreement.name)))
    agreements = list(result.scalars().all())
    return AgreementListResponse(
        items=[_build_agreement_response(a) for a in agreements],
        total=len(agreements),
    )


async def get_agreement(session: AsyncSession, agreement_id: uuid.UUID) -> AgreementResponse:
    """Get a single agreement or raise 404."""
    agreement = await session.get(EmploymentAgreement, agreement_id)
    if agreement is None:
        raise AppError("Employment agreement not found", status_code=404)
    return _build_agreement_response(agreement)
