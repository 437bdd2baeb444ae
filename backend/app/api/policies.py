# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from app.api.deps import AdminDep, AuthDep, CacheDep
from app.config import get_settings
from app.db import SessionDep
from app.models.enums import LeaveCategory
from app.schemas.compliance import ComplianceReportResponse, NesInstallResponse
from app.schemas.policy import (
    AgreementListResponse,
    AgreementResponse,
    CreateAgreementRequest,
    CreatePolicyRequest,
    PolicyListResponse,
    PolicyResponse,
    UpdatePolicyRequest,
)
from app.services import compliance as compliance_service
from app.services import policy as policy_service

router = APIRouter(
    prefix="/policies",
    tags=["policies"],
)

agreements_router = APIRouter(
    prefix="/agreements",
    tags=["policies"],
)


@router.post("", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(
    payload: CreatePolicyRequest,
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
) -> PolicyResponse:
    """Create a leave policy (admin only)."""
    return await policy_service.create_policy(session, auth, payload, cache)


@router.get("", response_model=PolicyListResponse)
async def list_policies(
    session: SessionDep,
    auth: AuthDep,
    leave_type: LeaveCategory | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> PolicyListResponse:
    """List leave policies."""
    return await policy_service.list_policies(session, leave_type, include_inactive, offset, limit)


@router.get("/compliance", response_model=ComplianceReportResponse)
async def get_compliance_report(
    session: SessionDep,
    auth: AuthDep,
    country: str | None = Query(default=None, max_length=10),
) -> ComplianceReportResponse:
    """Check every policy against statutory minimums."""
    return await compliance_service.get_compliance_report(session, country or get_settings().compliance_country)


@router.post("/nes-defaults", response_model=NesInstallResponse)
async def install_nes_defaults(
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
) -> NesInstallResponse:
    """Install the AU NES default policies if missing (admin only)."""
    result = await compliance_service.ensure_default_nes_policies(session, cache)
    return NesInstallResponse(created=result.created, existing=result.existing)


@router.get("/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> PolicyResponse:
    """Get a single policy."""
    return await policy_service.get_policy(session, policy_id)


@router.put("/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: uuid.UUID,
    payload: UpdatePolicyRequest,
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
) -> PolicyResponse:
    """Update a policy in place (admin only)."""
    return await policy_service.update_policy(session, auth, policy_id, payload, cache)


@agreements_router.post("", response_model=AgreementResponse, status_code=status.HTTP_201_CREATED)
async def create_agreement(
    payload: CreateAgreementRequest,
    session: SessionDep,
    auth: AdminDep,
    cache: CacheDep,
) -> AgreementResponse:
    """Create an employment agreement with default policies (admin only)."""
    return await policy_service.create_agreement(session, auth, payload, cache)


@agreements_router.get("", response_model=AgreementListResponse)
async def list_agreements(
    session: SessionDep,
    auth: AuthDep,
) -> AgreementListResponse:
    """List employment agreements."""
    return await policy_service.list_agreements(session)


@agreements_router.get("/{agreement_id}", response_model=AgreementResponse)
async def get_agreement(
    agreement_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> AgreementResponse:
    """Get a single employment agreement."""
    return await policy_service.get_agreement(session, agreement_id)
