# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from app.models.enums import ComplianceSeverity


class ComplianceIssue(BaseModel):
    """A single statutory-minimum finding against a policy."""

    policy_id: uuid.UUID | None
    policy_name: str
    severity: ComplianceSeverity
    rule: str
    message: str


class ComplianceSummary(BaseModel):
    """Counts of compliance issues by severity."""

    total: int
    errors: int
    warnings: int
    info: int
    is_compliant: bool
    has_warnings: bool


class ComplianceReportResponse(BaseModel):
    """Full compliance check result."""

    country: str
    issues: list[ComplianceIssue]
    summary: ComplianceSummary


class NesInstallResponse(BaseModel):
    """Result of installing the NES default policies."""

    created: int
    existing: int
