"""Statutory-minimum sanity checks for leave policies and the AU NES defaults.

These checks catch common configuration mistakes. They are not legal advice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from app.models.enums import AccrualUnit, ComplianceSeverity, EmploymentTypeScope, LeaveCategory
from app.models.policy import LeavePolicy
from app.schemas.compliance import ComplianceIssue, ComplianceReportResponse, ComplianceSummary
from app.services.accrual import DEFAULT_HOURS_PER_DAY, DEFAULT_HOURS_PER_WEEK
from app.services.policy import load_policies

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from app.services.cache import LeaveCache

logger = logging.getLogger(__name__)

ANNUAL_MIN_WEEKS = 4.0
PERSONAL_MIN_DAYS = 10.0
SHIFTWORKER_WEEKS_RANGE = (4.9, 5.1)

_FULL_TIME_SCOPES = (EmploymentTypeScope.FULL_TIME.value, EmploymentTypeScope.ANY.value)

NES_DEFAULT_POLICIES: tuple[dict[str, Any], ...] = (
    {
        "name": "Annual Leave - Full Time (AU NES)",
        "code": "ANNUAL_FT_AU",
        "leave_type": LeaveCategory.ANNUAL.value,
        "employment_type_scope": EmploymentTypeScope.FULL_TIME.value,
        "accrual_unit": AccrualUnit.WEEKS_PER_YEAR.value,
        "accrual_rate": 4.0,
        "notes": "NES minimum of 4 weeks annual leave per year for full-time employees.",
    },
    {
        "name": "Annual Leave - Part Time (AU NES)",
        "code": "ANNUAL_PT_AU",
        "leave_type": LeaveCategory.ANNUAL.value,
        "employment_type_scope": EmploymentTypeScope.PART_TIME.value,
        "accrual_unit": AccrualUnit.WEEKS_PER_YEAR.value,
        "accrual_rate": 4.0,
        "notes": "NES minimum of 4 weeks annual leave per year, pro-rata by hours worked.",
    },
    {
        "name": "Personal/Carer's Leave - Full Time (AU NES)",
        "code": "PERSONAL_FT_AU",
        "leave_type": LeaveCategory.PERSONAL.value,
        "employment_type_scope": EmploymentTypeScope.FULL_TIME.value,
        "accrual_unit": AccrualUnit.DAYS_PER_YEAR.value,
        "accrual_rate": 10.0,
        "notes": "NES minimum of 10 days personal/carer's leave per year for full-time employees.",
    },
    {
        "name": "Personal/Carer's Leave - Part Time (AU NES)",
        "code": "PERSONAL_PT_AU",
        "leave_type": LeaveCategory.PERSONAL.value,
        "employment_type_scope": EmploymentTypeScope.PART_TIME.value,
        "accrual_unit": AccrualUnit.DAYS_PER_YEAR.value,
        "accrual_rate": 10.0,
        "notes": "NES minimum of 10 days personal/carer's leave per year, pro-rata by hours worked.",
    },
)


@dataclass
class NesInstallResult:
    """Outcome of installing the NES default policies."""

    created: int = 0
    existing: int = 0


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _as_float(value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0


def weeks_per_year(policy: LeavePolicy) -> float:
    """Express a policy's accrual as weeks per year."""
    rate = _as_float(policy.accrual_rate)
    hours_per_day = _as_float(policy.standard_hours_per_day) or DEFAULT_HOURS_PER_DAY
    hours_per_week = _as_float(policy.hours_per_week_reference) or DEFAULT_HOURS_PER_WEEK

    if policy.accrual_unit == AccrualUnit.WEEKS_PER_YEAR:
        return rate
    if policy.accrual_unit == AccrualUnit.DAYS_PER_YEAR:
        return rate * hours_per_day / hours_per_week
    if policy.accrual_unit == AccrualUnit.HOURS_PER_YEAR:
        return rate / hours_per_week
    return 0.0


def days_per_year(policy: LeavePolicy) -> float:
    """Express a policy's accrual as working days per year."""
    rate = _as_float(policy.accrual_rate)
    hours_per_day = _as_float(policy.standard_hours_per_day) or DEFAULT_HOURS_PER_DAY

    if policy.accrual_unit == AccrualUnit.DAYS_PER_YEAR:
        return rate
    if policy.accrual_unit == AccrualUnit.WEEKS_PER_YEAR:
        return rate * 5
    if policy.accrual_unit == AccrualUnit.HOURS_PER_YEAR:
        return rate / hours_per_day
    return 0.0


def _missing_fields(policy: LeavePolicy) -> list[str]:
    missing: list[str] = []
    if not policy.accrual_unit:
        missing.append("accrual_unit")
    if policy.accrual_rate is None:
        missing.append("accrual_rate")
    if not policy.standard_hours_per_day or policy.standard_hours_per_day <= 0:
        missing.append("standard_hours_per_day")
    if policy.accrual_unit == AccrualUnit.WEEKS_PER_YEAR and (
        not policy.hours_per_week_reference or policy.hours_per_week_reference <= 0
    ):
        missing.append("hours_per_week_reference")
    return missing


def _check_policy(policy: LeavePolicy) -> list[ComplianceIssue]:
    issues: list[ComplianceIssue] = []
    name = policy.name or "Unnamed Policy"
    scope = policy.employment_type_scope

    def issue(severity: ComplianceSeverity, rule: str, message: str) -> None:
        issues.append(
            ComplianceIssue(policy_id=policy.id, policy_name=name, severity=severity, rule=rule, message=message)
        )

    if policy.leave_type == LeaveCategory.ANNUAL:
        weeks = weeks_per_year(policy)
        if scope in _FULL_TIME_SCOPES and weeks < ANNUAL_MIN_WEEKS:
            issue(
                ComplianceSeverity.ERROR,
                "ANNUAL_FT_MIN",
                f"Full-time annual leave accrues {weeks:.1f} weeks/year; the NES minimum is 4 weeks.",
            )
        if scope == EmploymentTypeScope.PART_TIME and weeks < ANNUAL_MIN_WEEKS:
            issue(
                ComplianceSeverity.ERROR,
                "ANNUAL_PT_MIN",
                f"Part-time annual leave accrues {weeks:.1f} weeks/year; the NES minimum is 4 weeks "
                "before pro-rata is applied.",
            )

    if policy.leave_type == LeaveCategory.PERSONAL:
        days = days_per_year(policy)
        if scope in _FULL_TIME_SCOPES and days < PERSONAL_MIN_DAYS:
            issue(
                ComplianceSeverity.ERROR,
                "PERSONAL_FT_MIN",
                f"Full-time personal/carer's leave accrues {days:.1f} days/year; the NES minimum is 10 days.",
            )
        if scope == EmploymentTypeScope.PART_TIME and days < PERSONAL_MIN_DAYS:
            issue(
                ComplianceSeverity.ERROR,
                "PERSONAL_PT_MIN",
                f"Part-time personal/carer's leave accrues {days:.1f} days/year; the NES minimum is 10 days "
                "before pro-rata is applied.",
            )

    if (
        scope == EmploymentTypeScope.CASUAL
        and policy.leave_type in (LeaveCategory.ANNUAL, LeaveCategory.PERSONAL)
        and _as_float(policy.accrual_rate) > 0
    ):
        issue(
            ComplianceSeverity.ERROR,
            "CASUAL_NO_PAID_LEAVE",
            f"Casual employees have no NES entitlement to paid {policy.leave_type} leave, "
            f"but this policy accrues at a rate of {_as_float(policy.accrual_rate):g}.",
        )

    missing = _missing_fields(policy)
    if missing:
        issue(ComplianceSeverity.WARNING, "MISSING_FIELDS", f"Missing required fields: {', '.join(missing)}")

    if policy.leave_type == LeaveCategory.ANNUAL:
        low, high = SHIFTWORKER_WEEKS_RANGE
        if low <= weeks_per_year(policy) <= high:
            issue(
                ComplianceSeverity.INFO,
                "SHIFTWORKER_5_WEEKS",
                "Looks like a 5-week shiftworker annual leave policy, which some awards allow.",
            )

    return issues


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def check_compliance(policies: Sequence[LeavePolicy], country: str = "AU") -> list[ComplianceIssue]:
    """Check active policies for the given country (or with no country set)."""
    issues: list[ComplianceIssue] = []
    for policy in policies:
        if not policy.is_active:
            continue
        if policy.country and policy.country != country:
            continue
        issues.extend(_check_policy(policy))
    return issues


def summarize_compliance(issues: Sequence[ComplianceIssue]) -> ComplianceSummary:
    errors = sum(1 for i in issues if i.severity == ComplianceSeverity.ERROR)
    warnings = sum(1 for i in issues if i.severity == ComplianceSeverity.WARNING)
    info = sum(1 for i in issues if i.severity == ComplianceSeverity.INFO)
    return ComplianceSummary(
        total=len(issues),
        errors=errors,
        warnings=warnings,
        info=info,
        is_compliant=errors == 0,
        has_warnings=warnings > 0,
    )


def issues_for_policy(policy_id: uuid.UUID, issues: Sequence[ComplianceIssue]) -> list[ComplianceIssue]:
    return [i for i in issues if i.policy_id == policy_id]


def highest_severity_for_policy(
    policy_id: uuid.UUID,
    issues: Sequence[ComplianceIssue],
) -> ComplianceSeverity | None:
    """Most severe finding for a policy, or None when it is clean."""
    found = {i.severity for i in issues_for_policy(policy_id, issues)}
    for severity in (ComplianceSeverity.ERROR, ComplianceSeverity.WARNING, ComplianceSeverity.INFO):
        if severity in found:
            return severity
    return None


async def get_compliance_report(session: AsyncSession, country: str = "AU") -> ComplianceReportResponse:
    """Run the checker over every stored policy."""
    issues = check_compliance(await load_policies(session), country)
    return ComplianceReportResponse(country=country, issues=issues, summary=summarize_compliance(issues))


async def ensure_default_nes_policies(
    session: AsyncSession,
    cache: LeaveCache | None = None,
) -> NesInstallResult:
    """Install the four AU NES default policies. Safe to call repeatedly.

    Policies are matched by code and country; an existing match is flagged
    as a system policy but otherwise left alone.
    """
    result = NesInstallResult()
    for definition in NES_DEFAULT_POLICIES:
        existing = await session.execute(
            select(LeavePolicy).where(
                col(LeavePolicy.code) == definition["code"],
                col(LeavePolicy.country) == "AU",
            )
        )
        policy = existing.scalars().first()
        if policy is not None:
            result.existing += 1
            if not policy.is_system:
                policy.is_system = True
            continue

        session.add(
            LeavePolicy(
                **definition,
                country="AU",
                standard_hours_per_day=DEFAULT_HOURS_PER_DAY,
                hours_per_week_reference=DEFAULT_HOURS_PER_WEEK,
                is_default=True,
                is_active=True,
                is_system=True,
            )
        )
        result.created += 1

    await session.commit()
    if result.created and cache is not None:
        cache.invalidate()
    logger.info("NES default policies: %d created, %d already present", result.created, result.existing)
    return result
