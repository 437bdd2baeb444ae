from __future__ import annotations

import enum


class LeaveCategory(enum.StrEnum):
    """Balance category a leave type draws from."""

    ANNUAL = "annual"
    PERSONAL = "personal"
    LONG_SERVICE = "long_service"


class EmploymentType(enum.StrEnum):
    """Employment basis of an employee."""

    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    CASUAL = "casual"
    CONTRACTOR = "contractor"


class EmploymentTypeScope(enum.StrEnum):
    """Which employment types a leave policy applies to."""

    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    CASUAL = "casual"
    CONTRACTOR = "contractor"
    ANY = "any"


class EmployeeStatus(enum.StrEnum):
    """Lifecycle status of an employee record."""

    ACTIVE = "active"
    ONBOARDING = "onboarding"
    OFFBOARDING = "offboarding"
    TERMINATED = "terminated"


class AccrualUnit(enum.StrEnum):
    """Unit in which a policy's accrual rate is expressed."""

    HOURS_PER_YEAR = "hours_per_year"
    DAYS_PER_YEAR = "days_per_year"
    WEEKS_PER_YEAR = "weeks_per_year"


class PartialDayType(enum.StrEnum):
    """Full or half-day leave."""

    FULL = "full"
    HALF_AM = "half_am"
    HALF_PM = "half_pm"


class LeaveRequestStatus(enum.StrEnum):
    """State machine for leave requests."""

    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class LeaveErrorCode(enum.StrEnum):
    """Machine-readable failure codes returned by leave operations."""

    HALF_DAY_MUST_BE_SINGLE_DAY = "HALF_DAY_MUST_BE_SINGLE_DAY"
    PAID_LEAVE_NOT_ALLOWED_FOR_CASUAL = "PAID_LEAVE_NOT_ALLOWED_FOR_CASUAL"
    OVERLAPPING_LEAVE = "OVERLAPPING_LEAVE"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    NO_WORKING_DAYS = "NO_WORKING_DAYS"
    DECLINE_REASON_REQUIRED = "DECLINE_REASON_REQUIRED"
    LEAVE_ALREADY_FINALISED = "LEAVE_ALREADY_FINALISED"
    LEAVE_ALREADY_STARTED = "LEAVE_ALREADY_STARTED"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    STORAGE_ERROR = "STORAGE_ERROR"


class ComplianceSeverity(enum.StrEnum):
    """Severity of a compliance finding."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEAVE_REQUEST = "LeaveRequest"
    LEAVE_POLICY = "LeavePolicy"
    LEAVE_TYPE = "LeaveType"
    LEAVE_BALANCE = "LeaveBalance"
    EMPLOYMENT_AGREEMENT = "EmploymentAgreement"
    PUBLIC_HOLIDAY = "PublicHoliday"


class AuditEvent(enum.StrEnum):
    """Event recorded in the audit log."""

    LEAVE_REQUESTED = "leave_requested"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_DECLINED = "leave_declined"
    LEAVE_CANCELLED = "leave_cancelled"
    LEAVE_CREATED_BY_MANAGER = "leave_created_by_manager"
    BALANCE_ADJUSTED = "balance_adjusted"
    BALANCE_RECALCULATED = "balance_recalculated"
    POLICY_CREATED = "policy_created"
    POLICY_UPDATED = "policy_updated"
    AGREEMENT_CREATED = "agreement_created"
    LEAVE_TYPE_CREATED = "leave_type_created"
    HOLIDAY_CREATED = "holiday_created"
    HOLIDAY_DELETED = "holiday_deleted"


class NotificationType(enum.StrEnum):
    """Notification kinds sent by the leave workflow."""

    LEAVE_SUBMITTED = "leave_submitted"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_AUTO_APPROVED = "leave_auto_approved"
    LEAVE_DECLINED = "leave_declined"
    LEAVE_CANCELLED = "leave_cancelled"
