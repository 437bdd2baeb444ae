from sqlmodel import SQLModel

from app.models.audit import AuditLog
from app.models.balance import LeaveBalance
from app.models.base import TimestampMixin, UUIDBase
from app.models.enums import (
    AccrualUnit,
    AuditEntityType,
    AuditEvent,
    ComplianceSeverity,
    EmployeeStatus,
    EmploymentType,
    EmploymentTypeScope,
    LeaveCategory,
    LeaveErrorCode,
    LeaveRequestStatus,
    NotificationType,
    PartialDayType,
)
from app.models.holiday import PublicHoliday
from app.models.leave_type import LeaveType
from app.models.policy import EmploymentAgreement, LeavePolicy
from app.models.request import LeaveRequest

__all__ = [
    "AccrualUnit",
    "AuditEntityType",
    "AuditEvent",
    "AuditLog",
    "ComplianceSeverity",
    "EmployeeStatus",
    "EmploymentAgreement",
    "EmploymentType",
    "EmploymentTypeScope",
    "LeaveBalance",
    "LeaveCategory",
    "LeaveErrorCode",
    "LeavePolicy",
    "LeaveRequest",
    "LeaveRequestStatus",
    "LeaveType",
    "NotificationType",
    "PartialDayType",
    "PublicHoliday",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
]
