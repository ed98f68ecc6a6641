from sqlmodel import SQLModel

from hr_leave.models.audit import AuditLog
from hr_leave.models.base import CompanyScoped, TimestampMixin, UUIDBase
from hr_leave.models.entitlement import LeaveEntitlement
from hr_leave.models.enums import (
    AccrualType,
    ApprovalStepStatus,
    ApproverRole,
    AuditAction,
    AuditEntityType,
    HalfDayPeriod,
    LeaveRequestStatus,
    ValidationRule,
)
from hr_leave.models.holiday import PublicHoliday
from hr_leave.models.request import LeaveRequest

__all__ = [
    "AccrualType",
    "ApprovalStepStatus",
    "ApproverRole",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "CompanyScoped",
    "HalfDayPeriod",
    "LeaveEntitlement",
    "LeaveRequest",
    "LeaveRequestStatus",
    "PublicHoliday",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "ValidationRule",
]
