from __future__ import annotations

import enum


class LeaveRequestStatus(enum.StrEnum):
    """State machine for leave requests."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ApprovalStepStatus(enum.StrEnum):
    """Status of a single link in the approval chain."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class HalfDayPeriod(enum.StrEnum):
    """Which half of the day a half-day request covers."""

    MORNING = "morning"
    AFTERNOON = "afternoon"


class AccrualType(enum.StrEnum):
    """How a leave type's entitlement is granted."""

    YEARLY = "yearly"
    MONTHLY = "monthly"
    NONE = "none"


class ApproverRole(enum.StrEnum):
    """Roles that may appear as approval chain levels."""

    MANAGER = "MANAGER"
    HR = "HR"


class ValidationRule(enum.StrEnum):
    """Leave request validation rules, in evaluation order."""

    LEAVE_TYPE = "leave_type"
    DATE_RANGE = "date_range"
    MAX_CONSECUTIVE_DAYS = "max_consecutive_days"
    CERTIFICATE = "certificate"
    BALANCE = "balance"
    OVERLAP = "overlap"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEAVE_REQUEST = "LEAVE_REQUEST"
    LEAVE_ENTITLEMENT = "LEAVE_ENTITLEMENT"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"
    CARRYOVER = "CARRYOVER"
