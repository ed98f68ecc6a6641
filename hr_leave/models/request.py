# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from hr_leave.models.base import CompanyScoped, TimestampMixin, UUIDBase
from hr_leave.models.enums import LeaveRequestStatus


class LeaveRequest(UUIDBase, CompanyScoped, TimestampMixin, table=True):
    """An employee's leave request with its approval workflow state.

    Employee and leave-type display fields are point-in-time copies taken when
    the request is submitted; they are never re-derived by join.
    """

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.Index("ix_leave_request_company_status", "company_id", "status"),
        sa.Index("ix_leave_request_employee_dates", "employee_id", "start_date", "end_date"),
        sa.UniqueConstraint("company_id", "request_number", name="uq_leave_request_number"),
    )

    request_number: str = Field(max_length=50)

    # Employee snapshot
    employee_id: uuid.UUID = Field(index=True)
    employee_name: str = Field(default="", max_length=255)
    employee_code: str = Field(default="", max_length=50)
    department_id: uuid.UUID | None = None
    department_name: str | None = Field(default=None, max_length=255)
    position_id: uuid.UUID | None = None
    position_name: str | None = Field(default=None, max_length=255)

    # Leave type snapshot
    leave_type_id: uuid.UUID = Field(index=True)
    leave_type_code: str = Field(default="", max_length=50)
    leave_type_name: str = Field(default="", max_length=255)

    # Period
    start_date: date
    end_date: date
    is_half_day: bool = False
    half_day_period: str | None = Field(default=None, max_length=20)
    total_days: float = 0

    # Details
    reason: str = Field(max_length=500)
    contact_during_leave: str | None = Field(default=None, max_length=100)
    work_handover_to: uuid.UUID | None = None
    work_handover_notes: str | None = Field(default=None, max_length=500)

    # Certificate
    has_certificate: bool = False
    certificate_url: str | None = Field(default=None, max_length=2048)
    certificate_file_name: str | None = Field(default=None, max_length=255)

    # Workflow
    status: str = Field(
        default=LeaveRequestStatus.DRAFT, max_length=20, index=True, sa_column_kwargs={"server_default": "draft"}
    )
    submitted_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    approval_chain: list[dict[str, Any]] = Field(default_factory=list, sa_type=sa.JSON)
    current_approval_level: int = 0

    # Ledger bookkeeping, fixed at submission
    leave_year: int | None = None
    deducts_balance: bool = False

    # Terminal outcomes
    rejected_by: uuid.UUID | None = None
    rejected_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    rejection_reason: str | None = Field(default=None, max_length=500)
    cancelled_by: uuid.UUID | None = None
    cancelled_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    cancellation_reason: str | None = Field(default=None, max_length=500)

    created_by: uuid.UUID | None = None
