# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from hr_leave.models.base import CompanyScoped, TimestampMixin, UUIDBase, utcnow


class LeaveEntitlement(UUIDBase, CompanyScoped, TimestampMixin, table=True):
    """Ledger row holding one employee's balance for one leave type and leave year.

    ``remaining`` is kept equal to ``total_entitlement - used - pending`` by every
    mutation in the entitlement service, and ``version`` is bumped on each one.
    """

    __tablename__ = "leave_entitlement"
    __table_args__ = (
        sa.UniqueConstraint(
            "company_id",
            "employee_id",
            "leave_type_id",
            "year",
            name="uq_entitlement_employee_type_year",
        ),
        sa.Index("ix_entitlement_employee_year", "employee_id", "year"),
    )

    employee_id: uuid.UUID
    employee_name: str = Field(default="", max_length=255)
    employee_code: str = Field(default="", max_length=50)
    leave_type_id: uuid.UUID = Field(index=True)
    leave_type_code: str = Field(default="", max_length=50)
    leave_type_name: str = Field(default="", max_length=255)

    year: int
    effective_from: date
    effective_to: date

    accrued: float = Field(default=0, sa_column_kwargs={"server_default": "0"})
    carried_over: float = Field(default=0, sa_column_kwargs={"server_default": "0"})
    total_entitlement: float = Field(default=0, sa_column_kwargs={"server_default": "0"})
    used: float = Field(default=0, sa_column_kwargs={"server_default": "0"})
    pending: float = Field(default=0, sa_column_kwargs={"server_default": "0"})
    remaining: float = Field(default=0, sa_column_kwargs={"server_default": "0"})

    based_on_tenure: bool = False
    tenure_years: int = 0
    is_active: bool = True
    notes: str | None = Field(default=None, max_length=1000)
    last_calculated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
