"""initial leave tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "leave_request",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("company_id", sa.Uuid(), nullable=False),
        sa.Column("request_number", sa.String(length=50), nullable=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("employee_name", sa.String(length=255), nullable=False),
        sa.Column("employee_code", sa.String(length=50), nullable=False),
        sa.Column("department_id", sa.Uuid(), nullable=True),
        sa.Column("department_name", sa.String(length=255), nullable=True),
        sa.Column("position_id", sa.Uuid(), nullable=True),
        sa.Column("position_name", sa.String(length=255), nullable=True),
        sa.Column("leave_type_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type_code", sa.String(length=50), nullable=False),
        sa.Column("leave_type_name", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_half_day", sa.Boolean(), nullable=False),
        sa.Column("half_day_period", sa.String(length=20), nullable=True),
        sa.Column("total_days", sa.Float(), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=False),
        sa.Column("contact_during_leave", sa.String(length=100), nullable=True),
        sa.Column("work_handover_to", sa.Uuid(), nullable=True),
        sa.Column("work_handover_notes", sa.String(length=500), nullable=True),
        sa.Column("has_certificate", sa.Boolean(), nullable=False),
        sa.Column("certificate_url", sa.String(length=2048), nullable=True),
        sa.Column("certificate_file_name", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), server_default="draft", nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_chain", sa.JSON(), nullable=False),
        sa.Column("current_approval_level", sa.Integer(), nullable=False),
        sa.Column("leave_year", sa.Integer(), nullable=True),
        sa.Column("deducts_balance", sa.Boolean(), nullable=False),
        sa.Column("rejected_by", sa.Uuid(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(length=500), nullable=True),
        sa.Column("cancelled_by", sa.Uuid(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=500), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "request_number", name="uq_leave_request_number"),
    )
    op.create_index("ix_leave_request_company_id", "leave_request", ["company_id"])
    op.create_index("ix_leave_request_employee_id", "leave_request", ["employee_id"])
    op.create_index("ix_leave_request_leave_type_id", "leave_request", ["leave_type_id"])
    op.create_index("ix_leave_request_status", "leave_request", ["status"])
    op.create_index("ix_leave_request_company_status", "leave_request", ["company_id", "status"])
    op.create_index("ix_leave_request_employee_dates", "leave_request", ["employee_id", "start_date", "end_date"])

    op.create_table(
        "leave_entitlement",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("company_id", sa.Uuid(), nullable=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("employee_name", sa.String(length=255), nullable=False),
        sa.Column("employee_code", sa.String(length=50), nullable=False),
        sa.Column("leave_type_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type_code", sa.String(length=50), nullable=False),
        sa.Column("leave_type_name", sa.String(length=255), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_to", sa.Date(), nullable=False),
        sa.Column("accrued", sa.Float(), server_default="0", nullable=False),
        sa.Column("carried_over", sa.Float(), server_default="0", nullable=False),
        sa.Column("total_entitlement", sa.Float(), server_default="0", nullable=False),
        sa.Column("used", sa.Float(), server_default="0", nullable=False),
        sa.Column("pending", sa.Float(), server_default="0", nullable=False),
        sa.Column("remaining", sa.Float(), server_default="0", nullable=False),
        sa.Column("based_on_tenure", sa.Boolean(), nullable=False),
        sa.Column("tenure_years", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("last_calculated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "company_id", "employee_id", "leave_type_id", "year", name="uq_entitlement_employee_type_year"
        ),
    )
    op.create_index("ix_leave_entitlement_company_id", "leave_entitlement", ["company_id"])
    op.create_index("ix_leave_entitlement_leave_type_id", "leave_entitlement", ["leave_type_id"])
    op.create_index("ix_entitlement_employee_year", "leave_entitlement", ["employee_id", "year"])

    op.create_table(
        "public_holiday",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("company_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("holiday_type", sa.String(length=20), nullable=False),
        sa.Column("is_substitute_day", sa.Boolean(), nullable=False),
        sa.Column("work_policy", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("company_id", "date", name="uq_public_holiday_company_date"),
    )
    op.create_index("ix_public_holiday_company_id", "public_holiday", ["company_id"])
    op.create_index("ix_public_holiday_date", "public_holiday", ["date"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("company_id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("note", sa.String(length=500), nullable=True),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_log_company_id", "audit_log", ["company_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("public_holiday")
    op.drop_table("leave_entitlement")
    op.drop_table("leave_request")
