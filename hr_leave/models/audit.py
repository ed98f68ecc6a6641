# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from hr_leave.models.base import CompanyScoped, UUIDBase, timestamp_field


class AuditLog(UUIDBase, CompanyScoped, table=True):
    """Append-only trail of leave request transitions and ledger grants.

    ``before_json``/``after_json`` hold full row snapshots; ``note`` carries the
    approver comment, rejection or cancellation reason where one was given.
    """

    __tablename__ = "audit_log"
    __table_args__ = (sa.Index("ix_audit_entity", "entity_type", "entity_id"),)

    actor_id: uuid.UUID
    entity_type: str = Field(max_length=50)
    entity_id: uuid.UUID
    action: str = Field(max_length=50)
    note: str | None = Field(default=None, max_length=500)
    before_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    after_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    created_at: datetime = timestamp_field(index=True)
