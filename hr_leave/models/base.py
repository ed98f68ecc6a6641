# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(UTC)


def timestamp_field(*, on_update: bool = False, index: bool = False) -> datetime:
    """A timezone-aware timestamp column defaulting to now, optionally touched on update."""
    column_kwargs: dict[str, object] = {"server_default": sa.func.now()}
    if on_update:
        column_kwargs["onupdate"] = utcnow
    return Field(
        default_factory=utcnow,
        index=index,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs=column_kwargs,
    )


class UUIDBase(SQLModel):
    """Base model with a UUID v4 primary key."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, sa_type=sa.Uuid)


class CompanyScoped(SQLModel):
    """Every leave table is partitioned by tenant; queries always filter on it."""

    company_id: uuid.UUID = Field(index=True)


class TimestampMixin(SQLModel):
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field(on_update=True)
