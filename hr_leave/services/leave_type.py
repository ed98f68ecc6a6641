# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from hr_leave.models.enums import AccrualType


class LeaveTypeInfo(BaseModel):
    """Leave type master data: the rules a request is validated against."""

    id: uuid.UUID
    company_id: uuid.UUID
    code: str = Field(min_length=2, max_length=20, pattern=r"^[A-Z0-9_-]+$")
    name: str
    is_active: bool = True
    is_paid: bool = True
    max_consecutive_days: int = Field(default=0, ge=0, le=365)  # 0 means no cap
    requires_certificate: bool = False
    certificate_required_after_days: int = Field(default=0, ge=0, le=365)
    default_entitlement: float = Field(default=0, ge=0, le=365)
    accrual_type: AccrualType = AccrualType.YEARLY
    carry_over_allowed: bool = False
    max_carry_over_days: int = Field(default=0, ge=0, le=365)


@runtime_checkable
class LeaveTypeRegistry(Protocol):
    """Interface for leave type master data."""

    async def get_leave_type(self, company_id: uuid.UUID, leave_type_id: uuid.UUID) -> LeaveTypeInfo | None:
        """Fetch a leave type. Returns None if not found."""
        ...

    async def list_leave_types(self, company_id: uuid.UUID) -> list[LeaveTypeInfo]:
        """List all leave types for a company, active or not."""
        ...


class InMemoryLeaveTypeRegistry:
    """In-memory stub implementation for development and tests."""

    def __init__(self) -> None:
        self._leave_types: dict[tuple[uuid.UUID, uuid.UUID], LeaveTypeInfo] = {}

    def seed(self, leave_type: LeaveTypeInfo) -> None:
        self._leave_types[(leave_type.company_id, leave_type.id)] = leave_type

    async def get_leave_type(self, company_id: uuid.UUID, leave_type_id: uuid.UUID) -> LeaveTypeInfo | None:
        return self._leave_types.get((company_id, leave_type_id))

    async def list_leave_types(self, company_id: uuid.UUID) -> list[LeaveTypeInfo]:
        return [lt for lt in self._leave_types.values() if lt.company_id == company_id]


_leave_type_registry: LeaveTypeRegistry = InMemoryLeaveTypeRegistry()


def get_leave_type_registry() -> LeaveTypeRegistry:
    """FastAPI dependency for the leave type registry."""
    return _leave_type_registry


def set_leave_type_registry(registry: LeaveTypeRegistry) -> None:
    """Override the registry (for testing or production wiring)."""
    global _leave_type_registry
    _leave_type_registry = registry
