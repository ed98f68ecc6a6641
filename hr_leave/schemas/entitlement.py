# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Entitlement response schemas
# ---------------------------------------------------------------------------


class EntitlementResponse(BaseModel):
    """One ledger row: an employee's balance for a leave type and year."""

    id: uuid.UUID
    company_id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: str
    employee_code: str
    leave_type_id: uuid.UUID
    leave_type_code: str
    leave_type_name: str
    year: int
    effective_from: date
    effective_to: date
    accrued: float
    carried_over: float
    total_entitlement: float
    used: float
    pending: float
    remaining: float
    based_on_tenure: bool
    tenure_years: int
    is_active: bool
    notes: str | None
    last_calculated_at: datetime
    updated_at: datetime


class EntitlementListResponse(BaseModel):
    """All ledger rows for an employee."""

    items: list[EntitlementResponse]
    total: int


# ---------------------------------------------------------------------------
# Admin payloads
# ---------------------------------------------------------------------------


class CreateEntitlementPayload(BaseModel):
    """Request body for granting an entitlement row directly."""

    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    year: int | None = Field(default=None, ge=2000, le=2100)
    accrued: float = Field(ge=0, le=365)
    carried_over: float = Field(default=0, ge=0, le=365)
    based_on_tenure: bool = False
    tenure_years: int = Field(default=0, ge=0)
    notes: str | None = Field(default=None, max_length=1000)


class InitialEntitlementsPayload(BaseModel):
    """Request body for onboarding an employee's entitlements for a year."""

    employee_id: uuid.UUID
    year: int | None = Field(default=None, ge=2000, le=2100)


class CarryOverRunPayload(BaseModel):
    """Request body for running year-end carry-over."""

    from_year: int = Field(ge=2000, le=2100)


class CarryOverRunResponse(BaseModel):
    """Outcome of a carry-over run."""

    from_year: int
    processed: int
    skipped: int
    errors: int
