# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Annotated, Self

from pydantic import AfterValidator, AnyUrl, BaseModel, Field, field_validator, model_validator

from hr_leave.config import get_settings
from hr_leave.models.enums import ApprovalStepStatus, HalfDayPeriod, LeaveRequestStatus

# ---------------------------------------------------------------------------
# Approval chain
# ---------------------------------------------------------------------------


class ApprovalStep(BaseModel):
    """One link in a request's approval chain."""

    level: int = Field(ge=1)
    approver_id: uuid.UUID | None = None
    approver_name: str
    approver_role: str
    status: ApprovalStepStatus = ApprovalStepStatus.PENDING
    action_at: datetime | None = None
    acted_by: uuid.UUID | None = None
    comments: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


def _check_reason_length(value: str) -> str:
    value = value.strip()
    min_length = get_settings().reason_min_length
    if len(value) < min_length:
        msg = f"must be at least {min_length} characters"
        raise ValueError(msg)
    return value


ReasonText = Annotated[str, AfterValidator(_check_reason_length)]


class _HalfDayFields(BaseModel):
    is_half_day: bool | None = None
    half_day_period: HalfDayPeriod | None = None

    @model_validator(mode="after")
    def _validate_half_day(self) -> Self:
        if self.is_half_day and self.half_day_period is None:
            msg = "half_day_period is required for a half-day request"
            raise ValueError(msg)
        if self.is_half_day is False and self.half_day_period is not None:
            msg = "half_day_period only applies to half-day requests"
            raise ValueError(msg)
        if self.is_half_day is None and self.half_day_period is not None:
            msg = "half_day_period requires is_half_day"
            raise ValueError(msg)
        return self


class CreateLeaveRequestPayload(_HalfDayFields):
    """Request body for creating a leave request.

    ``start_date``/``end_date`` ordering is deliberately not checked here: it is
    a rule of the leave validator and reported with its rule name.
    """

    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    is_half_day: bool = False
    reason: ReasonText = Field(max_length=500)
    contact_during_leave: str | None = Field(default=None, max_length=100)
    work_handover_to: uuid.UUID | None = None
    work_handover_notes: str | None = Field(default=None, max_length=500)
    has_certificate: bool = False
    certificate_url: AnyUrl | None = None
    certificate_file_name: str | None = Field(default=None, max_length=255)
    save_as_draft: bool = False


class UpdateLeaveRequestPayload(_HalfDayFields):
    """Partial update of a draft leave request."""

    start_date: date | None = None
    end_date: date | None = None
    reason: ReasonText | None = Field(default=None, max_length=500)
    contact_during_leave: str | None = Field(default=None, max_length=100)
    work_handover_to: uuid.UUID | None = None
    work_handover_notes: str | None = Field(default=None, max_length=500)
    has_certificate: bool | None = None
    certificate_url: AnyUrl | None = None
    certificate_file_name: str | None = Field(default=None, max_length=255)

    @field_validator("start_date", "end_date", "reason", "has_certificate", "is_half_day", mode="before")
    @classmethod
    def _reject_null(cls, value: object) -> object:
        # Omit a field to keep it; these columns cannot be cleared.
        if value is None:
            msg = "may be omitted but not null"
            raise ValueError(msg)
        return value


class ApprovePayload(BaseModel):
    """Request body for approving the current approval step.

    ``level`` pins the step the approver saw; a request that has since moved
    on is refused instead of approving the next step by accident.
    """

    level: int | None = Field(default=None, ge=1)
    comments: str | None = Field(default=None, max_length=500)


class RejectPayload(BaseModel):
    """Request body for rejecting a request at the current approval step."""

    level: int | None = Field(default=None, ge=1)
    reason: ReasonText = Field(max_length=500)


class CancelPayload(BaseModel):
    """Request body for cancelling one's own request."""

    reason: ReasonText = Field(max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    company_id: uuid.UUID
    request_number: str
    employee_id: uuid.UUID
    employee_name: str
    employee_code: str
    department_id: uuid.UUID | None
    department_name: str | None
    position_id: uuid.UUID | None
    position_name: str | None
    leave_type_id: uuid.UUID
    leave_type_code: str
    leave_type_name: str
    start_date: date
    end_date: date
    is_half_day: bool
    half_day_period: HalfDayPeriod | None
    total_days: float
    reason: str
    contact_during_leave: str | None
    work_handover_to: uuid.UUID | None
    work_handover_notes: str | None
    has_certificate: bool
    certificate_url: str | None
    certificate_file_name: str | None
    status: LeaveRequestStatus
    submitted_at: datetime | None
    approval_chain: list[ApprovalStep]
    current_approval_level: int
    rejected_by: uuid.UUID | None
    rejected_at: datetime | None
    rejection_reason: str | None
    cancelled_by: uuid.UUID | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    created_at: datetime
    updated_at: datetime


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int
