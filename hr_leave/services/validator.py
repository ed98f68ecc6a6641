# ruff: noqa: TC003
"""Leave request validation pipeline.

Rules run in a fixed order and the first failure wins; callers get one
``RuleViolation`` rather than a list.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from hr_leave.exceptions import LeaveValidationError
from hr_leave.models.enums import LeaveRequestStatus, ValidationRule
from hr_leave.models.request import LeaveRequest

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_leave.models.entitlement import LeaveEntitlement
    from hr_leave.services.leave_type import LeaveTypeInfo

# Requests in these states hold days on the calendar.
ACTIVE_STATUSES = (LeaveRequestStatus.PENDING.value, LeaveRequestStatus.APPROVED.value)


@dataclass(frozen=True)
class RuleViolation:
    """The first validation rule a proposed request breaks."""

    rule: ValidationRule
    message: str

    def to_error(self) -> LeaveValidationError:
        return LeaveValidationError(self.rule.value, self.message)


@dataclass
class LeaveProposal:
    """Everything the validator needs to know about a proposed request."""

    company_id: uuid.UUID
    employee_id: uuid.UUID
    start_date: date
    end_date: date
    total_days: float
    has_certificate: bool
    exclude_request_id: uuid.UUID | None = None


def check_leave_type(leave_type: LeaveTypeInfo | None) -> RuleViolation | None:
    if leave_type is None:
        return RuleViolation(ValidationRule.LEAVE_TYPE, "Selected leave type does not exist")
    if not leave_type.is_active:
        return RuleViolation(ValidationRule.LEAVE_TYPE, f"Leave type {leave_type.code} is no longer active")
    return None


def check_date_range(proposal: LeaveProposal) -> RuleViolation | None:
    if proposal.end_date < proposal.start_date:
        return RuleViolation(ValidationRule.DATE_RANGE, "End date must be on or after the start date")
    if proposal.total_days <= 0:
        return RuleViolation(ValidationRule.DATE_RANGE, "Requested period contains no working days")
    return None


def check_max_consecutive_days(leave_type: LeaveTypeInfo, proposal: LeaveProposal) -> RuleViolation | None:
    cap = leave_type.max_consecutive_days
    if cap > 0 and proposal.total_days > cap:
        return RuleViolation(
            ValidationRule.MAX_CONSECUTIVE_DAYS,
            f"Cannot take more than {cap} consecutive days of {leave_type.code} leave",
        )
    return None


def check_certificate(leave_type: LeaveTypeInfo, proposal: LeaveProposal) -> RuleViolation | None:
    threshold = leave_type.certificate_required_after_days
    if leave_type.requires_certificate and proposal.total_days > threshold and not proposal.has_certificate:
        return RuleViolation(
            ValidationRule.CERTIFICATE,
            f"A certificate is required for {leave_type.code} leave longer than {threshold} days",
        )
    return None


def check_balance(
    leave_type: LeaveTypeInfo,
    proposal: LeaveProposal,
    entitlement: LeaveEntitlement | None,
) -> RuleViolation | None:
    """Paid leave needs a ledger row with enough remaining days; unpaid leave is exempt."""
    if not leave_type.is_paid:
        return None
    if entitlement is None:
        return RuleViolation(ValidationRule.BALANCE, f"No {leave_type.code} entitlement for this leave year")
    if entitlement.remaining < proposal.total_days:
        return RuleViolation(
            ValidationRule.BALANCE,
            f"Insufficient leave balance (remaining {entitlement.remaining:g} days, "
            f"requested {proposal.total_days:g} days)",
        )
    return None


async def find_overlapping_request(session: AsyncSession, proposal: LeaveProposal) -> LeaveRequest | None:
    """Return a pending or approved request of the same employee that shares a day with the proposal."""
    query = select(LeaveRequest).where(
        col(LeaveRequest.company_id) == proposal.company_id,
        col(LeaveRequest.employee_id) == proposal.employee_id,
        col(LeaveRequest.status).in_(ACTIVE_STATUSES),
        col(LeaveRequest.start_date) <= proposal.end_date,
        col(LeaveRequest.end_date) >= proposal.start_date,
    )
    if proposal.exclude_request_id is not None:
        query = query.where(col(LeaveRequest.id) != proposal.exclude_request_id)

    result = await session.execute(query.limit(1))
    return result.scalars().first()


async def check_overlap(session: AsyncSession, proposal: LeaveProposal) -> RuleViolation | None:
    existing = await find_overlapping_request(session, proposal)
    if existing is not None:
        return RuleViolation(
            ValidationRule.OVERLAP,
            f"Overlaps existing leave request {existing.request_number} "
            f"({existing.start_date.isoformat()} to {existing.end_date.isoformat()})",
        )
    return None


async def validate_leave_request(
    session: AsyncSession,
    leave_type: LeaveTypeInfo | None,
    proposal: LeaveProposal,
    entitlement: LeaveEntitlement | None,
) -> RuleViolation | None:
    """Run the rule pipeline and return the first violation, or None if the request may proceed.

    ``entitlement`` should already be locked by the caller so the balance and
    overlap checks and the reservation that follows see one snapshot.
    """
    # 1. Leave type exists and is active.
    violation = check_leave_type(leave_type)
    if violation is not None or leave_type is None:
        return violation

    # 2. Date range.
    violation = check_date_range(proposal)
    if violation is not None:
        return violation

    # 3. Consecutive-day cap.
    violation = check_max_consecutive_days(leave_type, proposal)
    if violation is not None:
        return violation

    # 4. Certificate.
    violation = check_certificate(leave_type, proposal)
    if violation is not None:
        return violation

    # 5. Balance.
    violation = check_balance(leave_type, proposal, entitlement)
    if violation is not None:
        return violation

    # 6. Overlap with pending or approved requests.
    return await check_overlap(session, proposal)
