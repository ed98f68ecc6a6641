"""Tests for the leave request rule pipeline."""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from typing import TYPE_CHECKING

from hr_leave.models import LeaveRequest, LeaveRequestStatus, ValidationRule
from hr_leave.services.validator import LeaveProposal, check_max_consecutive_days, validate_leave_request

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

# 2026-03-02 is a Monday.
MONDAY = date(2026, 3, 2)


def _proposal(seed, start: date, end: date, days: float, **kwargs) -> LeaveProposal:
    return LeaveProposal(
        company_id=seed.company_id,
        employee_id=seed.employee.id,
        start_date=start,
        end_date=end,
        total_days=days,
        has_certificate=kwargs.pop("has_certificate", False),
        **kwargs,
    )


async def _existing_request(session: AsyncSession, seed, start: date, end: date, status: str) -> LeaveRequest:
    request = LeaveRequest(
        company_id=seed.company_id,
        request_number=f"LV-2026-{uuid.uuid4().hex[:3]}",
        employee_id=seed.employee.id,
        leave_type_id=seed.annual.id,
        start_date=start,
        end_date=end,
        total_days=1,
        reason="Existing leave request",
        status=status,
    )
    session.add(request)
    await session.commit()
    return request


async def test_valid_request_passes(db_session: AsyncSession, seed) -> None:
    row = await seed.grant(db_session, seed.annual, 10)
    proposal = _proposal(seed, MONDAY, MONDAY + timedelta(days=2), 3)

    assert await validate_leave_request(db_session, seed.annual, proposal, row) is None


async def test_missing_leave_type_fails_first(db_session: AsyncSession, seed) -> None:
    # Even a reversed range reports the leave type rule first.
    proposal = _proposal(seed, MONDAY, MONDAY - timedelta(days=3), 0)

    violation = await validate_leave_request(db_session, None, proposal, None)

    assert violation is not None
    assert violation.rule == ValidationRule.LEAVE_TYPE


async def test_inactive_leave_type_fails(db_session: AsyncSession, seed) -> None:
    retired = seed.annual.model_copy(update={"is_active": False})
    proposal = _proposal(seed, MONDAY, MONDAY, 1)

    violation = await validate_leave_request(db_session, retired, proposal, None)

    assert violation is not None
    assert violation.rule == ValidationRule.LEAVE_TYPE
    assert "no longer active" in violation.message


async def test_end_before_start_fails_date_range(db_session: AsyncSession, seed) -> None:
    proposal = _proposal(seed, MONDAY + timedelta(days=2), MONDAY, 0)

    violation = await validate_leave_request(db_session, seed.unpaid, proposal, None)

    assert violation is not None
    assert violation.rule == ValidationRule.DATE_RANGE


async def test_weekend_only_request_fails_date_range(db_session: AsyncSession, seed) -> None:
    saturday = MONDAY + timedelta(days=5)
    proposal = _proposal(seed, saturday, saturday + timedelta(days=1), 0)

    violation = await validate_leave_request(db_session, seed.unpaid, proposal, None)

    assert violation is not None
    assert violation.rule == ValidationRule.DATE_RANGE


def test_consecutive_day_cap(seed) -> None:
    too_long = _proposal(seed, MONDAY, MONDAY + timedelta(days=14), 11)
    at_cap = _proposal(seed, MONDAY, MONDAY + timedelta(days=13), 10)

    violation = check_max_consecutive_days(seed.annual, too_long)
    assert violation is not None
    assert violation.rule == ValidationRule.MAX_CONSECUTIVE_DAYS
    assert check_max_consecutive_days(seed.annual, at_cap) is None
    # A zero cap means no limit.
    assert check_max_consecutive_days(seed.sick, too_long) is None


async def test_certificate_required_beyond_threshold(db_session: AsyncSession, seed) -> None:
    row = await seed.grant(db_session, seed.sick, 30)
    four_days = (MONDAY, MONDAY + timedelta(days=3), 4)

    without = await validate_leave_request(db_session, seed.sick, _proposal(seed, *four_days), row)
    assert without is not None
    assert without.rule == ValidationRule.CERTIFICATE

    with_certificate = _proposal(seed, *four_days, has_certificate=True)
    assert await validate_leave_request(db_session, seed.sick, with_certificate, row) is None

    # Exactly at the threshold no certificate is needed.
    three_days = _proposal(seed, MONDAY, MONDAY + timedelta(days=2), 3)
    assert await validate_leave_request(db_session, seed.sick, three_days, row) is None


async def test_insufficient_balance_reports_shortfall(db_session: AsyncSession, seed) -> None:
    row = await seed.grant(db_session, seed.annual, 1)
    proposal = _proposal(seed, MONDAY, MONDAY + timedelta(days=1), 2)

    violation = await validate_leave_request(db_session, seed.annual, proposal, row)

    assert violation is not None
    assert violation.rule == ValidationRule.BALANCE
    assert "remaining 1 days" in violation.message
    assert "requested 2 days" in violation.message


async def test_missing_ledger_row_fails_balance(db_session: AsyncSession, seed) -> None:
    proposal = _proposal(seed, MONDAY, MONDAY, 1)

    violation = await validate_leave_request(db_session, seed.annual, proposal, None)

    assert violation is not None
    assert violation.rule == ValidationRule.BALANCE


async def test_unpaid_leave_skips_balance(db_session: AsyncSession, seed) -> None:
    proposal = _proposal(seed, MONDAY, MONDAY + timedelta(days=4), 5)

    assert await validate_leave_request(db_session, seed.unpaid, proposal, None) is None


async def test_overlap_with_pending_request(db_session: AsyncSession, seed) -> None:
    tenth, fifteenth = date(2026, 3, 10), date(2026, 3, 15)
    existing = await _existing_request(db_session, seed, tenth, fifteenth, LeaveRequestStatus.PENDING)

    inside = _proposal(seed, date(2026, 3, 12), date(2026, 3, 13), 2)
    violation = await validate_leave_request(db_session, seed.unpaid, inside, None)
    assert violation is not None
    assert violation.rule == ValidationRule.OVERLAP
    assert existing.request_number in violation.message

    after = _proposal(seed, date(2026, 3, 16), date(2026, 3, 20), 5)
    assert await validate_leave_request(db_session, seed.unpaid, after, None) is None


async def test_overlap_is_inclusive_on_boundaries(db_session: AsyncSession, seed) -> None:
    await _existing_request(db_session, seed, MONDAY, MONDAY + timedelta(days=2), LeaveRequestStatus.APPROVED)

    touching = _proposal(seed, MONDAY + timedelta(days=2), MONDAY + timedelta(days=3), 2)
    violation = await validate_leave_request(db_session, seed.unpaid, touching, None)

    assert violation is not None
    assert violation.rule == ValidationRule.OVERLAP


async def test_overlap_ignores_inactive_and_excluded_requests(db_session: AsyncSession, seed) -> None:
    await _existing_request(db_session, seed, MONDAY, MONDAY, LeaveRequestStatus.REJECTED)
    await _existing_request(db_session, seed, MONDAY, MONDAY, LeaveRequestStatus.CANCELLED)
    await _existing_request(db_session, seed, MONDAY, MONDAY, LeaveRequestStatus.DRAFT)
    own = await _existing_request(
        db_session, seed, MONDAY + timedelta(days=1), MONDAY + timedelta(days=1), LeaveRequestStatus.PENDING
    )

    proposal = _proposal(seed, MONDAY, MONDAY + timedelta(days=1), 2, exclude_request_id=own.id)

    assert await validate_leave_request(db_session, seed.unpaid, proposal, None) is None


async def test_overlap_is_per_employee(db_session: AsyncSession, seed) -> None:
    await _existing_request(db_session, seed, MONDAY, MONDAY + timedelta(days=4), LeaveRequestStatus.PENDING)
    colleague = _proposal(seed, MONDAY, MONDAY + timedelta(days=4), 5)
    colleague.employee_id = seed.manager.id

    assert await validate_leave_request(db_session, seed.unpaid, colleague, None) is None
