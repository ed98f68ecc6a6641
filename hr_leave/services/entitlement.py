# ruff: noqa: TC003
"""Entitlement ledger: per employee, leave type and leave year balances.

Every mutation goes through a row locked with ``SELECT ... FOR UPDATE`` and
recomputes ``remaining = total_entitlement - used - pending`` before flushing.
Nothing here commits; the calling operation owns the transaction.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Sequence
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from hr_leave.config import get_settings
from hr_leave.exceptions import Conflict, InsufficientBalance, NotFound
from hr_leave.models.entitlement import LeaveEntitlement
from hr_leave.models.enums import AuditAction, AuditEntityType
from hr_leave.schemas.entitlement import EntitlementListResponse, EntitlementResponse
from hr_leave.services.audit import model_to_audit_dict, write_audit_log
from hr_leave.services.calendar import leave_year_bounds, leave_year_for

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_leave.schemas.auth import AuthContext
    from hr_leave.schemas.entitlement import CreateEntitlementPayload, InitialEntitlementsPayload
    from hr_leave.services.employee import EmployeeDirectory, EmployeeInfo
    from hr_leave.services.leave_type import LeaveTypeInfo, LeaveTypeRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_entitlement_response(row: LeaveEntitlement) -> EntitlementResponse:
    """Map a ledger row to its response schema."""
    return EntitlementResponse(
        id=row.id,
        company_id=row.company_id,
        employee_id=row.employee_id,
        employee_name=row.employee_name,
        employee_code=row.employee_code,
        leave_type_id=row.leave_type_id,
        leave_type_code=row.leave_type_code,
        leave_type_name=row.leave_type_name,
        year=row.year,
        effective_from=row.effective_from,
        effective_to=row.effective_to,
        accrued=row.accrued,
        carried_over=row.carried_over,
        total_entitlement=row.total_entitlement,
        used=row.used,
        pending=row.pending,
        remaining=row.remaining,
        based_on_tenure=row.based_on_tenure,
        tenure_years=row.tenure_years,
        is_active=row.is_active,
        notes=row.notes,
        last_calculated_at=row.last_calculated_at,
        updated_at=row.updated_at,
    )


def _touch(row: LeaveEntitlement) -> None:
    """Recompute derived totals, clamp at zero and bump the row version."""
    row.total_entitlement = row.accrued + row.carried_over
    remaining = row.total_entitlement - row.used - row.pending
    if remaining < 0:
        logger.warning(
            "Ledger inconsistency: remaining would be %s for entitlement=%s (total=%s used=%s pending=%s)",
            remaining,
            row.id,
            row.total_entitlement,
            row.used,
            row.pending,
        )
        remaining = 0
    row.remaining = remaining
    row.version += 1
    row.last_calculated_at = datetime.now(UTC)


def _clamped_subtract(row: LeaveEntitlement, counter: str, days: float) -> None:
    current: float = getattr(row, counter)
    if days > current:
        logger.warning(
            "Ledger inconsistency: removing %s days from %s=%s on entitlement=%s, clamping to 0",
            days,
            counter,
            current,
            row.id,
        )
        setattr(row, counter, 0)
    else:
        setattr(row, counter, current - days)


def _new_row(
    *,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    year: int,
    accrued: float,
    carried_over: float = 0,
    employee: EmployeeInfo | None = None,
    leave_type: LeaveTypeInfo | None = None,
    based_on_tenure: bool = False,
    tenure_years: int = 0,
    notes: str | None = None,
) -> LeaveEntitlement:
    effective_from, effective_to = leave_year_bounds(year, get_settings().leave_year_start_month)
    total = accrued + carried_over
    return LeaveEntitlement(
        company_id=company_id,
        employee_id=employee_id,
        employee_name=employee.full_name if employee else "",
        employee_code=employee.employee_code if employee else "",
        leave_type_id=leave_type_id,
        leave_type_code=leave_type.code if leave_type else "",
        leave_type_name=leave_type.name if leave_type else "",
        year=year,
        effective_from=effective_from,
        effective_to=effective_to,
        accrued=accrued,
        carried_over=carried_over,
        total_entitlement=total,
        used=0,
        pending=0,
        remaining=total,
        based_on_tenure=based_on_tenure,
        tenure_years=tenure_years,
        notes=notes,
    )


async def get_entitlement_for_update(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    year: int,
) -> LeaveEntitlement | None:
    """Fetch a ledger row with a FOR UPDATE lock. Returns None if absent."""
    result = await session.execute(
        select(LeaveEntitlement)
        .where(
            col(LeaveEntitlement.company_id) == company_id,
            col(LeaveEntitlement.employee_id) == employee_id,
            col(LeaveEntitlement.leave_type_id) == leave_type_id,
            col(LeaveEntitlement.year) == year,
        )
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def _require_entitlement_for_update(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    year: int,
) -> LeaveEntitlement:
    row = await get_entitlement_for_update(session, company_id, employee_id, leave_type_id, year)
    if row is None:
        raise NotFound(f"No leave entitlement for year {year}")
    return row


# ---------------------------------------------------------------------------
# Balance mutations
# ---------------------------------------------------------------------------


def apply_reserve(row: LeaveEntitlement, days: float) -> None:
    """Move ``days`` from remaining into pending."""
    if row.remaining < days:
        raise InsufficientBalance(remaining=row.remaining, requested=days)
    row.pending += days
    _touch(row)


def apply_commit_used(row: LeaveEntitlement, days: float) -> None:
    """Move ``days`` from pending into used."""
    _clamped_subtract(row, "pending", days)
    row.used += days
    _touch(row)


def apply_release(row: LeaveEntitlement, days: float) -> None:
    """Return ``days`` from pending to remaining."""
    _clamped_subtract(row, "pending", days)
    _touch(row)


def apply_return_from_used(row: LeaveEntitlement, days: float) -> None:
    """Return ``days`` from used to remaining."""
    _clamped_subtract(row, "used", days)
    _touch(row)


async def reserve(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    year: int,
    days: float,
) -> LeaveEntitlement:
    """Reserve days for a newly submitted request.

    Re-checks the balance under the row lock, so a concurrent reservation that
    got there first surfaces as InsufficientBalance.
    """
    row = await _require_entitlement_for_update(session, company_id, employee_id, leave_type_id, year)
    apply_reserve(row, days)
    await session.flush()
    return row


async def commit_used(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    year: int,
    days: float,
) -> LeaveEntitlement:
    """Convert a reservation into usage once the final approval lands."""
    row = await _require_entitlement_for_update(session, company_id, employee_id, leave_type_id, year)
    apply_commit_used(row, days)
    await session.flush()
    return row


async def release(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    year: int,
    days: float,
) -> LeaveEntitlement:
    """Drop a reservation after rejection or cancellation of a pending request."""
    row = await _require_entitlement_for_update(session, company_id, employee_id, leave_type_id, year)
    apply_release(row, days)
    await session.flush()
    return row


async def return_from_used(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    year: int,
    days: float,
) -> LeaveEntitlement:
    """Give back used days after an approved request is cancelled."""
    row = await _require_entitlement_for_update(session, company_id, employee_id, leave_type_id, year)
    apply_return_from_used(row, days)
    await session.flush()
    return row


# ---------------------------------------------------------------------------
# Accrual arithmetic
# ---------------------------------------------------------------------------


def compute_default_entitlement(
    tenure_years: float,
    tiers: Sequence[tuple[float, float]] | None = None,
    max_entitlement: float | None = None,
) -> float:
    """Tiered annual grant by years of service.

    ``tiers`` is an ascending list of ``(below_years, days)``; tenure at or past
    the last threshold earns ``max_entitlement``.
    """
    settings = get_settings()
    if tiers is None:
        tiers = settings.tenure_tiers
    if max_entitlement is None:
        max_entitlement = settings.tenure_max_entitlement

    for below_years, days in tiers:
        if tenure_years < below_years:
            return days
    return max_entitlement


def calculate_tenure_years(hire_date: date, as_of: date | None = None) -> int:
    """Completed years of service on ``as_of``."""
    as_of = as_of or date.today()
    years = as_of.year - hire_date.year
    if (as_of.month, as_of.day) < (hire_date.month, hire_date.day):
        years -= 1
    return max(years, 0)


def pro_rata(hire_date: date, annual_entitlement: float, as_of: date | None = None) -> int:
    """Scale an annual grant by whole months employed, floored to whole days."""
    as_of = as_of or date.today()
    months_worked = (as_of.year - hire_date.year) * 12 + (as_of.month - hire_date.month)
    months_worked = min(max(months_worked, 0), 12)
    return math.floor(months_worked / 12 * annual_entitlement)


# ---------------------------------------------------------------------------
# Row lifecycle
# ---------------------------------------------------------------------------


async def carry_over(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    from_year: int,
    max_carry_over_days: float,
) -> LeaveEntitlement:
    """Carry unused days from ``from_year`` into the next year's row.

    The amount is ``min(remaining, max_carry_over_days)``. It replaces rather
    than adds to the next row's ``carried_over``, so running twice is harmless.
    The next row is created with the same accrued grant when it does not exist.
    """
    source = await _require_entitlement_for_update(session, company_id, employee_id, leave_type_id, from_year)
    amount = max(min(source.remaining, max_carry_over_days), 0)

    next_year = from_year + 1
    target = await get_entitlement_for_update(session, company_id, employee_id, leave_type_id, next_year)
    if target is None:
        target = _new_row(
            company_id=company_id,
            employee_id=employee_id,
            leave_type_id=leave_type_id,
            year=next_year,
            accrued=source.accrued,
            carried_over=amount,
            based_on_tenure=source.based_on_tenure,
            tenure_years=source.tenure_years,
        )
        target.employee_name = source.employee_name
        target.employee_code = source.employee_code
        target.leave_type_code = source.leave_type_code
        target.leave_type_name = source.leave_type_name
        session.add(target)
    else:
        target.carried_over = amount
        _touch(target)

    await session.flush()
    logger.info(
        "Carried over %s days for employee=%s leave_type=%s from %s to %s",
        amount,
        employee_id,
        leave_type_id,
        from_year,
        next_year,
    )
    return target


async def create_initial_entitlements(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee: EmployeeInfo,
    leave_types: Sequence[LeaveTypeInfo],
    year: int | None = None,
    as_of: date | None = None,
) -> list[LeaveEntitlement]:
    """Create the onboarding ledger rows for an employee.

    One row per active paid leave type that does not have one yet. Leave types
    listed in ``tenure_scaled_leave_codes`` get the tenure tier instead of the
    type's default, pro-rated during the first year of service.
    """
    settings = get_settings()
    as_of = as_of or date.today()
    if year is None:
        year = leave_year_for(as_of, settings.leave_year_start_month)

    tenure_years = calculate_tenure_years(employee.hire_date, as_of) if employee.hire_date else 0

    created: list[LeaveEntitlement] = []
    for leave_type in leave_types:
        if not leave_type.is_active or not leave_type.is_paid:
            continue

        existing = await get_entitlement_for_update(session, company_id, employee.id, leave_type.id, year)
        if existing is not None:
            continue

        accrued = leave_type.default_entitlement
        based_on_tenure = False
        if leave_type.code in settings.tenure_scaled_leave_codes and employee.hire_date is not None:
            accrued = compute_default_entitlement(tenure_years)
            based_on_tenure = True
            if tenure_years < 1:
                accrued = pro_rata(employee.hire_date, accrued, as_of)

        row = _new_row(
            company_id=company_id,
            employee_id=employee.id,
            leave_type_id=leave_type.id,
            year=year,
            accrued=accrued,
            employee=employee,
            leave_type=leave_type,
            based_on_tenure=based_on_tenure,
            tenure_years=tenure_years,
        )
        session.add(row)
        created.append(row)

    await session.flush()
    return created


async def create_entitlement(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateEntitlementPayload,
    directory: EmployeeDirectory,
    registry: LeaveTypeRegistry,
) -> EntitlementResponse:
    """Grant a ledger row directly (admin)."""
    employee = await directory.get_employee(auth.company_id, payload.employee_id)
    if employee is None:
        raise NotFound("Employee not found")
    leave_type = await registry.get_leave_type(auth.company_id, payload.leave_type_id)
    if leave_type is None:
        raise NotFound("Leave type not found")

    year = payload.year
    if year is None:
        year = leave_year_for(date.today(), get_settings().leave_year_start_month)

    row = _new_row(
        company_id=auth.company_id,
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        year=year,
        accrued=payload.accrued,
        carried_over=payload.carried_over,
        employee=employee,
        leave_type=leave_type,
        based_on_tenure=payload.based_on_tenure,
        tenure_years=payload.tenure_years,
        notes=payload.notes,
    )
    session.add(row)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise Conflict(f"Entitlement for {leave_type.code} in {year} already exists") from None

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_ENTITLEMENT,
        entity_id=row.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(row),
    )

    await session.commit()
    await session.refresh(row)
    return _build_entitlement_response(row)


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def list_entitlements(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    year: int | None = None,
) -> EntitlementListResponse:
    """List an employee's ledger rows, newest year first."""
    query = select(LeaveEntitlement).where(
        col(LeaveEntitlement.company_id) == company_id,
        col(LeaveEntitlement.employee_id) == employee_id,
    )
    if year is not None:
        query = query.where(col(LeaveEntitlement.year) == year)

    result = await session.execute(
        query.order_by(col(LeaveEntitlement.year).desc(), col(LeaveEntitlement.leave_type_code))
    )
    rows = list(result.scalars().all())
    return EntitlementListResponse(
        items=[_build_entitlement_response(r) for r in rows],
        total=len(rows),
    )


async def get_entitlement(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    year: int,
) -> LeaveEntitlement | None:
    """Fetch a ledger row without locking it."""
    result = await session.execute(
        select(LeaveEntitlement).where(
            col(LeaveEntitlement.company_id) == company_id,
            col(LeaveEntitlement.employee_id) == employee_id,
            col(LeaveEntitlement.leave_type_id) == leave_type_id,
            col(LeaveEntitlement.year) == year,
        )
    )
    return result.scalar_one_or_none()


async def grant_initial_entitlements(
    session: AsyncSession,
    auth: AuthContext,
    payload: InitialEntitlementsPayload,
    directory: EmployeeDirectory,
    registry: LeaveTypeRegistry,
) -> EntitlementListResponse:
    """Onboard an employee onto every paid leave type of the company (admin)."""
    employee = await directory.get_employee(auth.company_id, payload.employee_id)
    if employee is None:
        raise NotFound("Employee not found")
    leave_types = await registry.list_leave_types(auth.company_id)

    rows = await create_initial_entitlements(session, auth.company_id, employee, leave_types, year=payload.year)
    for row in rows:
        await write_audit_log(
            session,
            company_id=auth.company_id,
            actor_id=auth.user_id,
            entity_type=AuditEntityType.LEAVE_ENTITLEMENT,
            entity_id=row.id,
            action=AuditAction.CREATE,
            note="Initial entitlement",
            after_json=model_to_audit_dict(row),
        )

    await session.commit()
    logger.info("Created %d initial entitlements for employee=%s", len(rows), employee.id)
    return EntitlementListResponse(
        items=[_build_entitlement_response(r) for r in rows],
        total=len(rows),
    )
