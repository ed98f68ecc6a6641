"""Year-end carry-over processing.

Runs once per leave year boundary: every ledger row of the closing year whose
leave type allows carry-over pushes its unused days (capped) into the next
year's row. Re-running for the same year overwrites rather than adds.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from hr_leave.config import get_settings
from hr_leave.models.entitlement import LeaveEntitlement
from hr_leave.models.enums import AuditAction, AuditEntityType
from hr_leave.services.audit import SYSTEM_ACTOR, model_to_audit_dict, write_audit_log
from hr_leave.services.calendar import leave_year_for
from hr_leave.services.entitlement import carry_over

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_leave.services.leave_type import LeaveTypeInfo, LeaveTypeRegistry

logger = logging.getLogger(__name__)


@dataclass
class CarryoverRunResult:
    """Result of a carry-over processing run."""

    from_year: int
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    details: list[dict[str, object]] = field(default_factory=list)


def is_leave_year_start(day: date) -> bool:
    """True on the first day of a leave year, when the worker should run carry-over."""
    return day.day == 1 and day.month == get_settings().leave_year_start_month


def closing_year_for(day: date) -> int:
    """The leave year that ended the day before ``day``."""
    return leave_year_for(day, get_settings().leave_year_start_month) - 1


async def _find_source_rows(
    session: AsyncSession,
    from_year: int,
    company_id: uuid.UUID | None,
) -> list[LeaveEntitlement]:
    filters = [
        col(LeaveEntitlement.year) == from_year,
        col(LeaveEntitlement.is_active).is_(True),
    ]
    if company_id is not None:
        filters.append(col(LeaveEntitlement.company_id) == company_id)

    result = await session.execute(
        select(LeaveEntitlement)
        .where(*filters)
        .order_by(col(LeaveEntitlement.company_id), col(LeaveEntitlement.employee_id))
    )
    return list(result.scalars().all())


async def run_carryover_processing(
    session: AsyncSession,
    registry: LeaveTypeRegistry,
    from_year: int,
    *,
    company_id: uuid.UUID | None = None,
) -> CarryoverRunResult:
    """Carry unused days from ``from_year`` into ``from_year + 1``.

    For each active ledger row of ``from_year``:
    1. Resolve its leave type; skip unpaid types and types without carry-over.
    2. Carry ``min(remaining, max_carry_over_days)`` into next year's row.
    3. Audit the resulting next-year row.

    Each row runs in its own savepoint. A failure on one row is rolled back,
    logged and counted; rows already carried and the remaining rows still
    commit.
    """
    result = CarryoverRunResult(from_year=from_year)
    leave_types: dict[tuple[uuid.UUID, uuid.UUID], LeaveTypeInfo | None] = {}

    rows = await _find_source_rows(session, from_year, company_id)

    for row in rows:
        cid, eid, ltid = row.company_id, row.employee_id, row.leave_type_id

        try:
            key = (cid, ltid)
            if key not in leave_types:
                leave_types[key] = await registry.get_leave_type(cid, ltid)
            leave_type = leave_types[key]

            if leave_type is None or not leave_type.is_paid or not leave_type.carry_over_allowed:
                result.skipped += 1
                continue

            # A failed row rolls back to here; earlier rows stay in the outer transaction.
            async with session.begin_nested():
                target = await carry_over(session, cid, eid, ltid, from_year, leave_type.max_carry_over_days)

                await write_audit_log(
                    session,
                    company_id=cid,
                    actor_id=SYSTEM_ACTOR,
                    entity_type=AuditEntityType.LEAVE_ENTITLEMENT,
                    entity_id=target.id,
                    action=AuditAction.CARRYOVER,
                    note=f"Carried over from {from_year}",
                    after_json=model_to_audit_dict(target),
                )
                await session.flush()

            result.processed += 1
            result.details.append(
                {
                    "employee_id": str(eid),
                    "leave_type_code": leave_type.code,
                    "carried_over": target.carried_over,
                }
            )

        except Exception:
            logger.exception("Carry-over failed for employee=%s leave_type=%s year=%s", eid, ltid, from_year)
            result.errors += 1

    await session.commit()
    logger.info(
        "Carry-over from %s complete: processed=%d skipped=%d errors=%d",
        from_year,
        result.processed,
        result.skipped,
        result.errors,
    )
    return result
