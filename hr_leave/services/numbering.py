# ruff: noqa: TC003
"""Human-readable leave request numbers: ``LV-<year>-<seq>``."""

from __future__ import annotations

import logging
import secrets
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from hr_leave.config import get_settings
from hr_leave.models.request import LeaveRequest

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

SEQUENCE_WIDTH = 3


def request_number_prefix(year: int) -> str:
    return f"{get_settings().request_number_prefix}-{year}-"


def format_request_number(year: int, sequence: int) -> str:
    return f"{request_number_prefix(year)}{sequence:0{SEQUENCE_WIDTH}d}"


def parse_sequence(request_number: str, year: int) -> int | None:
    """Extract the sequence from a number of the given year, or None for fallback/foreign forms."""
    prefix = request_number_prefix(year)
    if not request_number.startswith(prefix):
        return None
    suffix = request_number[len(prefix) :]
    return int(suffix) if suffix.isdigit() else None


def fallback_request_number(year: int) -> str:
    """Non-sequential number used when the sequence lookup is unavailable."""
    stamp = datetime.now(UTC).strftime("%m%d%H%M%S%f")
    return f"{request_number_prefix(year)}T{stamp}{secrets.token_hex(2).upper()}"


async def _find_last_sequence(session: AsyncSession, company_id: uuid.UUID, year: int) -> int:
    prefix = request_number_prefix(year)
    number = col(LeaveRequest.request_number)
    # Longest first so that 1000 sorts after 999.
    result = await session.execute(
        select(number)
        .where(
            col(LeaveRequest.company_id) == company_id,
            number >= prefix,
            number < request_number_prefix(year + 1),
            ~number.like(f"{prefix}T%"),
        )
        .order_by(func.length(number).desc(), number.desc())
        .limit(1)
    )
    last = result.scalar_one_or_none()
    if last is None:
        return 0
    return parse_sequence(last, year) or 0


async def generate_request_number(
    session: AsyncSession,
    company_id: uuid.UUID,
    year: int | None = None,
) -> str:
    """Return the next request number for ``year``.

    Never raises on lookup failure: a timestamp-based number is returned
    instead so creating a request is not blocked by numbering trouble. The
    unique constraint on request numbers still rejects a duplicate.
    """
    if year is None:
        year = datetime.now(UTC).year

    try:
        # Savepoint keeps the caller's transaction usable after a failed lookup.
        async with session.begin_nested():
            last = await _find_last_sequence(session, company_id, year)
    except SQLAlchemyError:
        logger.warning("Request number lookup failed for company=%s year=%s, using fallback", company_id, year)
        return fallback_request_number(year)

    return format_request_number(year, last + 1)
