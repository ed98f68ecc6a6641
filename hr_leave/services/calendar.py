# ruff: noqa: TC003
"""Business calendar: working-day counts and leave-year boundaries."""

from __future__ import annotations

import uuid
from collections.abc import Collection
from datetime import date, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from hr_leave.models.holiday import PublicHoliday

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

HALF_DAY = 0.5

_ONE_DAY = timedelta(days=1)
_SATURDAY = 5


def business_days(
    start: date,
    end: date,
    is_half_day: bool,
    holidays: Collection[date] | None = None,
) -> float:
    """Count working days from ``start`` to ``end`` inclusive.

    A half-day request is always 0.5 regardless of range. Saturdays, Sundays
    and any date in ``holidays`` are skipped. Returns 0 when ``end`` is before
    ``start``; rejecting that case is left to the caller.
    """
    if is_half_day:
        return HALF_DAY

    excluded = holidays or ()
    days = 0
    current = start
    while current <= end:
        if current.weekday() < _SATURDAY and current not in excluded:
            days += 1
        current += _ONE_DAY
    return float(days)


async def fetch_holiday_dates(
    session: AsyncSession,
    company_id: uuid.UUID,
    start: date,
    end: date,
) -> set[date]:
    """Fetch active no-work holidays for a company in the given date range."""
    if end < start:
        return set()
    result = await session.execute(
        select(col(PublicHoliday.date)).where(
            col(PublicHoliday.company_id) == company_id,
            col(PublicHoliday.date) >= start,
            col(PublicHoliday.date) <= end,
            col(PublicHoliday.is_active).is_(True),
            col(PublicHoliday.work_policy) == "no-work",
        )
    )
    return {row[0] for row in result.all()}


async def count_leave_days(
    session: AsyncSession,
    company_id: uuid.UUID,
    start: date,
    end: date,
    is_half_day: bool,
) -> float:
    """Business days for a leave period, honouring the company holiday table."""
    if is_half_day:
        return HALF_DAY
    holidays = await fetch_holiday_dates(session, company_id, start, end)
    return business_days(start, end, is_half_day, holidays)


def leave_year_for(day: date, start_month: int = 1) -> int:
    """Return the leave year containing ``day``.

    A leave year is named after the calendar year in which it starts.
    """
    return day.year if day.month >= start_month else day.year - 1


def leave_year_bounds(year: int, start_month: int = 1) -> tuple[date, date]:
    """Return the first and last day of a leave year."""
    first = date(year, start_month, 1)
    next_first = date(year + 1, start_month, 1)
    return first, next_first - _ONE_DAY
