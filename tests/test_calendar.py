"""Tests for working-day counting and leave-year boundaries."""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from typing import TYPE_CHECKING

import pytest

from hr_leave.models import PublicHoliday
from hr_leave.services.calendar import (
    business_days,
    count_leave_days,
    fetch_holiday_dates,
    leave_year_bounds,
    leave_year_for,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

# 2026-03-02 is a Monday.
MONDAY = date(2026, 3, 2)


def test_monday_to_wednesday_is_three_days() -> None:
    assert business_days(MONDAY, MONDAY + timedelta(days=2), False) == 3.0


def test_weekend_is_skipped() -> None:
    # Monday to the following Monday: five weekdays plus one.
    assert business_days(MONDAY, MONDAY + timedelta(days=7), False) == 6.0


def test_weekend_only_range_is_zero() -> None:
    saturday = MONDAY + timedelta(days=5)
    assert business_days(saturday, saturday + timedelta(days=1), False) == 0.0


def test_half_day_ignores_range() -> None:
    assert business_days(MONDAY, MONDAY + timedelta(days=20), True) == 0.5


def test_reversed_range_returns_zero() -> None:
    assert business_days(MONDAY + timedelta(days=3), MONDAY, False) == 0.0


def test_holidays_are_excluded() -> None:
    tuesday = MONDAY + timedelta(days=1)
    assert business_days(MONDAY, MONDAY + timedelta(days=4), False, {tuesday}) == 4.0


@pytest.mark.parametrize(
    ("day", "start_month", "expected"),
    [
        (date(2026, 1, 1), 1, 2026),
        (date(2026, 12, 31), 1, 2026),
        (date(2026, 3, 31), 4, 2025),
        (date(2026, 4, 1), 4, 2026),
    ],
)
def test_leave_year_for(day: date, start_month: int, expected: int) -> None:
    assert leave_year_for(day, start_month) == expected


def test_leave_year_bounds_for_fiscal_year() -> None:
    assert leave_year_bounds(2026, 4) == (date(2026, 4, 1), date(2027, 3, 31))
    assert leave_year_bounds(2026) == (date(2026, 1, 1), date(2026, 12, 31))


async def test_count_leave_days_uses_company_holidays(db_session: AsyncSession) -> None:
    company_id = uuid.uuid4()
    other_company = uuid.uuid4()
    wednesday = MONDAY + timedelta(days=2)
    thursday = MONDAY + timedelta(days=3)
    db_session.add_all(
        [
            PublicHoliday(company_id=company_id, date=wednesday, name="Founders Day"),
            PublicHoliday(company_id=company_id, date=thursday, name="Optional Day", work_policy="optional"),
            PublicHoliday(company_id=other_company, date=MONDAY, name="Elsewhere"),
        ]
    )
    await db_session.commit()

    holidays = await fetch_holiday_dates(db_session, company_id, MONDAY, MONDAY + timedelta(days=4))
    assert holidays == {wednesday}

    days = await count_leave_days(db_session, company_id, MONDAY, MONDAY + timedelta(days=4), False)
    assert days == 4.0
