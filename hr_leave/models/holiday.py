# ruff: noqa: TC003
from __future__ import annotations

import datetime

import sqlalchemy as sa
from sqlmodel import Field

from hr_leave.models.base import CompanyScoped, UUIDBase


class PublicHoliday(UUIDBase, CompanyScoped, table=True):
    """A dated holiday that the business calendar skips when counting leave days.

    Only active holidays with the ``no-work`` policy are excluded; optional and
    overtime-only holidays still count as working days.
    """

    __tablename__ = "public_holiday"
    __table_args__ = (sa.UniqueConstraint("company_id", "date", name="uq_public_holiday_company_date"),)

    date: datetime.date = Field(index=True)
    name: str = Field(max_length=255)
    holiday_type: str = Field(default="national", max_length=20)
    is_substitute_day: bool = False
    work_policy: str = Field(default="no-work", max_length=20)
    is_active: bool = True
