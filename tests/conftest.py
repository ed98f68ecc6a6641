"""Shared fixtures: in-memory SQLite database, HTTP client and seeded master data.

SQLite ignores ``SELECT ... FOR UPDATE``, so most tests exercise the
transaction logic sequentially. ``file_engine`` opens every transaction with
``BEGIN IMMEDIATE`` so concurrent writers are serialized the way row locks
serialize them on PostgreSQL.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from hr_leave.db import get_session
from hr_leave.main import app
from hr_leave.models import LeaveEntitlement, SQLModel
from hr_leave.schemas.auth import AuthContext
from hr_leave.services.calendar import leave_year_bounds
from hr_leave.services.employee import EmployeeInfo, InMemoryEmployeeDirectory, set_employee_directory
from hr_leave.services.leave_type import InMemoryLeaveTypeRegistry, LeaveTypeInfo, set_leave_type_registry

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

TEST_DATABASE_URL = "sqlite+aiosqlite://"

# 2026-03-02 is a Monday.
MONDAY = date(2026, 3, 2)
LEAVE_YEAR = 2026


def _emit_explicit_begin(engine: AsyncEngine, begin_statement: str) -> None:
    """Let SQLAlchemy own transaction boundaries so savepoints work on pysqlite."""

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_implicit_begin(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn) -> None:
        conn.exec_driver_sql(begin_statement)


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """A fresh in-memory database per test."""
    _engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _emit_explicit_begin(_engine, "BEGIN")
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def file_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """A file database with several pooled connections, for concurrent sessions."""
    _engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'leave.db'}")
    _emit_explicit_begin(_engine, "BEGIN IMMEDIATE")
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------------


@dataclass
class Seed:
    """Ids and collaborators seeded for one test."""

    company_id: uuid.UUID
    employee: EmployeeInfo
    manager: EmployeeInfo
    hr: EmployeeInfo
    annual: LeaveTypeInfo
    sick: LeaveTypeInfo
    unpaid: LeaveTypeInfo
    directory: InMemoryEmployeeDirectory
    registry: InMemoryLeaveTypeRegistry
    admin_id: uuid.UUID = field(default_factory=uuid.uuid4)

    def auth(self, user_id: uuid.UUID | None = None, role: str = "employee") -> AuthContext:
        return AuthContext(company_id=self.company_id, user_id=user_id or self.employee.id, role=role)

    def headers(self, user_id: uuid.UUID | None = None, role: str = "employee") -> dict[str, str]:
        return {
            "X-Company-Id": str(self.company_id),
            "X-User-Id": str(user_id or self.employee.id),
            "X-Role": role,
        }

    @property
    def employee_auth(self) -> AuthContext:
        return self.auth()

    @property
    def manager_auth(self) -> AuthContext:
        return self.auth(self.manager.id, "manager")

    @property
    def hr_auth(self) -> AuthContext:
        return self.auth(self.hr.id, "hr")

    @property
    def admin_auth(self) -> AuthContext:
        return self.auth(self.admin_id, "admin")

    async def grant(
        self,
        session: AsyncSession,
        leave_type: LeaveTypeInfo,
        accrued: float,
        year: int = LEAVE_YEAR,
        employee: EmployeeInfo | None = None,
    ) -> LeaveEntitlement:
        """Insert a fresh ledger row and commit it."""
        employee = employee or self.employee
        effective_from, effective_to = leave_year_bounds(year)
        row = LeaveEntitlement(
            company_id=self.company_id,
            employee_id=employee.id,
            employee_name=employee.full_name,
            employee_code=employee.employee_code,
            leave_type_id=leave_type.id,
            leave_type_code=leave_type.code,
            leave_type_name=leave_type.name,
            year=year,
            effective_from=effective_from,
            effective_to=effective_to,
            accrued=accrued,
            total_entitlement=accrued,
            remaining=accrued,
        )
        session.add(row)
        await session.commit()
        return row


@pytest.fixture
def seed() -> Iterator[Seed]:
    """Seed the in-memory directory and leave type registry for one test."""
    company_id = uuid.uuid4()
    department_id = uuid.uuid4()

    manager = EmployeeInfo(
        id=uuid.uuid4(),
        company_id=company_id,
        first_name="Mara",
        last_name="Manager",
        employee_code="E-001",
        department_id=department_id,
        department_name="Engineering",
        hire_date=date(2015, 5, 1),
    )
    hr = EmployeeInfo(
        id=uuid.uuid4(),
        company_id=company_id,
        first_name="Hana",
        last_name="Resources",
        employee_code="E-002",
        department_name="People",
        hire_date=date(2018, 9, 1),
        is_hr_approver=True,
    )
    employee = EmployeeInfo(
        id=uuid.uuid4(),
        company_id=company_id,
        first_name="Test",
        last_name="Employee",
        employee_code="E-100",
        email="test@example.com",
        department_id=department_id,
        department_name="Engineering",
        position_id=uuid.uuid4(),
        position_name="Developer",
        manager_id=manager.id,
        hire_date=date(2022, 1, 10),
    )

    annual = LeaveTypeInfo(
        id=uuid.uuid4(),
        company_id=company_id,
        code="ANNUAL",
        name="Annual Leave",
        max_consecutive_days=10,
        default_entitlement=10,
        carry_over_allowed=True,
        max_carry_over_days=5,
    )
    sick = LeaveTypeInfo(
        id=uuid.uuid4(),
        company_id=company_id,
        code="SICK",
        name="Sick Leave",
        requires_certificate=True,
        certificate_required_after_days=3,
        default_entitlement=30,
    )
    unpaid = LeaveTypeInfo(
        id=uuid.uuid4(),
        company_id=company_id,
        code="UNPAID",
        name="Unpaid Leave",
        is_paid=False,
    )

    directory = InMemoryEmployeeDirectory()
    for person in (manager, hr, employee):
        directory.seed(person)
    registry = InMemoryLeaveTypeRegistry()
    for leave_type in (annual, sick, unpaid):
        registry.seed(leave_type)

    set_employee_directory(directory)
    set_leave_type_registry(registry)
    yield Seed(
        company_id=company_id,
        employee=employee,
        manager=manager,
        hr=hr,
        annual=annual,
        sick=sick,
        unpaid=unpaid,
        directory=directory,
        registry=registry,
    )
    set_employee_directory(InMemoryEmployeeDirectory())
    set_leave_type_registry(InMemoryLeaveTypeRegistry())
