# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


class EmployeeInfo(BaseModel):
    """Employee master data as seen by the leave core."""

    id: uuid.UUID
    company_id: uuid.UUID
    first_name: str
    last_name: str
    employee_code: str
    email: str | None = None
    department_id: uuid.UUID | None = None
    department_name: str | None = None
    position_id: uuid.UUID | None = None
    position_name: str | None = None
    manager_id: uuid.UUID | None = None
    hire_date: date | None = None  # for tenure-scaled entitlements
    is_hr_approver: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@runtime_checkable
class EmployeeDirectory(Protocol):
    """Interface for the employee master-data lookup."""

    async def get_employee(self, company_id: uuid.UUID, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch employee metadata. Returns None if not found."""
        ...

    async def find_hr_approver(self, company_id: uuid.UUID) -> EmployeeInfo | None:
        """Return the employee who approves leave on behalf of HR, if any."""
        ...

    async def list_employees(self, company_id: uuid.UUID) -> list[EmployeeInfo]:
        """List all employees for a company."""
        ...


class InMemoryEmployeeDirectory:
    """In-memory stub implementation for development and tests."""

    def __init__(self) -> None:
        self._employees: dict[tuple[uuid.UUID, uuid.UUID], EmployeeInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        """Seed an employee for testing."""
        self._employees[(employee.company_id, employee.id)] = employee

    async def get_employee(self, company_id: uuid.UUID, employee_id: uuid.UUID) -> EmployeeInfo | None:
        return self._employees.get((company_id, employee_id))

    async def find_hr_approver(self, company_id: uuid.UUID) -> EmployeeInfo | None:
        for employee in self._employees.values():
            if employee.company_id == company_id and employee.is_hr_approver:
                return employee
        return None

    async def list_employees(self, company_id: uuid.UUID) -> list[EmployeeInfo]:
        return [e for e in self._employees.values() if e.company_id == company_id]


_employee_directory: EmployeeDirectory = InMemoryEmployeeDirectory()


def get_employee_directory() -> EmployeeDirectory:
    """FastAPI dependency for the employee directory."""
    return _employee_directory


def set_employee_directory(directory: EmployeeDirectory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _employee_directory
    _employee_directory = directory
