# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, Path, status

from hr_leave.exceptions import AppError
from hr_leave.schemas.auth import AuthContext
from hr_leave.services.employee import EmployeeDirectory, get_employee_directory
from hr_leave.services.leave_type import LeaveTypeRegistry, get_leave_type_registry


async def get_auth_context(
    x_company_id: uuid.UUID = Header(),
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default="employee"),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(company_id=x_company_id, user_id=x_user_id, role=x_role.lower())


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require admin role for the request."""
    if not auth.is_admin:
        raise AppError("Admin access required", status_code=status.HTTP_403_FORBIDDEN)
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


async def require_approver(
    auth: AuthDep,
) -> AuthContext:
    """Require a role that may act on approval steps."""
    if not auth.can_approve:
        raise AppError("Approver access required", status_code=status.HTTP_403_FORBIDDEN)
    return auth


ApproverDep = Annotated[AuthContext, Depends(require_approver)]


async def validate_company_scope(
    company_id: uuid.UUID = Path(),
    auth: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Ensure the path company_id matches the auth header company_id."""
    if company_id != auth.company_id:
        raise AppError("Company ID mismatch", status_code=status.HTTP_403_FORBIDDEN)
    return auth


DirectoryDep = Annotated[EmployeeDirectory, Depends(get_employee_directory)]
RegistryDep = Annotated[LeaveTypeRegistry, Depends(get_leave_type_registry)]
