"""Approval chain: an ordered list of steps plus a 1-based level cursor on the request."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter

from hr_leave.config import get_settings
from hr_leave.models.enums import ApprovalStepStatus, ApproverRole
from hr_leave.schemas.leave_request import ApprovalStep

if TYPE_CHECKING:
    from hr_leave.services.employee import EmployeeDirectory, EmployeeInfo

logger = logging.getLogger(__name__)

_chain_adapter: TypeAdapter[list[ApprovalStep]] = TypeAdapter(list[ApprovalStep])

_ROLE_LABELS = {
    ApproverRole.MANAGER: "Manager",
    ApproverRole.HR: "HR",
}


def load_chain(raw: list[dict[str, Any]] | None) -> list[ApprovalStep]:
    """Parse the JSON column into steps ordered by level."""
    steps = _chain_adapter.validate_python(raw or [])
    return sorted(steps, key=lambda s: s.level)


def dump_chain(steps: list[ApprovalStep]) -> list[dict[str, Any]]:
    """Serialize steps for the JSON column. Always returns a new list so the ORM sees a change."""
    return _chain_adapter.dump_python(steps, mode="json")


def find_step(steps: list[ApprovalStep], level: int) -> ApprovalStep | None:
    return next((s for s in steps if s.level == level), None)


def is_final_level(steps: list[ApprovalStep], level: int) -> bool:
    return level >= len(steps)


async def _resolve_role(
    role: str,
    employee: EmployeeInfo,
    directory: EmployeeDirectory,
) -> ApprovalStep | None:
    if role == ApproverRole.MANAGER:
        if employee.manager_id is None:
            return ApprovalStep(level=1, approver_name="Manager", approver_role=_ROLE_LABELS[ApproverRole.MANAGER])
        manager = await directory.get_employee(employee.company_id, employee.manager_id)
        return ApprovalStep(
            level=1,
            approver_id=employee.manager_id,
            approver_name=manager.full_name if manager else "Manager",
            approver_role=_ROLE_LABELS[ApproverRole.MANAGER],
        )
    if role == ApproverRole.HR:
        hr = await directory.find_hr_approver(employee.company_id)
        return ApprovalStep(
            level=1,
            approver_id=hr.id if hr else None,
            approver_name=hr.full_name if hr else "Human Resources",
            approver_role=_ROLE_LABELS[ApproverRole.HR],
        )
    logger.warning("Unknown approval level role %r skipped", role)
    return None


async def build_approval_chain(
    employee: EmployeeInfo,
    total_days: float,
    directory: EmployeeDirectory,
) -> list[ApprovalStep]:
    """Build the configured chain for a request, levels numbered from 1.

    A step whose role cannot be pinned to a person keeps ``approver_id`` empty
    and may be acted on by anyone holding an approver role. The HR step is
    skipped for short requests when ``hr_approval_min_days`` is set.
    """
    settings = get_settings()
    steps: list[ApprovalStep] = []
    for role in settings.approval_levels:
        if (
            role == ApproverRole.HR
            and settings.hr_approval_min_days is not None
            and total_days <= settings.hr_approval_min_days
        ):
            continue
        step = await _resolve_role(role, employee, directory)
        if step is None:
            continue
        step.level = len(steps) + 1
        steps.append(step)

    if not steps:
        # Every configured role was skipped; fall back to a single manager step.
        steps.append(ApprovalStep(level=1, approver_name="Manager", approver_role=_ROLE_LABELS[ApproverRole.MANAGER]))
    return steps


def pending_step_for(steps: list[ApprovalStep], level: int) -> ApprovalStep | None:
    """The step at ``level`` if it is still awaiting action."""
    step = find_step(steps, level)
    if step is None or step.status != ApprovalStepStatus.PENDING:
        return None
    return step
