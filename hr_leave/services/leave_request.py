# ruff: noqa: TC003
"""Leave request lifecycle.

States run ``draft -> pending -> {approved, rejected, cancelled}`` with
``approved -> cancelled`` also allowed. Every public operation below is one
transaction: it locks what it mutates, flushes, writes an audit entry and
commits before returning.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from hr_leave.config import get_settings
from hr_leave.exceptions import Conflict, InvalidActor, InvalidTransition, NotFound, StepNotFound
from hr_leave.models.enums import (
    ApprovalStepStatus,
    AuditAction,
    AuditEntityType,
    HalfDayPeriod,
    LeaveRequestStatus,
)
from hr_leave.models.request import LeaveRequest
from hr_leave.schemas.leave_request import LeaveRequestListResponse, LeaveRequestResponse
from hr_leave.services import entitlement as ledger
from hr_leave.services.approval import (
    build_approval_chain,
    dump_chain,
    find_step,
    is_final_level,
    load_chain,
    pending_step_for,
)
from hr_leave.services.audit import model_to_audit_dict, write_audit_log
from hr_leave.services.calendar import count_leave_days, leave_year_for
from hr_leave.services.numbering import generate_request_number
from hr_leave.services.validator import LeaveProposal, check_leave_type, validate_leave_request

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_leave.schemas.auth import AuthContext
    from hr_leave.schemas.leave_request import (
        ApprovalStep,
        ApprovePayload,
        CancelPayload,
        CreateLeaveRequestPayload,
        RejectPayload,
        UpdateLeaveRequestPayload,
    )
    from hr_leave.services.employee import EmployeeDirectory, EmployeeInfo
    from hr_leave.services.leave_type import LeaveTypeInfo, LeaveTypeRegistry

logger = logging.getLogger(__name__)

# Roles allowed to file or manage requests on someone else's behalf.
_ON_BEHALF_ROLES = {"hr", "admin"}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_leave_request_response(request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    return LeaveRequestResponse(
        id=request.id,
        company_id=request.company_id,
        request_number=request.request_number,
        employee_id=request.employee_id,
        employee_name=request.employee_name,
        employee_code=request.employee_code,
        department_id=request.department_id,
        department_name=request.department_name,
        position_id=request.position_id,
        position_name=request.position_name,
        leave_type_id=request.leave_type_id,
        leave_type_code=request.leave_type_code,
        leave_type_name=request.leave_type_name,
        start_date=request.start_date,
        end_date=request.end_date,
        is_half_day=request.is_half_day,
        half_day_period=HalfDayPeriod(request.half_day_period) if request.half_day_period else None,
        total_days=request.total_days,
        reason=request.reason,
        contact_during_leave=request.contact_during_leave,
        work_handover_to=request.work_handover_to,
        work_handover_notes=request.work_handover_notes,
        has_certificate=request.has_certificate,
        certificate_url=request.certificate_url,
        certificate_file_name=request.certificate_file_name,
        status=LeaveRequestStatus(request.status),
        submitted_at=request.submitted_at,
        approval_chain=load_chain(request.approval_chain),
        current_approval_level=request.current_approval_level,
        rejected_by=request.rejected_by,
        rejected_at=request.rejected_at,
        rejection_reason=request.rejection_reason,
        cancelled_by=request.cancelled_by,
        cancelled_at=request.cancelled_at,
        cancellation_reason=request.cancellation_reason,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


async def _get_request_or_404(
    session: AsyncSession,
    company_id: uuid.UUID,
    request_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> LeaveRequest:
    """Fetch a request by ID scoped to company. Raises NotFound if absent."""
    query = select(LeaveRequest).where(
        col(LeaveRequest.id) == request_id,
        col(LeaveRequest.company_id) == company_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFound("Leave request not found")
    return request


def _require_owner(auth: AuthContext, request: LeaveRequest, action: str) -> None:
    if auth.user_id != request.employee_id and auth.role not in _ON_BEHALF_ROLES:
        raise InvalidActor(f"Only the requesting employee can {action} this leave request")


async def _require_employee(
    directory: EmployeeDirectory,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
) -> EmployeeInfo:
    employee = await directory.get_employee(company_id, employee_id)
    if employee is None:
        raise NotFound("Employee not found")
    return employee


def _snapshot_employee(request: LeaveRequest, employee: EmployeeInfo) -> None:
    request.employee_name = employee.full_name
    request.employee_code = employee.employee_code
    request.department_id = employee.department_id
    request.department_name = employee.department_name
    request.position_id = employee.position_id
    request.position_name = employee.position_name


def _snapshot_leave_type(request: LeaveRequest, leave_type: LeaveTypeInfo) -> None:
    request.leave_type_id = leave_type.id
    request.leave_type_code = leave_type.code
    request.leave_type_name = leave_type.name


async def _validate_and_reserve(
    session: AsyncSession,
    request: LeaveRequest,
    employee: EmployeeInfo,
    leave_type: LeaveTypeInfo | None,
    directory: EmployeeDirectory,
    *,
    exclude_self: bool,
) -> None:
    """Move a persisted-or-new request into ``pending``.

    1. Lock the ledger row for the request's leave year (paid types only).
    2. Run the validator against that locked snapshot.
    3. Snapshot display fields and build the approval chain.
    4. Reserve the days on the ledger.

    Raises before any mutation when a rule fails.
    """
    leave_year = leave_year_for(request.start_date, get_settings().leave_year_start_month)

    entitlement = None
    if leave_type is not None and leave_type.is_paid:
        entitlement = await ledger.get_entitlement_for_update(
            session, request.company_id, request.employee_id, leave_type.id, leave_year
        )

    violation = await validate_leave_request(
        session,
        leave_type,
        LeaveProposal(
            company_id=request.company_id,
            employee_id=request.employee_id,
            start_date=request.start_date,
            end_date=request.end_date,
            total_days=request.total_days,
            has_certificate=request.has_certificate,
            exclude_request_id=request.id if exclude_self else None,
        ),
        entitlement,
    )
    if violation is not None:
        raise violation.to_error()
    if leave_type is None:
        raise NotFound("Leave type not found")

    _snapshot_employee(request, employee)
    _snapshot_leave_type(request, leave_type)

    chain = await build_approval_chain(employee, request.total_days, directory)
    request.approval_chain = dump_chain(chain)
    request.current_approval_level = 1
    request.status = LeaveRequestStatus.PENDING.value
    request.submitted_at = datetime.now(UTC)
    request.leave_year = leave_year
    request.deducts_balance = leave_type.is_paid

    if request.deducts_balance:
        await ledger.reserve(
            session, request.company_id, request.employee_id, leave_type.id, leave_year, request.total_days
        )


async def _flush_new_request(session: AsyncSession, request: LeaveRequest) -> None:
    session.add(request)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise Conflict(f"Request number {request.request_number} is already taken, please retry") from None


async def _release_reservation(session: AsyncSession, request: LeaveRequest, *, from_used: bool) -> None:
    if not request.deducts_balance or request.leave_year is None:
        return
    move = ledger.return_from_used if from_used else ledger.release
    await move(
        session,
        request.company_id,
        request.employee_id,
        request.leave_type_id,
        request.leave_year,
        request.total_days,
    )


def _require_pending_step(request: LeaveRequest, expected_level: int | None) -> None:
    if request.status != LeaveRequestStatus.PENDING:
        raise InvalidTransition(f"Leave request {request.request_number} is {request.status}, not pending")
    if expected_level is not None and expected_level != request.current_approval_level:
        raise InvalidTransition(
            f"Leave request {request.request_number} is at approval level "
            f"{request.current_approval_level}, not {expected_level}"
        )


def _current_step(request: LeaveRequest, steps: list[ApprovalStep]) -> ApprovalStep:
    level = request.current_approval_level
    step = find_step(steps, level)
    if step is None:
        raise StepNotFound(f"No approval step at level {level} for {request.request_number}")
    if step.status != ApprovalStepStatus.PENDING:
        raise InvalidTransition(f"Approval step {level} of {request.request_number} is already {step.status}")
    return step


def _may_act_on_step(auth: AuthContext, request: LeaveRequest, step: ApprovalStep) -> bool:
    """Requesters never act on their own request; admins may act on any step of anyone else's."""
    if auth.user_id == request.employee_id:
        return False
    if auth.is_admin:
        return True
    if step.approver_id is not None:
        return step.approver_id == auth.user_id
    # Unresolved step: open to anyone holding the matching role.
    return step.approver_role.lower() == auth.role


def _require_step_actor(auth: AuthContext, request: LeaveRequest, step: ApprovalStep) -> None:
    if auth.user_id == request.employee_id:
        raise InvalidActor("Employees cannot approve or reject their own leave request")
    if not _may_act_on_step(auth, request, step):
        raise InvalidActor(
            f"Approval step {step.level} of {request.request_number} is assigned to {step.approver_name}"
        )


async def _finish(
    session: AsyncSession,
    auth: AuthContext,
    request: LeaveRequest,
    action: AuditAction,
    before_dict: dict[str, Any] | None,
    note: str | None = None,
) -> LeaveRequestResponse:
    await session.flush()
    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_REQUEST,
        entity_id=request.id,
        action=action,
        note=note,
        before_json=before_dict,
        after_json=model_to_audit_dict(request),
    )
    await session.commit()
    await session.refresh(request)
    return _build_leave_request_response(request)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateLeaveRequestPayload,
    directory: EmployeeDirectory,
    registry: LeaveTypeRegistry,
) -> LeaveRequestResponse:
    """Create a leave request.

    With ``save_as_draft`` the request is stored as a draft: numbered and
    sized but not validated, chained or reserved. Otherwise it goes straight
    to ``pending`` and reserves its days; a failing rule leaves nothing behind.
    """
    if auth.user_id != payload.employee_id and auth.role not in _ON_BEHALF_ROLES:
        raise InvalidActor("Employees can only create leave requests for themselves")

    employee = await _require_employee(directory, auth.company_id, payload.employee_id)
    leave_type = await registry.get_leave_type(auth.company_id, payload.leave_type_id)

    total_days = await count_leave_days(
        session, auth.company_id, payload.start_date, payload.end_date, payload.is_half_day
    )

    request = LeaveRequest(
        company_id=auth.company_id,
        request_number="",
        employee_id=employee.id,
        leave_type_id=payload.leave_type_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        is_half_day=payload.is_half_day,
        half_day_period=payload.half_day_period.value if payload.half_day_period else None,
        total_days=total_days,
        reason=payload.reason,
        contact_during_leave=payload.contact_during_leave,
        work_handover_to=payload.work_handover_to,
        work_handover_notes=payload.work_handover_notes,
        has_certificate=payload.has_certificate,
        certificate_url=str(payload.certificate_url) if payload.certificate_url else None,
        certificate_file_name=payload.certificate_file_name,
        status=LeaveRequestStatus.DRAFT.value,
        created_by=auth.user_id,
    )

    if payload.save_as_draft:
        violation = check_leave_type(leave_type)
        if violation is not None or leave_type is None:
            raise violation.to_error() if violation else NotFound("Leave type not found")
        _snapshot_employee(request, employee)
        _snapshot_leave_type(request, leave_type)
    else:
        await _validate_and_reserve(session, request, employee, leave_type, directory, exclude_self=False)

    request.request_number = await generate_request_number(session, auth.company_id)
    await _flush_new_request(session, request)

    response = await _finish(session, auth, request, AuditAction.CREATE, None)
    logger.info(
        "Leave request %s created for employee=%s status=%s days=%s",
        response.request_number,
        response.employee_id,
        response.status,
        response.total_days,
    )
    return response


async def update_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: UpdateLeaveRequestPayload,
) -> LeaveRequestResponse:
    """Edit a draft. ``total_days`` is recomputed from the resulting period."""
    request = await _get_request_or_404(session, auth.company_id, request_id, for_update=True)
    if request.status != LeaveRequestStatus.DRAFT:
        raise InvalidTransition(f"Only draft requests can be edited; {request.request_number} is {request.status}")
    _require_owner(auth, request, "edit")

    before_dict = model_to_audit_dict(request)
    changes = payload.model_dump(exclude_unset=True)

    if "certificate_url" in changes:
        changes["certificate_url"] = str(payload.certificate_url) if payload.certificate_url else None
    if "half_day_period" in changes:
        changes["half_day_period"] = payload.half_day_period.value if payload.half_day_period else None
    if changes.get("is_half_day") is False:
        changes["half_day_period"] = None

    for field, value in changes.items():
        setattr(request, field, value)

    request.total_days = await count_leave_days(
        session, request.company_id, request.start_date, request.end_date, request.is_half_day
    )

    response = await _finish(session, auth, request, AuditAction.UPDATE, before_dict)
    logger.info("Leave request %s updated (%s)", response.request_number, ", ".join(sorted(changes)) or "no changes")
    return response


async def submit_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    directory: EmployeeDirectory,
    registry: LeaveTypeRegistry,
) -> LeaveRequestResponse:
    """Submit a draft for approval: full validation, chain and reservation."""
    request = await _get_request_or_404(session, auth.company_id, request_id, for_update=True)
    if request.status != LeaveRequestStatus.DRAFT:
        raise InvalidTransition(f"Only draft requests can be submitted; {request.request_number} is {request.status}")
    _require_owner(auth, request, "submit")

    before_dict = model_to_audit_dict(request)
    employee = await _require_employee(directory, auth.company_id, request.employee_id)
    leave_type = await registry.get_leave_type(auth.company_id, request.leave_type_id)

    request.total_days = await count_leave_days(
        session, request.company_id, request.start_date, request.end_date, request.is_half_day
    )
    await _validate_and_reserve(session, request, employee, leave_type, directory, exclude_self=True)

    response = await _finish(session, auth, request, AuditAction.SUBMIT, before_dict)
    logger.info("Leave request %s submitted for approval", response.request_number)
    return response


async def approve_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: ApprovePayload | None = None,
) -> LeaveRequestResponse:
    """Approve the step at the current level.

    The final step turns the request ``approved`` and converts the
    reservation into usage; earlier steps only advance the level.
    """
    request = await _get_request_or_404(session, auth.company_id, request_id, for_update=True)
    _require_pending_step(request, payload.level if payload else None)

    steps = load_chain(request.approval_chain)
    level = request.current_approval_level
    step = _current_step(request, steps)
    _require_step_actor(auth, request, step)

    before_dict = model_to_audit_dict(request)
    step.status = ApprovalStepStatus.APPROVED
    step.action_at = datetime.now(UTC)
    step.acted_by = auth.user_id
    step.comments = payload.comments if payload else None
    request.approval_chain = dump_chain(steps)

    final = is_final_level(steps, level)
    if final:
        request.status = LeaveRequestStatus.APPROVED.value
        if request.deducts_balance and request.leave_year is not None:
            await ledger.commit_used(
                session,
                request.company_id,
                request.employee_id,
                request.leave_type_id,
                request.leave_year,
                request.total_days,
            )
    else:
        request.current_approval_level = level + 1

    response = await _finish(session, auth, request, AuditAction.APPROVE, before_dict, note=step.comments)
    logger.info(
        "Leave request %s approved at level %s by %s%s",
        response.request_number,
        level,
        auth.user_id,
        " (final)" if final else "",
    )
    return response


async def reject_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: RejectPayload,
) -> LeaveRequestResponse:
    """Reject at the current level. Later steps stay pending and the reservation is released."""
    request = await _get_request_or_404(session, auth.company_id, request_id, for_update=True)
    _require_pending_step(request, payload.level)

    steps = load_chain(request.approval_chain)
    level = request.current_approval_level
    step = _current_step(request, steps)
    _require_step_actor(auth, request, step)

    before_dict = model_to_audit_dict(request)
    now = datetime.now(UTC)
    step.status = ApprovalStepStatus.REJECTED
    step.action_at = now
    step.acted_by = auth.user_id
    step.comments = payload.reason
    request.approval_chain = dump_chain(steps)

    request.status = LeaveRequestStatus.REJECTED.value
    request.rejected_by = auth.user_id
    request.rejected_at = now
    request.rejection_reason = payload.reason

    await _release_reservation(session, request, from_used=False)

    response = await _finish(session, auth, request, AuditAction.REJECT, before_dict, note=payload.reason)
    logger.info("Leave request %s rejected at level %s by %s", response.request_number, level, auth.user_id)
    return response


async def cancel_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: CancelPayload,
) -> LeaveRequestResponse:
    """Cancel one's own pending or approved request and give the days back."""
    request = await _get_request_or_404(session, auth.company_id, request_id, for_update=True)
    if auth.user_id != request.employee_id:
        raise InvalidActor("Only the requesting employee can cancel this leave request")

    prior_status = request.status
    if prior_status not in (LeaveRequestStatus.PENDING, LeaveRequestStatus.APPROVED):
        raise InvalidTransition(f"Leave request {request.request_number} is {prior_status} and cannot be cancelled")

    before_dict = model_to_audit_dict(request)
    request.status = LeaveRequestStatus.CANCELLED.value
    request.cancelled_by = auth.user_id
    request.cancelled_at = datetime.now(UTC)
    request.cancellation_reason = payload.reason

    await _release_reservation(session, request, from_used=prior_status == LeaveRequestStatus.APPROVED)

    response = await _finish(session, auth, request, AuditAction.CANCEL, before_dict, note=payload.reason)
    logger.info("Leave request %s cancelled by employee (was %s)", response.request_number, prior_status)
    return response


async def delete_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> None:
    """Physically remove a draft. Nothing was reserved, so the ledger is untouched."""
    request = await _get_request_or_404(session, auth.company_id, request_id, for_update=True)
    if request.status != LeaveRequestStatus.DRAFT:
        raise InvalidTransition(f"Only draft requests can be deleted; {request.request_number} is {request.status}")
    _require_owner(auth, request, "delete")

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_REQUEST,
        entity_id=request.id,
        action=AuditAction.DELETE,
        before_json=model_to_audit_dict(request),
    )
    request_number = request.request_number
    await session.delete(request)
    await session.commit()
    logger.info("Draft leave request %s deleted", request_number)


async def get_leave_request(
    session: AsyncSession,
    company_id: uuid.UUID,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Get a single request by ID."""
    request = await _get_request_or_404(session, company_id, request_id)
    return _build_leave_request_response(request)


async def list_leave_requests(
    session: AsyncSession,
    company_id: uuid.UUID,
    status_filter: str | None = None,
    employee_id: uuid.UUID | None = None,
    leave_type_id: uuid.UUID | None = None,
    start: date | None = None,
    end: date | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """List requests with optional filters, ordered by created_at DESC.

    ``start``/``end`` select requests whose period touches that window.
    """
    base_filters = [col(LeaveRequest.company_id) == company_id]

    if status_filter is not None:
        base_filters.append(col(LeaveRequest.status) == status_filter)
    if employee_id is not None:
        base_filters.append(col(LeaveRequest.employee_id) == employee_id)
    if leave_type_id is not None:
        base_filters.append(col(LeaveRequest.leave_type_id) == leave_type_id)
    if start is not None:
        base_filters.append(col(LeaveRequest.end_date) >= start)
    if end is not None:
        base_filters.append(col(LeaveRequest.start_date) <= end)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*base_filters)
        .order_by(col(LeaveRequest.created_at).desc(), col(LeaveRequest.request_number).desc())
        .offset(offset)
        .limit(limit)
    )
    requests = list(result.scalars().all())

    return LeaveRequestListResponse(
        items=[_build_leave_request_response(r) for r in requests],
        total=total,
    )


def _awaits_caller(request: LeaveRequest, auth: AuthContext) -> bool:
    step = pending_step_for(load_chain(request.approval_chain), request.current_approval_level)
    return step is not None and _may_act_on_step(auth, request, step)


async def list_pending_approvals(
    session: AsyncSession,
    auth: AuthContext,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """Pending requests whose current approval step belongs to the caller, oldest submission first."""
    result = await session.execute(
        select(LeaveRequest)
        .where(
            col(LeaveRequest.company_id) == auth.company_id,
            col(LeaveRequest.status) == LeaveRequestStatus.PENDING.value,
        )
        .order_by(col(LeaveRequest.submitted_at), col(LeaveRequest.request_number))
    )
    waiting = [r for r in result.scalars().all() if _awaits_caller(r, auth)]
    page = waiting[offset : offset + limit]
    return LeaveRequestListResponse(
        items=[_build_leave_request_response(r) for r in page],
        total=len(waiting),
    )
