# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status

from hr_leave.api.deps import ApproverDep, AuthDep, DirectoryDep, RegistryDep, validate_company_scope
from hr_leave.db import SessionDep
from hr_leave.models.enums import LeaveRequestStatus
from hr_leave.schemas.leave_request import (
    ApprovePayload,
    CancelPayload,
    CreateLeaveRequestPayload,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    RejectPayload,
    UpdateLeaveRequestPayload,
)
from hr_leave.services import leave_request as leave_request_service

leave_requests_router = APIRouter(
    prefix="/companies/{company_id}/leave-requests",
    tags=["leave-requests"],
    dependencies=[Depends(validate_company_scope)],
)

approvals_router = APIRouter(
    prefix="/companies/{company_id}/approvals",
    tags=["leave-requests"],
    dependencies=[Depends(validate_company_scope)],
)


@leave_requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_leave_request(
    payload: CreateLeaveRequestPayload,
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
    registry: RegistryDep,
) -> LeaveRequestResponse:
    """Create a leave request, either pending approval or as a draft."""
    return await leave_request_service.create_leave_request(session, auth, payload, directory, registry)


@leave_requests_router.get("", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    session: SessionDep,
    auth: AuthDep,
    status_filter: LeaveRequestStatus | None = Query(default=None, alias="status"),
    employee_id: uuid.UUID | None = Query(default=None),
    leave_type_id: uuid.UUID | None = Query(default=None),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests with optional filters."""
    return await leave_request_service.list_leave_requests(
        session,
        auth.company_id,
        status_filter.value if status_filter else None,
        employee_id,
        leave_type_id,
        start,
        end,
        offset,
        limit,
    )


@leave_requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Get a single leave request."""
    return await leave_request_service.get_leave_request(session, auth.company_id, request_id)


@leave_requests_router.patch("/{request_id}", response_model=LeaveRequestResponse)
async def update_leave_request(
    request_id: uuid.UUID,
    payload: UpdateLeaveRequestPayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Edit a draft leave request."""
    return await leave_request_service.update_leave_request(session, auth, request_id, payload)


@leave_requests_router.post("/{request_id}/submit", response_model=LeaveRequestResponse)
async def submit_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
    registry: RegistryDep,
) -> LeaveRequestResponse:
    """Submit a draft for approval."""
    return await leave_request_service.submit_leave_request(session, auth, request_id, directory, registry)


@leave_requests_router.post("/{request_id}/approve", response_model=LeaveRequestResponse)
async def approve_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: ApproverDep,
    payload: ApprovePayload | None = None,
) -> LeaveRequestResponse:
    """Approve the current approval step."""
    return await leave_request_service.approve_leave_request(session, auth, request_id, payload)


@leave_requests_router.post("/{request_id}/reject", response_model=LeaveRequestResponse)
async def reject_leave_request(
    request_id: uuid.UUID,
    payload: RejectPayload,
    session: SessionDep,
    auth: ApproverDep,
) -> LeaveRequestResponse:
    """Reject the request at the current approval step."""
    return await leave_request_service.reject_leave_request(session, auth, request_id, payload)


@leave_requests_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave_request(
    request_id: uuid.UUID,
    payload: CancelPayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Cancel one's own pending or approved request."""
    return await leave_request_service.cancel_leave_request(session, auth, request_id, payload)


@leave_requests_router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> Response:
    """Delete a draft leave request."""
    await leave_request_service.delete_leave_request(session, auth, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@approvals_router.get("/pending", response_model=LeaveRequestListResponse)
async def list_pending_approvals(
    session: SessionDep,
    auth: ApproverDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """Requests waiting on the caller's approval."""
    return await leave_request_service.list_pending_approvals(session, auth, offset, limit)
