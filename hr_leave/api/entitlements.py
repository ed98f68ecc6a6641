# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from hr_leave.api.deps import AdminDep, AuthDep, DirectoryDep, RegistryDep, validate_company_scope
from hr_leave.db import SessionDep
from hr_leave.exceptions import InvalidActor
from hr_leave.schemas.entitlement import (
    CarryOverRunPayload,
    CarryOverRunResponse,
    CreateEntitlementPayload,
    EntitlementListResponse,
    EntitlementResponse,
    InitialEntitlementsPayload,
)
from hr_leave.services import entitlement as entitlement_service
from hr_leave.services.carryover import run_carryover_processing

employee_entitlements_router = APIRouter(
    prefix="/companies/{company_id}/employees/{employee_id}/entitlements",
    tags=["entitlements"],
    dependencies=[Depends(validate_company_scope)],
)

entitlements_router = APIRouter(
    prefix="/companies/{company_id}/entitlements",
    tags=["entitlements"],
    dependencies=[Depends(validate_company_scope)],
)


@employee_entitlements_router.get("", response_model=EntitlementListResponse)
async def list_employee_entitlements(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=2000, le=2100),
) -> EntitlementListResponse:
    """List an employee's leave balances, optionally for one leave year."""
    if auth.user_id != employee_id and not auth.can_approve:
        raise InvalidActor("Employees can only view their own entitlements")
    return await entitlement_service.list_entitlements(session, auth.company_id, employee_id, year)


@entitlements_router.post("", response_model=EntitlementResponse, status_code=status.HTTP_201_CREATED)
async def create_entitlement(
    payload: CreateEntitlementPayload,
    session: SessionDep,
    auth: AdminDep,
    directory: DirectoryDep,
    registry: RegistryDep,
) -> EntitlementResponse:
    """Grant a leave entitlement directly (admin only)."""
    return await entitlement_service.create_entitlement(session, auth, payload, directory, registry)


@entitlements_router.post("/initial", response_model=EntitlementListResponse, status_code=status.HTTP_201_CREATED)
async def create_initial_entitlements(
    payload: InitialEntitlementsPayload,
    session: SessionDep,
    auth: AdminDep,
    directory: DirectoryDep,
    registry: RegistryDep,
) -> EntitlementListResponse:
    """Create an employee's onboarding entitlements (admin only)."""
    return await entitlement_service.grant_initial_entitlements(session, auth, payload, directory, registry)


@entitlements_router.post("/carryover", response_model=CarryOverRunResponse)
async def trigger_carryover(
    payload: CarryOverRunPayload,
    session: SessionDep,
    auth: AdminDep,
    registry: RegistryDep,
) -> CarryOverRunResponse:
    """Run year-end carry-over for this company (admin only)."""
    result = await run_carryover_processing(session, registry, payload.from_year, company_id=auth.company_id)
    return CarryOverRunResponse(
        from_year=result.from_year,
        processed=result.processed,
        skipped=result.skipped,
        errors=result.errors,
    )
