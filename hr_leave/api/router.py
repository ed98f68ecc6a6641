from fastapi import APIRouter

from hr_leave.api.entitlements import employee_entitlements_router, entitlements_router
from hr_leave.api.leave_requests import approvals_router, leave_requests_router

api_router = APIRouter()
api_router.include_router(leave_requests_router)
api_router.include_router(approvals_router)
api_router.include_router(employee_entitlements_router)
api_router.include_router(entitlements_router)
