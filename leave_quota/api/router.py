from fastapi import APIRouter

from leave_quota.api.balances import employee_balance_router
from leave_quota.api.leave_requests import leave_requests_router

api_router = APIRouter()
api_router.include_router(employee_balance_router)
api_router.include_router(leave_requests_router)
