from fastapi import APIRouter

from app.api.accruals import accrual_router
from app.api.balances import adjustment_router, employee_balance_router
from app.api.employees import employees_router
from app.api.holidays import holidays_router
from app.api.leave_types import leave_types_router
from app.api.policies import agreements_router
from app.api.policies import router as policies_router
from app.api.requests import requests_router

api_router = APIRouter()
api_router.include_router(policies_router)
api_router.include_router(agreements_router)
api_router.include_router(leave_types_router)
api_router.include_router(employee_balance_router)
api_router.include_router(adjustment_router)
api_router.include_router(requests_router)
api_router.include_router(accrual_router)
api_router.include_router(holidays_router)
api_router.include_router(employees_router)
