# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query

from leave_quota.api.deps import require_self_or_approver
from leave_quota.db import SessionDep
from leave_quota.schemas.balance import BalanceHistoryResponse, BalanceResponse
from leave_quota.services import balance as balance_service
from leave_quota.services.balance_store import SqlBalanceStore

employee_balance_router = APIRouter(
    prefix="/employees/{employee_id}/balances",
    tags=["balances"],
    dependencies=[Depends(require_self_or_approver)],
)


@employee_balance_router.get("", response_model=BalanceResponse)
async def get_monthly_balance(
    employee_id: uuid.UUID,
    session: SessionDep,
    on: date | None = Query(default=None, description="Any day of the month to read. Defaults to today."),
) -> BalanceResponse:
    """Get (creating on first access) the employee's balance for a month."""
    response = await balance_service.get_monthly_balance(
        SqlBalanceStore(session), employee_id, on if on is not None else date.today()
    )
    await session.commit()
    return response


@employee_balance_router.get("/history", response_model=BalanceHistoryResponse)
async def get_balance_history(
    employee_id: uuid.UUID,
    session: SessionDep,
) -> BalanceHistoryResponse:
    """List every monthly balance recorded for the employee."""
    return await balance_service.get_balance_history(SqlBalanceStore(session), employee_id)
