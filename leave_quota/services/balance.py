"""Monthly balance resolution and usage bookkeeping.

A balance is created lazily the first time its month is touched. Its
carry-forward is taken from the immediately preceding month at that moment
and never revisited, even if the preceding month changes later.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING

from leave_quota.schemas.balance import (
    BalanceHistoryResponse,
    BalanceResponse,
    LeaveBalanceSnapshot,
    QuotaBucket,
    ShortBucket,
)
from leave_quota.services.period import BalancePeriod, coerce_reference_date
from leave_quota.services.quota import bucket_for, remaining_allowance

if TYPE_CHECKING:
    from leave_quota.models.enums import LeaveType
    from leave_quota.services.balance_store import BalanceStore

logger = logging.getLogger(__name__)

FULL_DAY_QUOTA = 1
HALF_DAY_QUOTA = 2
SHORT_QUOTA = 1


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _unused(bucket: QuotaBucket) -> int:
    return max(0, bucket.quota + bucket.carried_forward - bucket.used)


def opening_balance(
    employee_id: uuid.UUID,
    period: BalancePeriod,
    previous: LeaveBalanceSnapshot | None,
) -> LeaveBalanceSnapshot:
    """Build the first record of a month from the preceding month's record, if any."""
    carry_full = _unused(previous.full_day) if previous is not None else 0
    carry_half = _unused(previous.half_day) if previous is not None else 0
    return LeaveBalanceSnapshot(
        employee_id=employee_id,
        month=period.month,
        year=period.year,
        full_day=QuotaBucket(quota=FULL_DAY_QUOTA, used=0, carried_forward=carry_full),
        half_day=QuotaBucket(quota=HALF_DAY_QUOTA, used=0, carried_forward=carry_half),
        short=ShortBucket(quota=SHORT_QUOTA, used=0),
    )


async def _resolve(
    store: BalanceStore,
    employee_id: uuid.UUID,
    reference_date: object,
) -> tuple[LeaveBalanceSnapshot, bool]:
    """Resolve the balance and report whether this call created it."""
    period = BalancePeriod.containing(coerce_reference_date(reference_date))

    existing = await store.find(employee_id, period)
    if existing is not None:
        return existing, False

    previous = await store.find(employee_id, period.previous())
    balance, created = await store.insert_if_absent(opening_balance(employee_id, period, previous))
    if created:
        logger.debug(
            "Created leave balance for employee %s %s (carry full=%d half=%d)",
            employee_id,
            period,
            balance.full_day.carried_forward,
            balance.half_day.carried_forward,
        )
    return balance, created


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def resolve_balance(
    store: BalanceStore,
    employee_id: uuid.UUID,
    reference_date: object,
) -> LeaveBalanceSnapshot:
    """Return the employee's balance for the month containing ``reference_date``.

    Creates the record on first access. Raises ``InvalidDateError`` if the
    date cannot be interpreted.
    """
    balance, _ = await _resolve(store, employee_id, reference_date)
    return balance


async def apply_usage(
    store: BalanceStore,
    employee_id: uuid.UUID,
    leave_type: LeaveType | str,
    reference_date: object,
    delta: int,
) -> None:
    """Record one leave taken (+1) or rolled back (-1) against its month.

    Unpaid and other leave types are not tracked and leave the balance
    untouched. The change is a single storage-side increment and is not
    clamped; quota is enforced before a request is accepted, not here.
    """
    if delta not in (1, -1):
        msg = f"delta must be +1 or -1, got {delta}"
        raise ValueError(msg)

    balance, created = await _resolve(store, employee_id, reference_date)
    bucket = bucket_for(leave_type)
    if bucket is None:
        return

    period = BalancePeriod(balance.month, balance.year)
    if delta < 0 and created:
        logger.warning(
            "Rolling back %s usage for employee %s in %s, which had no recorded activity",
            leave_type,
            employee_id,
            period,
        )
    await store.increment_used(employee_id, period, bucket, delta)


async def consume_quota(
    store: BalanceStore,
    employee_id: uuid.UUID,
    leave_type: LeaveType | str,
    reference_date: object,
) -> bool:
    """Check quota and record one unit of usage as a single atomic step.

    Returns False, changing nothing, when the month has no room for the leave.
    """
    balance, _ = await _resolve(store, employee_id, reference_date)
    bucket = bucket_for(leave_type)
    if bucket is None:
        return True

    period = BalancePeriod(balance.month, balance.year)
    consumed = await store.increment_if_room(employee_id, period, bucket)
    if not consumed:
        logger.info("Quota exhausted for %s: employee %s in %s", leave_type, employee_id, period)
    return consumed


def build_balance_response(balance: LeaveBalanceSnapshot) -> BalanceResponse:
    """Attach the remaining allowance to a snapshot."""
    return BalanceResponse(**balance.model_dump(), remaining=remaining_allowance(balance))


async def get_balance_history(store: BalanceStore, employee_id: uuid.UUID) -> BalanceHistoryResponse:
    """All monthly balances recorded for an employee."""
    items = await store.list_for_employee(employee_id)
    return BalanceHistoryResponse(items=items, total=len(items))


async def get_monthly_balance(
    store: BalanceStore,
    employee_id: uuid.UUID,
    on: date,
) -> BalanceResponse:
    """Resolve the month containing ``on`` and describe what is left of it."""
    return build_balance_response(await resolve_balance(store, employee_id, on))
