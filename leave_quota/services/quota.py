"""Monthly quota rules.

Every leave type maps to at most one bucket. Full-day and half-day leave are
two granularities of the same paid allowance, so once either has been used in
a month the other is closed for that month, whatever its own balance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from leave_quota.models.enums import LeaveBucket, LeaveType
from leave_quota.schemas.balance import RemainingAllowance

if TYPE_CHECKING:
    from leave_quota.schemas.balance import LeaveBalanceSnapshot, QuotaBucket, ShortBucket

LEAVE_TYPE_BUCKETS: dict[LeaveType, LeaveBucket | None] = {
    LeaveType.SICK_FULL: LeaveBucket.FULL_DAY,
    LeaveType.CASUAL_FULL: LeaveBucket.FULL_DAY,
    LeaveType.SICK_HALF: LeaveBucket.HALF_DAY,
    LeaveType.CASUAL_HALF: LeaveBucket.HALF_DAY,
    LeaveType.SHORT: LeaveBucket.SHORT,
    LeaveType.UNPAID: None,
    LeaveType.OTHER: None,
}

# The bucket whose usage closes the key bucket for the rest of the month.
EXCLUSIVE_BUCKETS: dict[LeaveBucket, LeaveBucket] = {
    LeaveBucket.FULL_DAY: LeaveBucket.HALF_DAY,
    LeaveBucket.HALF_DAY: LeaveBucket.FULL_DAY,
}


def bucket_for(leave_type: LeaveType | str) -> LeaveBucket | None:
    """Return the bucket a leave type draws from, or None if it is not quota-tracked."""
    try:
        resolved = LeaveType(leave_type)
    except ValueError:
        return None
    return LEAVE_TYPE_BUCKETS[resolved]


def _bucket(balance: LeaveBalanceSnapshot, bucket: LeaveBucket) -> QuotaBucket | ShortBucket:
    return getattr(balance, bucket.value)


def _is_excluded(balance: LeaveBalanceSnapshot, bucket: LeaveBucket) -> bool:
    excluded_by = EXCLUSIVE_BUCKETS.get(bucket)
    return excluded_by is not None and _bucket(balance, excluded_by).used > 0


def bucket_has_room(balance: LeaveBalanceSnapshot, bucket: LeaveBucket) -> bool:
    """Whether one more unit of ``bucket`` fits in ``balance``."""
    if _is_excluded(balance, bucket):
        return False
    state = _bucket(balance, bucket)
    return state.used < state.allowance


def has_quota(balance: LeaveBalanceSnapshot, leave_type: LeaveType | str) -> bool:
    """Decide whether a leave of ``leave_type`` is within this month's quota.

    Unpaid and other leave are never limited.
    """
    bucket = bucket_for(leave_type)
    if bucket is None:
        return True
    return bucket_has_room(balance, bucket)


def remaining_allowance(balance: LeaveBalanceSnapshot) -> RemainingAllowance:
    """Units still grantable per bucket."""
    remaining: dict[str, int] = {}
    for bucket in LeaveBucket:
        state = _bucket(balance, bucket)
        remaining[bucket.value] = 0 if _is_excluded(balance, bucket) else max(0, state.allowance - state.used)
    return RemainingAllowance(**remaining)
