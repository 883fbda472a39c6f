# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Balance snapshots
# ---------------------------------------------------------------------------


class QuotaBucket(BaseModel):
    """A bucket whose unused allowance rolls into the next month."""

    model_config = ConfigDict(frozen=True)

    quota: int
    used: int = 0
    carried_forward: int = 0

    @property
    def allowance(self) -> int:
        return self.quota + self.carried_forward


class ShortBucket(BaseModel):
    """Short-leave bucket. Never carries forward."""

    model_config = ConfigDict(frozen=True)

    quota: int
    used: int = 0

    @property
    def allowance(self) -> int:
        return self.quota


class LeaveBalanceSnapshot(BaseModel):
    """Immutable view of one employee's balance for one month (month is 0-11)."""

    model_config = ConfigDict(frozen=True)

    employee_id: uuid.UUID
    month: int = Field(ge=0, le=11)
    year: int
    full_day: QuotaBucket
    half_day: QuotaBucket
    short: ShortBucket


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RemainingAllowance(BaseModel):
    """Leaves still grantable per bucket, with full/half exclusion applied."""

    full_day: int
    half_day: int
    short: int


class BalanceResponse(LeaveBalanceSnapshot):
    """A monthly balance together with what is left of it."""

    remaining: RemainingAllowance


class BalanceHistoryResponse(BaseModel):
    """All monthly balances recorded for an employee, newest first."""

    items: list[LeaveBalanceSnapshot]
    total: int
