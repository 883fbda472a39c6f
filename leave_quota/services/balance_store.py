"""Persistence for monthly leave balances.

The resolver and the usage updater only talk to a ``BalanceStore``. Every
method is a single atomic storage operation: creation is insert-if-absent on
the (employee, month, year) key and usage changes are in-place increments,
never read-modify-write.
"""

# ruff: noqa: TC003
from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_quota.models.balance import LeaveBalance
from leave_quota.models.enums import LeaveBucket
from leave_quota.schemas.balance import LeaveBalanceSnapshot, QuotaBucket, ShortBucket
from leave_quota.services.period import BalancePeriod
from leave_quota.services.quota import EXCLUSIVE_BUCKETS, bucket_has_room

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

_KEY_COLUMNS = ["employee_id", "month", "year"]


@runtime_checkable
class BalanceStore(Protocol):
    """Storage interface for ``LeaveBalance`` records."""

    async def find(self, employee_id: uuid.UUID, period: BalancePeriod) -> LeaveBalanceSnapshot | None:
        """Return the balance for the period, or None if it was never created."""
        ...

    async def insert_if_absent(self, balance: LeaveBalanceSnapshot) -> tuple[LeaveBalanceSnapshot, bool]:
        """Persist ``balance`` unless its key exists.

        Returns the stored record and whether this call created it.
        """
        ...

    async def increment_used(
        self, employee_id: uuid.UUID, period: BalancePeriod, bucket: LeaveBucket, delta: int
    ) -> bool:
        """Add ``delta`` to the bucket's usage. Returns False if no record matched."""
        ...

    async def increment_if_room(self, employee_id: uuid.UUID, period: BalancePeriod, bucket: LeaveBucket) -> bool:
        """Add one unit of usage only if the quota rules allow it. Returns whether it was added."""
        ...

    async def list_for_employee(self, employee_id: uuid.UUID) -> list[LeaveBalanceSnapshot]:
        """All records for an employee, newest period first."""
        ...


# ---------------------------------------------------------------------------
# SQL store
# ---------------------------------------------------------------------------


def snapshot_from_model(row: LeaveBalance) -> LeaveBalanceSnapshot:
    """Map a ``LeaveBalance`` row to its immutable snapshot."""
    return LeaveBalanceSnapshot(
        employee_id=row.employee_id,
        month=row.month,
        year=row.year,
        full_day=QuotaBucket(
            quota=row.full_day_quota,
            used=row.full_day_used,
            carried_forward=row.full_day_carried_forward,
        ),
        half_day=QuotaBucket(
            quota=row.half_day_quota,
            used=row.half_day_used,
            carried_forward=row.half_day_carried_forward,
        ),
        short=ShortBucket(quota=row.short_quota, used=row.short_used),
    )


def _row_values(balance: LeaveBalanceSnapshot) -> dict[str, Any]:
    return {
        "id": uuid.uuid4(),
        "employee_id": balance.employee_id,
        "month": balance.month,
        "year": balance.year,
        "full_day_quota": balance.full_day.quota,
        "full_day_used": balance.full_day.used,
        "full_day_carried_forward": balance.full_day.carried_forward,
        "half_day_quota": balance.half_day.quota,
        "half_day_used": balance.half_day.used,
        "half_day_carried_forward": balance.half_day.carried_forward,
        "short_quota": balance.short.quota,
        "short_used": balance.short.used,
    }


def _used_column(bucket: LeaveBucket) -> sa.ColumnElement[int]:
    return col(getattr(LeaveBalance, f"{bucket.value}_used"))


def _room_condition(bucket: LeaveBucket) -> sa.ColumnElement[bool]:
    """SQL form of ``bucket_has_room`` for a conditional UPDATE."""
    if bucket is LeaveBucket.SHORT:
        return col(LeaveBalance.short_used) < col(LeaveBalance.short_quota)
    quota = col(getattr(LeaveBalance, f"{bucket.value}_quota"))
    carried = col(getattr(LeaveBalance, f"{bucket.value}_carried_forward"))
    return sa.and_(
        _used_column(bucket) < quota + carried,
        _used_column(EXCLUSIVE_BUCKETS[bucket]) <= 0,
    )


class SqlBalanceStore:
    """``BalanceStore`` on an async SQLAlchemy session.

    Writes are flushed but not committed; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _key_filter(self, employee_id: uuid.UUID, period: BalancePeriod) -> list[sa.ColumnElement[bool]]:
        return [
            col(LeaveBalance.employee_id) == employee_id,
            col(LeaveBalance.month) == period.month,
            col(LeaveBalance.year) == period.year,
        ]

    async def find(self, employee_id: uuid.UUID, period: BalancePeriod) -> LeaveBalanceSnapshot | None:
        result = await self._session.execute(
            sa.select(LeaveBalance)
            .where(*self._key_filter(employee_id, period))
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return snapshot_from_model(row) if row is not None else None

    async def insert_if_absent(self, balance: LeaveBalanceSnapshot) -> tuple[LeaveBalanceSnapshot, bool]:
        period = BalancePeriod(balance.month, balance.year)
        values = _row_values(balance)
        dialect = self._session.get_bind().dialect.name

        if dialect in ("postgresql", "sqlite"):
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = insert(LeaveBalance.__table__).values(**values).on_conflict_do_nothing(index_elements=_KEY_COLUMNS)  # type: ignore[arg-type]
            result = await self._session.execute(stmt)
            created = result.rowcount == 1  # type: ignore[attr-defined]
        else:
            try:
                async with self._session.begin_nested():
                    await self._session.execute(sa.insert(LeaveBalance.__table__).values(**values))  # type: ignore[arg-type]
                created = True
            except IntegrityError:
                created = False  # Lost the race; the other writer's row stands.

        stored = await self.find(balance.employee_id, period)
        if stored is None:
            msg = f"Balance for {balance.employee_id} {period} vanished after insert"
            raise RuntimeError(msg)
        return stored, created

    async def increment_used(
        self, employee_id: uuid.UUID, period: BalancePeriod, bucket: LeaveBucket, delta: int
    ) -> bool:
        used = _used_column(bucket)
        result = await self._session.execute(
            sa.update(LeaveBalance)
            .where(*self._key_filter(employee_id, period))
            .values({used: used + delta})
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def increment_if_room(self, employee_id: uuid.UUID, period: BalancePeriod, bucket: LeaveBucket) -> bool:
        used = _used_column(bucket)
        result = await self._session.execute(
            sa.update(LeaveBalance)
            .where(*self._key_filter(employee_id, period), _room_condition(bucket))
            .values({used: used + 1})
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def list_for_employee(self, employee_id: uuid.UUID) -> list[LeaveBalanceSnapshot]:
        result = await self._session.execute(
            sa.select(LeaveBalance)
            .where(col(LeaveBalance.employee_id) == employee_id)
            .order_by(col(LeaveBalance.year).desc(), col(LeaveBalance.month).desc())
            .execution_options(populate_existing=True)
        )
        return [snapshot_from_model(row) for row in result.scalars().all()]


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryBalanceStore:
    """In-memory implementation for development and tests.

    Each method yields to the event loop once, like a database round trip,
    and then mutates without awaiting, so it is atomic on a single loop.
    """

    def __init__(self) -> None:
        self._balances: dict[tuple[uuid.UUID, int, int], LeaveBalanceSnapshot] = {}

    def seed(self, balance: LeaveBalanceSnapshot) -> None:
        """Store a balance directly, replacing any existing record."""
        self._balances[(balance.employee_id, balance.month, balance.year)] = balance

    def __len__(self) -> int:
        return len(self._balances)

    async def find(self, employee_id: uuid.UUID, period: BalancePeriod) -> LeaveBalanceSnapshot | None:
        await asyncio.sleep(0)
        return self._balances.get((employee_id, period.month, period.year))

    async def insert_if_absent(self, balance: LeaveBalanceSnapshot) -> tuple[LeaveBalanceSnapshot, bool]:
        await asyncio.sleep(0)
        key = (balance.employee_id, balance.month, balance.year)
        existing = self._balances.get(key)
        if existing is not None:
            return existing, False
        self._balances[key] = balance
        return balance, True

    async def increment_used(
        self, employee_id: uuid.UUID, period: BalancePeriod, bucket: LeaveBucket, delta: int
    ) -> bool:
        await asyncio.sleep(0)
        key = (employee_id, period.month, period.year)
        balance = self._balances.get(key)
        if balance is None:
            return False
        self._balances[key] = _with_used(balance, bucket, delta)
        return True

    async def increment_if_room(self, employee_id: uuid.UUID, period: BalancePeriod, bucket: LeaveBucket) -> bool:
        await asyncio.sleep(0)
        key = (employee_id, period.month, period.year)
        balance = self._balances.get(key)
        if balance is None or not bucket_has_room(balance, bucket):
            return False
        self._balances[key] = _with_used(balance, bucket, 1)
        return True

    async def list_for_employee(self, employee_id: uuid.UUID) -> list[LeaveBalanceSnapshot]:
        await asyncio.sleep(0)
        items = [b for b in self._balances.values() if b.employee_id == employee_id]
        return sorted(items, key=lambda b: (b.year, b.month), reverse=True)


def _with_used(balance: LeaveBalanceSnapshot, bucket: LeaveBucket, delta: int) -> LeaveBalanceSnapshot:
    state = getattr(balance, bucket.value)
    return balance.model_copy(update={bucket.value: state.model_copy(update={"used": state.used + delta})})
