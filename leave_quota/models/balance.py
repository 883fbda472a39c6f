# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_quota.models.base import TimestampMixin, UUIDBase


class LeaveBalance(UUIDBase, TimestampMixin, table=True):
    """One employee's leave allowance and usage for one calendar month.

    ``month`` is zero-based (January is 0). Carry-forward columns are written
    once at creation and never recomputed; only the ``*_used`` columns change
    afterwards, through atomic increments.
    """

    __tablename__ = "leave_balance"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "month", "year", name="uq_leave_balance_employee_period"),
        sa.CheckConstraint("month >= 0 AND month <= 11", name="ck_leave_balance_month"),
    )

    employee_id: uuid.UUID = Field(index=True)
    month: int
    year: int
    full_day_quota: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
    full_day_used: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    full_day_carried_forward: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    half_day_quota: int = Field(default=2, sa_column_kwargs={"server_default": "2"})
    half_day_used: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    half_day_carried_forward: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    short_quota: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
    short_used: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
