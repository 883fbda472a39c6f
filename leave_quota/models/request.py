# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leave_quota.models.base import TimestampMixin, UUIDBase
from leave_quota.models.enums import LeaveStatus


class LeaveRequest(UUIDBase, TimestampMixin, table=True):
    """An employee's leave request with its approval workflow state."""

    __tablename__ = "leave_request"
    __table_args__ = (sa.Index("ix_leave_request_employee_status", "employee_id", "status"),)

    employee_id: uuid.UUID = Field(index=True)
    type: str = Field(max_length=50)
    start_date: date
    end_date: date
    reason: str = Field(max_length=2000)
    status: str = Field(
        default=LeaveStatus.PENDING_HR, max_length=50, index=True, sa_column_kwargs={"server_default": "pending_hr"}
    )
    submitted_by: uuid.UUID
    approved_by: uuid.UUID | None = None
    approval_date: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    notes: str | None = Field(default=None, max_length=1000)
