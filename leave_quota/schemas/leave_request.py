# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Literal, Self

from pydantic import BaseModel, Field, model_validator

from leave_quota.models.enums import LeaveStatus, LeaveType

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitLeavePayload(BaseModel):
    """Request body for submitting a new leave request."""

    type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(min_length=1, max_length=2000)
    employee_id: uuid.UUID | None = Field(
        default=None,
        description="Defaults to the caller. Only approvers may file for someone else.",
    )

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must not be before start_date"
            raise ValueError(msg)
        return self


class DecisionPayload(BaseModel):
    """Request body for an approve/reject decision."""

    status: Literal["approved", "rejected"]
    notes: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    employee_id: uuid.UUID
    type: LeaveType
    start_date: date
    end_date: date
    reason: str
    status: LeaveStatus
    submitted_by: uuid.UUID
    approved_by: uuid.UUID | None
    approval_date: datetime | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int


class DeleteLeaveResponse(BaseModel):
    """Confirmation returned after deleting a leave request."""

    id: uuid.UUID
    message: str = "Leave request deleted"
