# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from leave_quota.api.deps import AuthDep
from leave_quota.db import SessionDep
from leave_quota.schemas.leave_request import (
    DecisionPayload,
    DeleteLeaveResponse,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    SubmitLeavePayload,
)
from leave_quota.services import leave_request as leave_service

leave_requests_router = APIRouter(prefix="/leave-requests", tags=["leave-requests"])


@leave_requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_leave_request(
    payload: SubmitLeavePayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Submit a new leave request."""
    return await leave_service.submit_leave_request(session, auth, payload)


@leave_requests_router.get("", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    session: SessionDep,
    auth: AuthDep,
    status_filter: str | None = Query(default=None, alias="status"),
    employee_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests with optional filters."""
    return await leave_service.list_leave_requests(session, auth, status_filter, employee_id, offset, limit)


@leave_requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Get a single leave request."""
    return await leave_service.get_leave_request(session, auth, request_id)


@leave_requests_router.post("/{request_id}/decision", response_model=LeaveRequestResponse)
async def decide_leave_request(
    request_id: uuid.UUID,
    payload: DecisionPayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Approve or reject a pending leave request (HR or super admin)."""
    return await leave_service.decide_leave_request(session, auth, request_id, payload)


@leave_requests_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Cancel a leave request."""
    return await leave_service.cancel_leave_request(session, auth, request_id)


@leave_requests_router.delete("/{request_id}", response_model=DeleteLeaveResponse)
async def delete_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> DeleteLeaveResponse:
    """Delete a leave request."""
    return await leave_service.delete_leave_request(session, auth, request_id)
