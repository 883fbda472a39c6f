# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from leave_quota.config import get_settings
from leave_quota.exceptions import AppError, QuotaExceededError
from leave_quota.models.enums import AuditAction, LeaveStatus, LeaveType, Role
from leave_quota.models.request import LeaveRequest
from leave_quota.schemas.leave_request import (
    DeleteLeaveResponse,
    LeaveRequestListResponse,
    LeaveRequestResponse,
)
from leave_quota.services.audit import model_to_audit_dict, write_audit_log
from leave_quota.services.balance import apply_usage, consume_quota, resolve_balance
from leave_quota.services.balance_store import SqlBalanceStore
from leave_quota.services.quota import bucket_for, has_quota

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_quota.schemas.auth import AuthContext
    from leave_quota.schemas.leave_request import DecisionPayload, SubmitLeavePayload

PENDING_STATUSES = (LeaveStatus.PENDING_HR.value, LeaveStatus.PENDING_ADMIN.value)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_leave_response(leave: LeaveRequest) -> LeaveRequestResponse:
    """Map a leave request model to its response schema."""
    return LeaveRequestResponse(
        id=leave.id,
        employee_id=leave.employee_id,
        type=LeaveType(leave.type),
        start_date=leave.start_date,
        end_date=leave.end_date,
        reason=leave.reason,
        status=LeaveStatus(leave.status),
        submitted_by=leave.submitted_by,
        approved_by=leave.approved_by,
        approval_date=leave.approval_date,
        notes=leave.notes,
        created_at=leave.created_at,
        updated_at=leave.updated_at,
    )


async def _get_leave_or_404(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
    """Fetch a leave request by ID. Raises 404 if not found."""
    result = await session.execute(select(LeaveRequest).where(col(LeaveRequest.id) == request_id))
    leave = result.scalar_one_or_none()
    if leave is None:
        raise AppError("Leave request not found", status_code=404)
    return leave


def _ensure_owner_or_approver(auth: AuthContext, leave: LeaveRequest) -> None:
    if not auth.is_approver and leave.employee_id != auth.user_id:
        raise AppError("Not authorized to access this leave request", status_code=403)


async def _roll_back_usage(session: AsyncSession, leave: LeaveRequest) -> None:
    """Return an approved leave's unit to its month."""
    await apply_usage(SqlBalanceStore(session), leave.employee_id, leave.type, leave.start_date, -1)


async def _record_usage(session: AsyncSession, leave: LeaveRequest) -> None:
    """Charge an approved leave to its month, enforcing quota if configured."""
    store = SqlBalanceStore(session)
    if get_settings().strict_quota_on_approval:
        if not await consume_quota(store, leave.employee_id, leave.type, leave.start_date):
            raise QuotaExceededError(leave.type)
    else:
        await apply_usage(store, leave.employee_id, leave.type, leave.start_date, 1)


async def _commit_transition(
    session: AsyncSession,
    auth: AuthContext,
    leave: LeaveRequest,
    action: AuditAction,
    before: dict[str, object],
) -> LeaveRequestResponse:
    await session.flush()
    write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_id=leave.id,
        action=action,
        before_json=before,
        after_json=model_to_audit_dict(leave),
    )
    await session.commit()
    await session.refresh(leave)
    return _build_leave_response(leave)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: SubmitLeavePayload,
) -> LeaveRequestResponse:
    """Submit a leave request after checking the month's quota.

    Flow:
    1. Resolve the employee (callers file for themselves unless approvers)
    2. For quota-tracked types, resolve the start month's balance and check it
    3. Create the request, pending HR (or pending admin when HR files it)
    4. Audit log
    5. Commit

    Quota is only charged on final approval.
    """
    employee_id = payload.employee_id or auth.user_id
    if employee_id != auth.user_id and not auth.is_approver:
        raise AppError("Employees can only request leave for themselves", status_code=403)

    if bucket_for(payload.type) is not None:
        balance = await resolve_balance(SqlBalanceStore(session), employee_id, payload.start_date)
        if not has_quota(balance, payload.type):
            raise QuotaExceededError(payload.type)

    initial_status = LeaveStatus.PENDING_ADMIN if auth.role == Role.HR else LeaveStatus.PENDING_HR
    leave = LeaveRequest(
        employee_id=employee_id,
        type=payload.type.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        status=initial_status.value,
        submitted_by=auth.user_id,
    )
    session.add(leave)
    await session.flush()

    write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_id=leave.id,
        action=AuditAction.SUBMIT,
        after_json=model_to_audit_dict(leave),
    )

    await session.commit()
    await session.refresh(leave)
    return _build_leave_response(leave)


async def decide_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: DecisionPayload,
) -> LeaveRequestResponse:
    """Apply an approver's decision.

    HR forwards a ``pending_hr`` request to the super admin or rejects it.
    The super admin approves or rejects any pending request; approval charges
    one unit of the leave's bucket for the start month.
    """
    if not auth.is_approver:
        raise AppError("Only HR or a super admin can decide leave requests", status_code=403)

    leave = await _get_leave_or_404(session, request_id)
    if leave.status not in PENDING_STATUSES:
        raise AppError("Only pending requests can be decided", status_code=400)

    before = model_to_audit_dict(leave)
    approved = payload.status == "approved"

    if auth.role == Role.HR:
        if leave.status != LeaveStatus.PENDING_HR.value:
            raise AppError("Request is awaiting a super admin decision", status_code=400)
        leave.status = (LeaveStatus.PENDING_ADMIN if approved else LeaveStatus.REJECTED_HR).value
        action = AuditAction.FORWARD if approved else AuditAction.REJECT
    elif approved:
        await _record_usage(session, leave)
        leave.status = LeaveStatus.APPROVED.value
        leave.approved_by = auth.user_id
        leave.approval_date = datetime.now(UTC)
        action = AuditAction.APPROVE
    else:
        leave.status = LeaveStatus.REJECTED_ADMIN.value
        action = AuditAction.REJECT

    leave.notes = payload.notes
    return await _commit_transition(session, auth, leave, action, before)


async def cancel_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Cancel a request.

    The owner or the super admin may cancel a pending request. Only the super
    admin may cancel an approved one, which returns its unit to the month.
    """
    leave = await _get_leave_or_404(session, request_id)
    if leave.employee_id != auth.user_id and auth.role != Role.SUPER_ADMIN:
        raise AppError("Not authorized to cancel this leave request", status_code=403)

    if leave.status == LeaveStatus.APPROVED.value:
        if auth.role != Role.SUPER_ADMIN:
            raise AppError("Only pending requests can be cancelled", status_code=400)
        before = model_to_audit_dict(leave)
        await _roll_back_usage(session, leave)
    elif leave.status in PENDING_STATUSES:
        before = model_to_audit_dict(leave)
    else:
        raise AppError("Only pending or approved requests can be cancelled", status_code=400)

    leave.status = LeaveStatus.CANCELLED.value
    return await _commit_transition(session, auth, leave, AuditAction.CANCEL, before)


async def delete_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> DeleteLeaveResponse:
    """Delete a request. Processed requests can only be removed by the super admin."""
    leave = await _get_leave_or_404(session, request_id)
    _ensure_owner_or_approver(auth, leave)

    if leave.status not in PENDING_STATUSES and auth.role != Role.SUPER_ADMIN:
        raise AppError("Cannot delete processed requests", status_code=400)

    before = model_to_audit_dict(leave)
    if leave.status == LeaveStatus.APPROVED.value:
        await _roll_back_usage(session, leave)

    await session.delete(leave)
    write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_id=leave.id,
        action=AuditAction.DELETE,
        before_json=before,
    )
    await session.commit()
    return DeleteLeaveResponse(id=leave.id)


async def get_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Get a single leave request by ID."""
    leave = await _get_leave_or_404(session, request_id)
    _ensure_owner_or_approver(auth, leave)
    return _build_leave_response(leave)


async def list_leave_requests(
    session: AsyncSession,
    auth: AuthContext,
    status_filter: str | None = None,
    employee_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """List leave requests, newest first. Employees only see their own."""
    if not auth.is_approver:
        employee_id = auth.user_id

    filters = []
    if employee_id is not None:
        filters.append(col(LeaveRequest.employee_id) == employee_id)
    if status_filter is not None and status_filter != "all":
        filters.append(col(LeaveRequest.status) == status_filter)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*filters)
        .order_by(col(LeaveRequest.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    leaves = list(result.scalars().all())

    return LeaveRequestListResponse(
        items=[_build_leave_response(leave) for leave in leaves],
        total=total,
    )
