from __future__ import annotations

import enum


class LeaveType(enum.StrEnum):
    """Kind of leave an employee can request."""

    SICK_FULL = "sick_full"
    CASUAL_FULL = "casual_full"
    SICK_HALF = "sick_half"
    CASUAL_HALF = "casual_half"
    SHORT = "short"
    UNPAID = "unpaid"
    OTHER = "other"


class LeaveBucket(enum.StrEnum):
    """Monthly allowance a leave type draws from."""

    FULL_DAY = "full_day"
    HALF_DAY = "half_day"
    SHORT = "short"


class LeaveStatus(enum.StrEnum):
    """Two-stage approval state machine for leave requests."""

    PENDING_HR = "pending_hr"
    PENDING_ADMIN = "pending_admin"
    APPROVED = "approved"
    REJECTED_HR = "rejected_hr"
    REJECTED_ADMIN = "rejected_admin"
    CANCELLED = "cancelled"


class Role(enum.StrEnum):
    """Caller role carried in the auth context."""

    EMPLOYEE = "employee"
    HR = "hr"
    SUPER_ADMIN = "super_admin"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEAVE_REQUEST = "LEAVE_REQUEST"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    SUBMIT = "SUBMIT"
    FORWARD = "FORWARD"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"
    DELETE = "DELETE"
