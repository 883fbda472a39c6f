from sqlmodel import SQLModel

from leave_quota.models.audit import AuditLog
from leave_quota.models.balance import LeaveBalance
from leave_quota.models.base import TimestampMixin, UUIDBase
from leave_quota.models.enums import (
    AuditAction,
    AuditEntityType,
    LeaveBucket,
    LeaveStatus,
    LeaveType,
    Role,
)
from leave_quota.models.request import LeaveRequest

__all__ = [
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "LeaveBalance",
    "LeaveBucket",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "Role",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
]
