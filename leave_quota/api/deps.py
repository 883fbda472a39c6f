# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, Path, status

from leave_quota.exceptions import AppError
from leave_quota.models.enums import Role
from leave_quota.schemas.auth import AuthContext


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: Role = Header(default=Role.EMPLOYEE),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(user_id=x_user_id, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_self_or_approver(
    employee_id: uuid.UUID = Path(),
    auth: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Employees may only read their own records; HR and super admins may read anyone's."""
    if employee_id != auth.user_id and not auth.is_approver:
        raise AppError("Not authorized to view this employee's balances", status_code=status.HTTP_403_FORBIDDEN)
    return auth
