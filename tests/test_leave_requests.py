"""Tests for the leave request workflow: submit, two-stage approval, cancel,
delete, and the quota bookkeeping each transition triggers.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import select
from sqlmodel import col

from leave_quota.config import get_settings
from leave_quota.models.audit import AuditLog

if TYPE_CHECKING:
    from httpx import AsyncClient, Response
    from sqlalchemy.ext.asyncio import AsyncSession

EMPLOYEE_ID = uuid.uuid4()
OTHER_EMPLOYEE_ID = uuid.uuid4()
HR_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()

EMPLOYEE_HEADERS = {"X-User-Id": str(EMPLOYEE_ID), "X-Role": "employee"}
OTHER_HEADERS = {"X-User-Id": str(OTHER_EMPLOYEE_ID), "X-Role": "employee"}
HR_HEADERS = {"X-User-Id": str(HR_ID), "X-Role": "hr"}
ADMIN_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "super_admin"}

REQUESTS_URL = "/leave-requests"
BALANCES_URL = f"/employees/{EMPLOYEE_ID}/balances"
MARCH_10 = "2025-03-10"


# ---------------------------------------------------------------------------
# Test helpers
# ---------------------------------------------------------------------------


async def _submit(
    client: AsyncClient,
    leave_type: str = "casual_full",
    start: str = MARCH_10,
    end: str | None = None,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> Response:
    payload = {"type": leave_type, "start_date": start, "end_date": end or start, "reason": "Personal", **extra}
    return await client.post(REQUESTS_URL, json=payload, headers=headers or EMPLOYEE_HEADERS)


async def _decide(
    client: AsyncClient,
    request_id: str,
    headers: dict[str, str],
    decision: str = "approved",
    notes: str | None = None,
) -> Response:
    return await client.post(
        f"{REQUESTS_URL}/{request_id}/decision",
        json={"status": decision, "notes": notes},
        headers=headers,
    )


async def _approve(client: AsyncClient, request_id: str) -> Response:
    """Forward through HR, then approve as the super admin."""
    forwarded = await _decide(client, request_id, HR_HEADERS)
    assert forwarded.status_code == 200
    return await _decide(client, request_id, ADMIN_HEADERS)


async def _balance(client: AsyncClient, on: str = MARCH_10) -> dict[str, Any]:
    resp = await client.get(BALANCES_URL, params={"on": on}, headers=HR_HEADERS)
    assert resp.status_code == 200
    return resp.json()


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


async def test_submit_creates_pending_request(async_client: AsyncClient) -> None:
    resp = await _submit(async_client)
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "pending_hr"
    assert data["employee_id"] == str(EMPLOYEE_ID)
    assert data["submitted_by"] == str(EMPLOYEE_ID)
    assert data["approved_by"] is None


async def test_submit_does_not_charge_quota(async_client: AsyncClient) -> None:
    await _submit(async_client)
    balance = await _balance(async_client)
    assert balance["full_day"]["used"] == 0


async def test_hr_filing_for_employee_skips_hr_stage(async_client: AsyncClient) -> None:
    resp = await _submit(async_client, headers=HR_HEADERS, employee_id=str(EMPLOYEE_ID))
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "pending_admin"
    assert data["employee_id"] == str(EMPLOYEE_ID)
    assert data["submitted_by"] == str(HR_ID)


async def test_employee_cannot_file_for_someone_else(async_client: AsyncClient) -> None:
    resp = await _submit(async_client, employee_id=str(OTHER_EMPLOYEE_ID))
    assert resp.status_code == 403


async def test_submit_rejects_end_before_start(async_client: AsyncClient) -> None:
    resp = await _submit(async_client, start="2025-03-10", end="2025-03-09")
    assert resp.status_code == 422
    assert "end_date must not be before start_date" in resp.json()["detail"]


async def test_submit_rejects_unknown_type(async_client: AsyncClient) -> None:
    resp = await _submit(async_client, leave_type="sabbatical")
    assert resp.status_code == 422


async def test_submit_blocked_when_month_is_used_up(async_client: AsyncClient) -> None:
    first = await _submit(async_client)
    assert (await _approve(async_client, first.json()["id"])).status_code == 200

    resp = await _submit(async_client, start="2025-03-20")
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "QuotaExceededError"
    assert body["detail"] == "Monthly quota exceeded for casual full leaves"


async def test_half_day_closes_full_day_for_the_month(async_client: AsyncClient) -> None:
    half = await _submit(async_client, leave_type="sick_half")
    await _approve(async_client, half.json()["id"])

    assert (await _submit(async_client, leave_type="sick_full")).status_code == 400
    assert (await _submit(async_client, leave_type="casual_half")).status_code == 201
    assert (await _submit(async_client, leave_type="short")).status_code == 201


async def test_next_month_is_unaffected(async_client: AsyncClient) -> None:
    first = await _submit(async_client)
    await _approve(async_client, first.json()["id"])

    resp = await _submit(async_client, start="2025-04-01")
    assert resp.status_code == 201


async def test_unpaid_leave_is_never_limited(async_client: AsyncClient) -> None:
    for day in ("2025-03-03", "2025-03-04", "2025-03-05"):
        created = await _submit(async_client, leave_type="unpaid", start=day)
        assert created.status_code == 201
        assert (await _approve(async_client, created.json()["id"])).status_code == 200

    balance = await _balance(async_client)
    assert (balance["full_day"]["used"], balance["half_day"]["used"], balance["short"]["used"]) == (0, 0, 0)


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


async def test_two_stage_approval_charges_quota(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    request_id = created.json()["id"]

    forwarded = await _decide(async_client, request_id, HR_HEADERS, notes="Looks fine")
    assert forwarded.json()["status"] == "pending_admin"
    assert (await _balance(async_client))["full_day"]["used"] == 0

    approved = await _decide(async_client, request_id, ADMIN_HEADERS)
    assert approved.status_code == 200
    data = approved.json()
    assert data["status"] == "approved"
    assert data["approved_by"] == str(ADMIN_ID)
    assert data["approval_date"] is not None
    assert (await _balance(async_client))["full_day"]["used"] == 1


async def test_super_admin_can_approve_directly(async_client: AsyncClient) -> None:
    created = await _submit(async_client, leave_type="short")
    resp = await _decide(async_client, created.json()["id"], ADMIN_HEADERS)
    assert resp.json()["status"] == "approved"
    assert (await _balance(async_client))["short"]["used"] == 1


async def test_hr_cannot_make_final_decision(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    request_id = created.json()["id"]
    await _decide(async_client, request_id, HR_HEADERS)

    resp = await _decide(async_client, request_id, HR_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Request is awaiting a super admin decision"


async def test_employee_cannot_decide(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    resp = await _decide(async_client, created.json()["id"], EMPLOYEE_HEADERS)
    assert resp.status_code == 403


@pytest.mark.parametrize(("headers", "expected"), [(HR_HEADERS, "rejected_hr"), (ADMIN_HEADERS, "rejected_admin")])
async def test_rejection_charges_nothing(
    async_client: AsyncClient, headers: dict[str, str], expected: str
) -> None:
    created = await _submit(async_client)
    request_id = created.json()["id"]

    resp = await _decide(async_client, request_id, headers, decision="rejected", notes="Busy week")
    assert resp.json()["status"] == expected
    assert resp.json()["notes"] == "Busy week"
    assert (await _balance(async_client))["full_day"]["used"] == 0

    again = await _decide(async_client, request_id, ADMIN_HEADERS)
    assert again.status_code == 400


async def test_decide_unknown_request(async_client: AsyncClient) -> None:
    resp = await _decide(async_client, str(uuid.uuid4()), ADMIN_HEADERS)
    assert resp.status_code == 404


async def test_second_approval_in_month_is_refused(async_client: AsyncClient) -> None:
    """Both requests pass the submit check; only one can be approved."""
    first = await _submit(async_client)
    second = await _submit(async_client, start="2025-03-21")
    assert second.status_code == 201

    assert (await _approve(async_client, first.json()["id"])).status_code == 200
    refused = await _approve(async_client, second.json()["id"])
    assert refused.status_code == 400
    assert refused.json()["error"] == "QuotaExceededError"

    still_pending = await async_client.get(f"{REQUESTS_URL}/{second.json()['id']}", headers=EMPLOYEE_HEADERS)
    assert still_pending.json()["status"] == "pending_admin"
    assert (await _balance(async_client))["full_day"]["used"] == 1


async def test_second_approval_allowed_without_strict_check(
    async_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(get_settings(), "strict_quota_on_approval", False)
    first = await _submit(async_client)
    second = await _submit(async_client, start="2025-03-21")

    await _approve(async_client, first.json()["id"])
    approved = await _approve(async_client, second.json()["id"])
    assert approved.status_code == 200
    assert (await _balance(async_client))["full_day"]["used"] == 2


# ---------------------------------------------------------------------------
# Cancel
# ---------------------------------------------------------------------------


async def test_owner_cancels_pending_request(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    resp = await async_client.post(f"{REQUESTS_URL}/{created.json()['id']}/cancel", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


async def test_other_employee_cannot_cancel(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    resp = await async_client.post(f"{REQUESTS_URL}/{created.json()['id']}/cancel", headers=OTHER_HEADERS)
    assert resp.status_code == 403


async def test_hr_cannot_cancel_employee_request(async_client: AsyncClient) -> None:
    created = await _submit(async_client, leave_type="sick_full")
    request_id = created.json()["id"]

    resp = await async_client.post(f"{REQUESTS_URL}/{request_id}/cancel", headers=HR_HEADERS)
    assert resp.status_code == 403

    unchanged = await async_client.get(f"{REQUESTS_URL}/{request_id}", headers=EMPLOYEE_HEADERS)
    assert unchanged.json()["status"] == "pending_hr"


async def test_admin_cancels_pending_request(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    resp = await async_client.post(f"{REQUESTS_URL}/{created.json()['id']}/cancel", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


async def test_employee_cannot_cancel_approved_request(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    await _approve(async_client, created.json()["id"])

    resp = await async_client.post(f"{REQUESTS_URL}/{created.json()['id']}/cancel", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 400
    assert (await _balance(async_client))["full_day"]["used"] == 1


async def test_admin_cancel_returns_quota(async_client: AsyncClient) -> None:
    created = await _submit(async_client, leave_type="casual_half")
    await _approve(async_client, created.json()["id"])
    assert (await _balance(async_client))["remaining"]["full_day"] == 0

    resp = await async_client.post(f"{REQUESTS_URL}/{created.json()['id']}/cancel", headers=ADMIN_HEADERS)
    assert resp.json()["status"] == "cancelled"

    balance = await _balance(async_client)
    assert balance["half_day"]["used"] == 0
    assert balance["remaining"]["full_day"] == 1
    assert (await _submit(async_client, leave_type="sick_full")).status_code == 201


async def test_cancelled_request_cannot_be_cancelled_again(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    url = f"{REQUESTS_URL}/{created.json()['id']}/cancel"
    await async_client.post(url, headers=EMPLOYEE_HEADERS)

    resp = await async_client.post(url, headers=ADMIN_HEADERS)
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


async def test_owner_deletes_pending_request(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    request_id = created.json()["id"]

    resp = await async_client.delete(f"{REQUESTS_URL}/{request_id}", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {"id": request_id, "message": "Leave request deleted"}

    missing = await async_client.get(f"{REQUESTS_URL}/{request_id}", headers=EMPLOYEE_HEADERS)
    assert missing.status_code == 404


async def test_employee_cannot_delete_processed_request(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    await _decide(async_client, created.json()["id"], HR_HEADERS, decision="rejected")

    resp = await async_client.delete(f"{REQUESTS_URL}/{created.json()['id']}", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot delete processed requests"


async def test_admin_delete_of_approved_request_returns_quota(async_client: AsyncClient) -> None:
    created = await _submit(async_client, leave_type="short")
    await _approve(async_client, created.json()["id"])
    assert (await _balance(async_client))["short"]["used"] == 1

    resp = await async_client.delete(f"{REQUESTS_URL}/{created.json()['id']}", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert (await _balance(async_client))["short"]["used"] == 0


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


async def test_employee_only_lists_own_requests(async_client: AsyncClient) -> None:
    await _submit(async_client)
    await _submit(async_client, leave_type="short", headers=OTHER_HEADERS)

    own = await async_client.get(REQUESTS_URL, headers=EMPLOYEE_HEADERS)
    assert own.json()["total"] == 1
    assert own.json()["items"][0]["employee_id"] == str(EMPLOYEE_ID)

    peek = await async_client.get(
        REQUESTS_URL, params={"employee_id": str(OTHER_EMPLOYEE_ID)}, headers=EMPLOYEE_HEADERS
    )
    assert peek.json()["total"] == 1
    assert peek.json()["items"][0]["employee_id"] == str(EMPLOYEE_ID)


async def test_approver_lists_and_filters(async_client: AsyncClient) -> None:
    first = await _submit(async_client)
    await _submit(async_client, leave_type="short", headers=OTHER_HEADERS)
    await _decide(async_client, first.json()["id"], HR_HEADERS)

    everything = await async_client.get(REQUESTS_URL, params={"status": "all"}, headers=HR_HEADERS)
    assert everything.json()["total"] == 2

    pending_hr = await async_client.get(REQUESTS_URL, params={"status": "pending_hr"}, headers=HR_HEADERS)
    assert pending_hr.json()["total"] == 1
    assert pending_hr.json()["items"][0]["employee_id"] == str(OTHER_EMPLOYEE_ID)

    by_employee = await async_client.get(REQUESTS_URL, params={"employee_id": str(EMPLOYEE_ID)}, headers=HR_HEADERS)
    assert by_employee.json()["total"] == 1


async def test_list_pagination(async_client: AsyncClient) -> None:
    for day in ("2025-03-03", "2025-03-04", "2025-03-05"):
        await _submit(async_client, leave_type="unpaid", start=day)

    page = await async_client.get(REQUESTS_URL, params={"offset": 1, "limit": 1}, headers=EMPLOYEE_HEADERS)
    assert page.json()["total"] == 3
    assert len(page.json()["items"]) == 1


async def test_employee_cannot_read_other_request(async_client: AsyncClient) -> None:
    created = await _submit(async_client)
    resp = await async_client.get(f"{REQUESTS_URL}/{created.json()['id']}", headers=OTHER_HEADERS)
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


async def test_transitions_are_audited(async_client: AsyncClient, db_session: AsyncSession) -> None:
    created = await _submit(async_client)
    request_id = created.json()["id"]
    await _approve(async_client, request_id)
    await async_client.post(f"{REQUESTS_URL}/{request_id}/cancel", headers=ADMIN_HEADERS)

    result = await db_session.execute(
        select(AuditLog).where(col(AuditLog.entity_id) == uuid.UUID(request_id))
    )
    entries = list(result.scalars().all())
    assert sorted(entry.action for entry in entries) == ["APPROVE", "CANCEL", "FORWARD", "SUBMIT"]

    approve = next(entry for entry in entries if entry.action == "APPROVE")
    assert approve.actor_id == ADMIN_ID
    assert approve.before_json is not None
    assert approve.before_json["status"] == "pending_admin"
    assert approve.after_json is not None
    assert approve.after_json["status"] == "approved"
