"""Seed script for development data.

Run with:  python -m leave_quota.seed

Walks a few employees through the leave workflow against a running API so
the balance screens have something to show: a carried-forward full day, a
month closed to full days by a half day, and a pending request.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import date
from typing import Any

import httpx

BASE_URL = "http://localhost:8000"

HR_ID = "00000000-0000-0000-0000-000000000001"
ADMIN_ID = "00000000-0000-0000-0000-000000000002"
ALICE_ID = "00000000-0000-0000-0000-000000000003"
BOB_ID = "00000000-0000-0000-0000-000000000004"
CAROL_ID = "00000000-0000-0000-0000-000000000005"


def _headers(user_id: str, role: str = "employee") -> dict[str, str]:
    return {"Content-Type": "application/json", "X-User-Id": user_id, "X-Role": role}


def _first_of_month(months_back: int) -> date:
    today = date.today()
    index = today.year * 12 + (today.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


# (employee, leave type, start date, reason, decisions to apply in order)
REQUESTS: list[tuple[str, str, date, str, list[str]]] = [
    # Alice leaves last month untouched, so this month opens with one full day carried.
    (ALICE_ID, "casual_half", _first_of_month(0).replace(day=5), "Dentist appointment", ["hr", "admin"]),
    (BOB_ID, "sick_full", _first_of_month(1).replace(day=10), "Flu", ["hr", "admin"]),
    (BOB_ID, "short", _first_of_month(0).replace(day=3), "Bank errand", ["hr"]),
    (CAROL_ID, "unpaid", _first_of_month(0).replace(day=12), "Moving house", []),
]


async def _post(client: httpx.AsyncClient, url: str, json: dict[str, Any], headers: dict[str, str], label: str) -> dict | None:
    resp = await client.post(url, json=json, headers=headers)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_balances(client: httpx.AsyncClient) -> None:
    """Open last month's balance for every employee so this month has something to carry."""
    print("\n--- Opening balances ---")
    for employee_id in (ALICE_ID, BOB_ID, CAROL_ID):
        resp = await client.get(
            f"{BASE_URL}/employees/{employee_id}/balances",
            params={"on": _first_of_month(1).isoformat()},
            headers=_headers(HR_ID, "hr"),
        )
        print(f"  [{'OK' if resp.status_code == 200 else 'ERROR'}] Balance {employee_id[-4:]} last month")


async def seed_requests(client: httpx.AsyncClient) -> None:
    """Submit requests and push them through the approval stages."""
    print("\n--- Seeding leave requests ---")
    for employee_id, leave_type, start, reason, decisions in REQUESTS:
        label = f"{leave_type} for {employee_id[-4:]} on {start.isoformat()}"
        created = await _post(
            client,
            f"{BASE_URL}/leave-requests",
            {"type": leave_type, "start_date": start.isoformat(), "end_date": start.isoformat(), "reason": reason},
            _headers(employee_id),
            f"Submit {label}",
        )
        if created is None:
            continue
        for stage in decisions:
            approver = _headers(HR_ID, "hr") if stage == "hr" else _headers(ADMIN_ID, "super_admin")
            await _post(
                client,
                f"{BASE_URL}/leave-requests/{created['id']}/decision",
                {"status": "approved", "notes": "Seeded"},
                approver,
                f"Approve ({stage}) {label}",
            )


async def main() -> None:
    print("=" * 60)
    print("  Leave Quota: Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            sys.exit(1)

        await seed_balances(client)
        await seed_requests(client)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
