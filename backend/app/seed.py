"""Seed script for development data.

Run with:  python -m app.seed   (the API must be running on BASE_URL)
"""

from __future__ import annotations

import asyncio
import sys
from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000"
ADMIN_USER_ID = "00000000-0000-0000-0000-000000000001"

HEADERS = {
    "Content-Type": "application/json",
    "X-User-Id": ADMIN_USER_ID,
    "X-Role": "admin",
}

ENTITY_ID = "00000000-0000-0000-0000-0000000000e1"

# Well-known employee UUIDs
MARGARET_ID = "00000000-0000-0000-0000-000000000002"
ALICE_ID = "00000000-0000-0000-0000-000000000003"
BOB_ID = "00000000-0000-0000-0000-000000000004"
CAROL_ID = "00000000-0000-0000-0000-000000000005"
DAVE_ID = "00000000-0000-0000-0000-000000000006"

EMPLOYEES = [
    {
        "id": MARGARET_ID,
        "user_id": "00000000-0000-0000-0000-000000000102",
        "first_name": "Margaret",
        "last_name": "Nguyen",
        "email": "margaret.nguyen@example.com",
        "employment_type": "full_time",
        "hours_per_week": 38,
        "is_manager": True,
        "service_start_date": "2019-02-04",
        "entity_id": ENTITY_ID,
    },
    {
        "id": ALICE_ID,
        "user_id": "00000000-0000-0000-0000-000000000103",
        "first_name": "Alice",
        "last_name": "Johnson",
        "email": "alice.johnson@example.com",
        "employment_type": "full_time",
        "hours_per_week": 38,
        "manager_id": MARGARET_ID,
        "service_start_date": "2023-01-16",
        "entity_id": ENTITY_ID,
    },
    {
        "id": BOB_ID,
        "user_id": "00000000-0000-0000-0000-000000000104",
        "first_name": "Bob",
        "last_name": "Smith",
        "email": "bob.smith@example.com",
        "employment_type": "part_time",
        "hours_per_week": 22.8,
        "manager_id": MARGARET_ID,
        "service_start_date": "2024-06-03",
        "entity_id": ENTITY_ID,
    },
    {
        "id": CAROL_ID,
        "user_id": "00000000-0000-0000-0000-000000000105",
        "first_name": "Carol",
        "last_name": "Williams",
        "email": "carol.williams@example.com",
        "employment_type": "casual",
        "manager_id": MARGARET_ID,
        "start_date": "2025-03-01",
        "entity_id": ENTITY_ID,
    },
    {
        "id": DAVE_ID,
        "user_id": "00000000-0000-0000-0000-000000000106",
        "first_name": "Dave",
        "last_name": "Brown",
        "email": "dave.brown@example.com",
        "employment_type": "full_time",
        "hours_per_week": 38,
        "manager_id": MARGARET_ID,
        "service_start_date": "2012-08-20",
        "entity_id": ENTITY_ID,
    },
]

LEAVE_TYPES = [
    {"code": "ANNUAL", "name": "Annual Leave"},
    {"code": "PERSONAL", "name": "Personal Leave"},
    {"code": "SICK", "name": "Sick Leave"},
    {"code": "CARER", "name": "Carer's Leave"},
    {"code": "LSL", "name": "Long Service Leave"},
]

LONG_SERVICE_POLICY = {
    "name": "Long Service Leave (VIC)",
    "code": "LSL_VIC",
    "leave_type": "long_service",
    "employment_type_scope": "any",
    "accrual_unit": "weeks_per_year",
    "accrual_rate": 0.8667,
    "min_service_years_before_accrual": 7,
    "accrual_rate_after_threshold": 0.8667,
    "is_default": True,
    "notes": "1/60th of service, claimable after 7 years.",
}

HOLIDAYS = [
    {"date": "2026-01-01", "name": "New Year's Day"},
    {"date": "2026-01-26", "name": "Australia Day"},
    {"date": "2026-04-03", "name": "Good Friday"},
    {"date": "2026-04-06", "name": "Easter Monday"},
    {"date": "2026-06-08", "name": "King's Birthday"},
    {"date": "2026-12-25", "name": "Christmas Day"},
    {"date": "2026-12-28", "name": "Boxing Day (observed)"},
]

ENTITY_HOLIDAYS = [
    {"date": "2026-11-03", "name": "Melbourne Cup Day", "entity_id": ENTITY_ID, "state_region": "VIC"},
]


def _employee_headers(employee: dict) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "X-User-Id": employee["user_id"],
        "X-Role": "employee",
        "X-Employee-Id": employee["id"],
    }


async def _safe_post(
    client: httpx.AsyncClient,
    url: str,
    json: dict | None,
    label: str,
    headers: dict[str, str] | None = None,
) -> dict | None:
    """POST with 409-conflict tolerance for idempotency."""
    resp = await client.post(url, json=json, headers=headers or HEADERS)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    if resp.status_code == 409:
        print(f"  [SKIP] {label} ({resp.json().get('code') or 'already exists'})")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_employees(client: httpx.AsyncClient) -> None:
    """Seed the directory via PUT (upsert)."""
    print("\n--- Seeding employees ---")
    for emp in EMPLOYEES:
        body = {k: v for k, v in emp.items() if k != "id"}
        resp = await client.put(f"{BASE_URL}/employees/{emp['id']}", json=body, headers=HEADERS)
        status = "OK" if resp.status_code == 200 else f"ERROR {resp.status_code}"
        print(f"  [{status}] {emp['first_name']} {emp['last_name']} ({emp['employment_type']})")


async def seed_leave_types(client: httpx.AsyncClient) -> dict[str, str]:
    """Register leave types and return a code->id mapping."""
    print("\n--- Seeding leave types ---")
    for leave_type in LEAVE_TYPES:
        await _safe_post(client, f"{BASE_URL}/leave-types", leave_type, f"Leave type: {leave_type['name']}")

    resp = await client.get(f"{BASE_URL}/leave-types", headers=HEADERS)
    resp.raise_for_status()
    return {item["code"]: item["id"] for item in resp.json()["items"]}


async def seed_policies(client: httpx.AsyncClient) -> None:
    """Install the NES defaults plus a long service policy."""
    print("\n--- Seeding policies ---")
    result = await _safe_post(client, f"{BASE_URL}/policies/nes-defaults", None, "NES default policies")
    if result:
        print(f"         created={result['created']} existing={result['existing']}")
    await _safe_post(client, f"{BASE_URL}/policies", LONG_SERVICE_POLICY, f"Policy: {LONG_SERVICE_POLICY['code']}")


async def seed_holidays(client: httpx.AsyncClient) -> None:
    """Seed global and entity public holidays."""
    print("\n--- Seeding holidays ---")
    for holiday in HOLIDAYS + ENTITY_HOLIDAYS:
        await _safe_post(
            client,
            f"{BASE_URL}/holidays",
            {"country": "AU", **holiday},
            f"Holiday: {holiday['name']}",
        )


async def run_accruals(client: httpx.AsyncClient) -> None:
    """Accrue every employee up to today."""
    print("\n--- Running accruals ---")
    result = await _safe_post(client, f"{BASE_URL}/accruals/run", None, "Scheduled accrual run")
    if result:
        print(
            f"         processed={result['processed']} accrued={result['accrued']} "
            f"skipped={result['skipped']} errors={result['errors']}"
        )


def _next_weekday(start: date, days_ahead: int) -> date:
    candidate = start + timedelta(days=days_ahead)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate


async def seed_requests(client: httpx.AsyncClient, leave_type_ids: dict[str, str]) -> None:
    """Seed leave requests across the workflow states."""
    print("\n--- Seeding requests ---")
    today = date.today()
    alice, bob, carol = EMPLOYEES[1], EMPLOYEES[2], EMPLOYEES[3]
    margaret = EMPLOYEES[0]

    # Alice: three days of annual leave in two weeks, left pending
    alice_start = _next_weekday(today, 14)
    await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "employee_id": alice["id"],
            "leave_type_id": leave_type_ids["ANNUAL"],
            "start_date": alice_start.isoformat(),
            "end_date": _next_weekday(alice_start, 2).isoformat(),
            "reason": "Family holiday",
        },
        "Request: Alice annual leave (pending)",
        headers=_employee_headers(alice),
    )

    # Bob: half a day of personal leave next week, approved by Margaret
    bob_day = _next_weekday(today, 7)
    result = await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "employee_id": bob["id"],
            "leave_type_id": leave_type_ids["PERSONAL"],
            "start_date": bob_day.isoformat(),
            "end_date": bob_day.isoformat(),
            "partial_day_type": "half_pm",
            "reason": "Dentist",
        },
        "Request: Bob half-day personal leave",
        headers=_employee_headers(bob),
    )
    if result and result.get("request"):
        await _safe_post(
            client,
            f"{BASE_URL}/leave-requests/{result['request']['id']}/approve",
            {"comment": "Hope it goes well"},
            "Approve: Bob's personal leave",
            headers=_employee_headers(margaret),
        )

    # Carol: casual, so paid annual leave is refused
    carol_day = _next_weekday(today, 10)
    resp = await client.post(
        f"{BASE_URL}/leave-requests",
        json={
            "employee_id": carol["id"],
            "leave_type_id": leave_type_ids["ANNUAL"],
            "start_date": carol_day.isoformat(),
            "end_date": carol_day.isoformat(),
        },
        headers=_employee_headers(carol),
    )
    print(f"  [OK] Carol annual leave refused as expected: {resp.json().get('code')}")


async def report_compliance(client: httpx.AsyncClient) -> None:
    print("\n--- Compliance ---")
    resp = await client.get(f"{BASE_URL}/policies/compliance", headers=HEADERS)
    if resp.status_code != 200:
        print(f"  [ERROR] compliance report: {resp.status_code}")
        return
    summary = resp.json()["summary"]
    print(
        f"  errors={summary['errors']} warnings={summary['warnings']} info={summary['info']} "
        f"compliant={summary['is_compliant']}"
    )


async def main() -> None:
    print("=" * 60)
    print("  Leave Engine - Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Health check
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            print("Make sure the API is running (uvicorn app.main:app)")
            sys.exit(1)

        await seed_employees(client)
        leave_type_ids = await seed_leave_types(client)
        await seed_policies(client)
        await seed_holidays(client)
        await run_accruals(client)
        await seed_requests(client, leave_type_ids)
        await report_compliance(client)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
