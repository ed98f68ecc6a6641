"""HTTP tests for the leave request and entitlement endpoints: status codes,
error bodies, header auth and company scoping.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession


def _requests_url(seed) -> str:
    return f"/companies/{seed.company_id}/leave-requests"


def _body(seed, **overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "employee_id": str(seed.employee.id),
        "leave_type_id": str(seed.annual.id),
        "start_date": "2026-03-02",
        "end_date": "2026-03-04",
        "reason": "Family trip to the coast",
    }
    body.update(overrides)
    return body


async def _submit(client: AsyncClient, seed, **overrides: Any) -> dict[str, Any]:
    resp = await client.post(_requests_url(seed), json=_body(seed, **overrides), headers=seed.headers())
    assert resp.status_code == 201, resp.text
    data: dict[str, Any] = resp.json()
    return data


# ---------------------------------------------------------------------------
# Leave requests
# ---------------------------------------------------------------------------


async def test_create_returns_201(async_client: AsyncClient, db_session: AsyncSession, seed) -> None:
    await seed.grant(db_session, seed.annual, 10)

    data = await _submit(async_client, seed)

    assert data["status"] == "pending"
    assert data["total_days"] == 3
    assert data["request_number"].startswith("LV-")
    assert [s["approver_role"] for s in data["approval_chain"]] == ["Manager", "HR"]


async def test_create_rule_violation_is_422_with_rule(
    async_client: AsyncClient, db_session: AsyncSession, seed
) -> None:
    await seed.grant(db_session, seed.annual, 1)

    resp = await async_client.post(_requests_url(seed), json=_body(seed), headers=seed.headers())

    assert resp.status_code == 422
    data = resp.json()
    assert data["error"] == "ValidationError"
    assert data["rule"] == "balance"


async def test_short_reason_is_a_schema_error(async_client: AsyncClient, seed) -> None:
    resp = await async_client.post(_requests_url(seed), json=_body(seed, reason="short"), headers=seed.headers())

    assert resp.status_code == 422
    assert resp.json()["rule"] == "schema"


async def test_company_mismatch_is_403(async_client: AsyncClient, seed) -> None:
    resp = await async_client.get(f"/companies/{uuid.uuid4()}/leave-requests", headers=seed.headers())

    assert resp.status_code == 403


async def test_missing_auth_headers_is_422(async_client: AsyncClient, seed) -> None:
    resp = await async_client.get(_requests_url(seed))

    assert resp.status_code == 422


async def test_unknown_request_is_404(async_client: AsyncClient, seed) -> None:
    resp = await async_client.get(f"{_requests_url(seed)}/{uuid.uuid4()}", headers=seed.headers())

    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


async def test_employee_cannot_approve(async_client: AsyncClient, db_session: AsyncSession, seed) -> None:
    await seed.grant(db_session, seed.annual, 10)
    created = await _submit(async_client, seed)

    resp = await async_client.post(f"{_requests_url(seed)}/{created['id']}/approve", headers=seed.headers())

    assert resp.status_code == 403


async def test_manager_of_another_team_cannot_approve(
    async_client: AsyncClient, db_session: AsyncSession, seed
) -> None:
    await seed.grant(db_session, seed.annual, 10)
    created = await _submit(async_client, seed)

    resp = await async_client.post(
        f"{_requests_url(seed)}/{created['id']}/approve", headers=seed.headers(uuid.uuid4(), "manager")
    )

    assert resp.status_code == 403
    assert resp.json()["error"] == "InvalidActor"


async def test_approval_flow_over_http(async_client: AsyncClient, db_session: AsyncSession, seed) -> None:
    await seed.grant(db_session, seed.annual, 10)
    created = await _submit(async_client, seed)
    url = f"{_requests_url(seed)}/{created['id']}"

    pending = await async_client.get(
        f"/companies/{seed.company_id}/approvals/pending", headers=seed.headers(seed.manager.id, "manager")
    )
    assert pending.status_code == 200
    assert [r["id"] for r in pending.json()["items"]] == [created["id"]]

    first = await async_client.post(
        f"{url}/approve", json={"level": 1}, headers=seed.headers(seed.manager.id, "manager")
    )
    assert first.status_code == 200
    assert first.json()["current_approval_level"] == 2

    stale = await async_client.post(f"{url}/approve", json={"level": 1}, headers=seed.headers(seed.hr.id, "hr"))
    assert stale.status_code == 409
    assert stale.json()["error"] == "InvalidTransition"

    final = await async_client.post(f"{url}/approve", headers=seed.headers(seed.hr.id, "hr"))
    assert final.status_code == 200
    assert final.json()["status"] == "approved"

    balances = await async_client.get(
        f"/companies/{seed.company_id}/employees/{seed.employee.id}/entitlements", headers=seed.headers()
    )
    row = balances.json()["items"][0]
    assert (row["used"], row["pending"], row["remaining"]) == (3, 0, 7)


async def test_reject_and_cancel_over_http(async_client: AsyncClient, db_session: AsyncSession, seed) -> None:
    await seed.grant(db_session, seed.annual, 10)
    first = await _submit(async_client, seed)
    second = await _submit(async_client, seed, start_date="2026-03-09", end_date="2026-03-09")

    rejected = await async_client.post(
        f"{_requests_url(seed)}/{first['id']}/reject",
        json={"reason": "Team is short that week"},
        headers=seed.headers(seed.manager.id, "manager"),
    )
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "rejected"

    not_owner = await async_client.post(
        f"{_requests_url(seed)}/{second['id']}/cancel",
        json={"reason": "Cancelling for them"},
        headers=seed.headers(seed.manager.id, "manager"),
    )
    assert not_owner.status_code == 403
    assert not_owner.json()["error"] == "InvalidActor"

    cancelled = await async_client.post(
        f"{_requests_url(seed)}/{second['id']}/cancel",
        json={"reason": "Plans fell through"},
        headers=seed.headers(),
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"


async def test_draft_lifecycle_over_http(async_client: AsyncClient, db_session: AsyncSession, seed) -> None:
    await seed.grant(db_session, seed.annual, 10)
    draft = await _submit(async_client, seed, save_as_draft=True)
    url = f"{_requests_url(seed)}/{draft['id']}"
    assert draft["status"] == "draft"

    patched = await async_client.patch(url, json={"end_date": "2026-03-02"}, headers=seed.headers())
    assert patched.status_code == 200
    assert patched.json()["total_days"] == 1

    submitted = await async_client.post(f"{url}/submit", headers=seed.headers())
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "pending"

    not_draft = await async_client.delete(url, headers=seed.headers())
    assert not_draft.status_code == 409


async def test_patch_rejects_null_and_orphan_half_day_period(async_client: AsyncClient, seed) -> None:
    draft = await _submit(async_client, seed, save_as_draft=True)
    url = f"{_requests_url(seed)}/{draft['id']}"

    for body in ({"start_date": None}, {"reason": None}, {"half_day_period": "morning"}):
        resp = await async_client.patch(url, json=body, headers=seed.headers())
        assert resp.status_code == 422, body
        assert resp.json()["rule"] == "schema"

    unchanged = await async_client.get(url, headers=seed.headers())
    assert unchanged.json()["start_date"] == "2026-03-02"
    assert unchanged.json()["half_day_period"] is None


async def test_delete_draft_returns_204(async_client: AsyncClient, seed) -> None:
    draft = await _submit(async_client, seed, save_as_draft=True)
    url = f"{_requests_url(seed)}/{draft['id']}"

    resp = await async_client.delete(url, headers=seed.headers())

    assert resp.status_code == 204
    assert (await async_client.get(url, headers=seed.headers())).status_code == 404


async def test_list_filters_by_status(async_client: AsyncClient, db_session: AsyncSession, seed) -> None:
    await seed.grant(db_session, seed.annual, 10)
    await _submit(async_client, seed)
    await _submit(async_client, seed, start_date="2026-04-06", end_date="2026-04-06", save_as_draft=True)

    resp = await async_client.get(_requests_url(seed), params={"status": "draft"}, headers=seed.headers())

    assert resp.status_code == 200
    assert resp.json()["total"] == 1
    assert resp.json()["items"][0]["status"] == "draft"


# ---------------------------------------------------------------------------
# Entitlements
# ---------------------------------------------------------------------------


async def test_employee_cannot_read_colleague_entitlements(async_client: AsyncClient, seed) -> None:
    resp = await async_client.get(
        f"/companies/{seed.company_id}/employees/{seed.manager.id}/entitlements", headers=seed.headers()
    )

    assert resp.status_code == 403


async def test_admin_grants_entitlement(async_client: AsyncClient, seed) -> None:
    url = f"/companies/{seed.company_id}/entitlements"
    body = {"employee_id": str(seed.employee.id), "leave_type_id": str(seed.annual.id), "year": 2026, "accrued": 10}

    as_employee = await async_client.post(url, json=body, headers=seed.headers())
    assert as_employee.status_code == 403

    created = await async_client.post(url, json=body, headers=seed.headers(seed.admin_id, "admin"))
    assert created.status_code == 201
    assert created.json()["remaining"] == 10

    duplicate = await async_client.post(url, json=body, headers=seed.headers(seed.admin_id, "admin"))
    assert duplicate.status_code == 409


async def test_admin_creates_initial_entitlements(async_client: AsyncClient, seed) -> None:
    resp = await async_client.post(
        f"/companies/{seed.company_id}/entitlements/initial",
        json={"employee_id": str(seed.employee.id), "year": 2026},
        headers=seed.headers(seed.admin_id, "admin"),
    )

    assert resp.status_code == 201
    assert {i["leave_type_code"] for i in resp.json()["items"]} == {"ANNUAL", "SICK"}


async def test_admin_triggers_carryover(async_client: AsyncClient, db_session: AsyncSession, seed) -> None:
    await seed.grant(db_session, seed.annual, 10)

    resp = await async_client.post(
        f"/companies/{seed.company_id}/entitlements/carryover",
        json={"from_year": 2026},
        headers=seed.headers(seed.admin_id, "admin"),
    )

    assert resp.status_code == 200
    assert resp.json() == {"from_year": 2026, "processed": 1, "skipped": 0, "errors": 0}
