"""HTTP surface tests — authentication, role checks, RFC 7807 bodies and
the request/approve/delete flow through the routers.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from timeoff.common.workdays import today_utc
from tests.conftest import auth_headers_for, create_access_token, seed_user


def _upcoming_monday(weeks_ahead: int = 3) -> date:
    start = today_utc() + timedelta(weeks=weeks_ahead)
    return start + timedelta(days=(7 - start.weekday()) % 7)


def _request_body(leave_type: str = "VACATION", days: int = 3, **extra) -> dict:
    start = _upcoming_monday()
    return {
        "leave_type": leave_type,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=days - 1)).isoformat(),
        **extra,
    }


def _balance(balances: list[dict], leave_type: str) -> dict:
    return next(b for b in balances if b["leave_type"] == leave_type)


# ── System ──────────────────────────────────────────────────────────


async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


# ── Authentication ──────────────────────────────────────────────────


class TestAuthentication:

    async def test_missing_token(self, client):
        resp = await client.get("/api/v1/balances")
        assert resp.status_code == 401

    async def test_expired_token(self, client, employee):
        token = create_access_token(employee.id, expired=True)
        resp = await client.get(
            "/api/v1/balances", headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 401

    async def test_garbage_token(self, client):
        resp = await client.get(
            "/api/v1/balances", headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert resp.status_code == 401

    async def test_inactive_user(self, client, store):
        gone = await seed_user(store, is_active=False)
        resp = await client.get("/api/v1/balances", headers=auth_headers_for(gone))
        assert resp.status_code == 401


# ── Requests ────────────────────────────────────────────────────────


class TestRequestEndpoints:

    async def test_submit_approve_and_balance(self, client, employee, admin):
        body = _request_body()
        resp = await client.post(
            "/api/v1/requests", json=body, headers=auth_headers_for(employee),
        )
        assert resp.status_code == 201, resp.text
        created = resp.json()
        assert created["status"] == "PENDING"
        assert created["user_id"] == str(employee.id)

        resp = await client.put(
            f"/api/v1/requests/{created['id']}/approve", headers=auth_headers_for(admin),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["status"] == "APPROVED"

        year = date.fromisoformat(body["start_date"]).year
        resp = await client.get(
            f"/api/v1/balances?year={year}", headers=auth_headers_for(employee),
        )
        vacation = _balance(resp.json(), "VACATION")
        assert Decimal(vacation["used_days"]) == created["working_days"]
        assert Decimal(vacation["remaining_days"]) == Decimal("22") - created["working_days"]

    async def test_employee_cannot_approve(self, client, employee):
        resp = await client.post(
            "/api/v1/requests", json=_request_body(), headers=auth_headers_for(employee),
        )

        resp = await client.put(
            f"/api/v1/requests/{resp.json()['id']}/approve", headers=auth_headers_for(employee),
        )

        assert resp.status_code == 403
        assert resp.headers["content-type"].startswith("application/problem+json")
        assert resp.json()["code"] == "FORBIDDEN"

    async def test_insufficient_balance_problem_detail(self, client, employee):
        resp = await client.post(
            "/api/v1/requests",
            json=_request_body("PERSONAL", days=12),
            headers=auth_headers_for(employee),
        )

        assert resp.status_code == 422
        problem = resp.json()
        assert problem["code"] == "INSUFFICIENT_BALANCE"
        assert problem["status"] == 422
        assert problem["instance"] == "/api/v1/requests"
        assert "INSUFFICIENT_BALANCE" in problem["errors"]

    async def test_short_notice_is_refused(self, client, employee):
        start = today_utc() + timedelta(days=1)
        resp = await client.post(
            "/api/v1/requests",
            json={
                "leave_type": "VACATION",
                "start_date": start.isoformat(),
                "end_date": start.isoformat(),
            },
            headers=auth_headers_for(employee),
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "INSUFFICIENT_NOTICE"

    async def test_duplicate_is_conflict(self, client, employee):
        body = _request_body()
        await client.post("/api/v1/requests", json=body, headers=auth_headers_for(employee))
        resp = await client.post(
            "/api/v1/requests", json=body, headers=auth_headers_for(employee),
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "DUPLICATE_REQUEST"

    async def test_validate_reports_all_issues(self, client, employee):
        resp = await client.post(
            "/api/v1/requests/validate",
            json=_request_body("PERSONAL", days=12),
            headers=auth_headers_for(employee),
        )
        assert resp.status_code == 200
        result = resp.json()
        assert result["is_valid"] is False
        assert [e["code"] for e in result["errors"]] == ["INSUFFICIENT_BALANCE"]

    async def test_malformed_body(self, client, employee):
        resp = await client.post(
            "/api/v1/requests",
            json={"leave_type": "SABBATICAL", "start_date": "soon"},
            headers=auth_headers_for(employee),
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "VALIDATION_ERROR"

    async def test_list_shows_only_own_requests(self, client, employee, admin):
        await client.post(
            "/api/v1/requests", json=_request_body(), headers=auth_headers_for(employee),
        )
        await client.post(
            "/api/v1/requests", json=_request_body(), headers=auth_headers_for(admin),
        )

        resp = await client.get("/api/v1/requests", headers=auth_headers_for(employee))
        assert resp.status_code == 200
        page = resp.json()
        assert page["meta"]["total"] == 1
        assert page["data"][0]["user_id"] == str(employee.id)

        resp = await client.get(
            f"/api/v1/requests?user_id={admin.id}", headers=auth_headers_for(employee),
        )
        assert resp.status_code == 403

        resp = await client.get("/api/v1/requests", headers=auth_headers_for(admin))
        assert resp.json()["meta"]["total"] == 2

    async def test_delete_approved_request(self, client, employee, admin):
        body = _request_body()
        created = (
            await client.post("/api/v1/requests", json=body, headers=auth_headers_for(employee))
        ).json()
        await client.put(
            f"/api/v1/requests/{created['id']}/approve", headers=auth_headers_for(admin),
        )

        resp = await client.delete(
            f"/api/v1/requests/{created['id']}", headers=auth_headers_for(employee),
        )
        assert resp.status_code == 204

        resp = await client.get(
            f"/api/v1/requests/{created['id']}", headers=auth_headers_for(employee),
        )
        assert resp.status_code == 404
        assert resp.json()["code"] == "NOT_FOUND"

        year = date.fromisoformat(body["start_date"]).year
        balances = (
            await client.get(f"/api/v1/balances?year={year}", headers=auth_headers_for(employee))
        ).json()
        assert Decimal(_balance(balances, "VACATION")["used_days"]) == 0

    async def test_who_is_off_is_admin_only(self, client, employee, admin):
        day = _upcoming_monday().isoformat()
        resp = await client.get(
            f"/api/v1/requests/who-is-off?day={day}", headers=auth_headers_for(employee),
        )
        assert resp.status_code == 403

        resp = await client.get(
            f"/api/v1/requests/who-is-off?day={day}", headers=auth_headers_for(admin),
        )
        assert resp.status_code == 200
        assert resp.json() == []


# ── Balances ────────────────────────────────────────────────────────


class TestBalanceEndpoints:

    async def test_own_balances_created_on_first_read(self, client, employee):
        resp = await client.get("/api/v1/balances?year=2025", headers=auth_headers_for(employee))

        assert resp.status_code == 200
        balances = resp.json()
        assert {b["leave_type"] for b in balances} == {"VACATION", "SICK", "PAID_LEAVE", "PERSONAL"}
        assert Decimal(_balance(balances, "SICK")["remaining_days"]) == 8

    async def test_admin_adjusts_and_audit_log_records_it(self, client, employee, admin):
        resp = await client.post(
            f"/api/v1/balances/{employee.id}/adjust",
            json={"leave_type": "SICK", "year": 2025, "days": "2", "reason": "Backfill"},
            headers=auth_headers_for(admin),
        )
        assert resp.status_code == 200, resp.text
        assert Decimal(resp.json()["remaining_days"]) == 6

        resp = await client.get(
            "/api/v1/admin/audit-logs?entity_type=BALANCE", headers=auth_headers_for(admin),
        )
        [entry] = resp.json()
        assert entry["entity_id"] == f"{employee.id}:2025:SICK"
        assert entry["details"]["reason"] == "Backfill"

    async def test_adjust_beyond_balance(self, client, employee, admin):
        resp = await client.post(
            f"/api/v1/balances/{employee.id}/adjust",
            json={"leave_type": "PERSONAL", "year": 2025, "days": "5", "reason": "Oops"},
            headers=auth_headers_for(admin),
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "INSUFFICIENT_BALANCE"

    async def test_employee_cannot_view_others(self, client, employee, admin):
        resp = await client.get(
            f"/api/v1/balances/{admin.id}", headers=auth_headers_for(employee),
        )
        assert resp.status_code == 403

    async def test_audit_logs_admin_only(self, client, employee):
        resp = await client.get("/api/v1/admin/audit-logs", headers=auth_headers_for(employee))
        assert resp.status_code == 403


# ── Overtime ────────────────────────────────────────────────────────


async def test_overtime_rollup_endpoint(client, admin):
    resp = await client.get("/api/v1/overtime/rollup?year=2025", headers=auth_headers_for(admin))
    assert resp.status_code == 200
    assert resp.json() == []


async def test_overtime_hours_must_be_positive(client, employee):
    resp = await client.post(
        "/api/v1/overtime", json={"hours": "0"}, headers=auth_headers_for(employee),
    )
    assert resp.status_code == 422
