# tests/test_api.py
"""HTTP surface: routers, error mapping and the badge poll payload."""

import pytest
from fastapi.testclient import TestClient

from app.main import app


@pytest.fixture
def client(context, rule_day):
    app.state.context = context
    yield TestClient(app)
    app.state.context = None


def enroll(client, rid="REG-001"):
    response = client.post("/api/v1/registrants", json={"registration_id": rid, "display_name": "Kim Minji"})
    assert response.status_code == 200
    return response.json()


def voucher(client, rid="REG-001"):
    return client.get(f"/api/v1/registrants/{rid}/badges").json()[0]["token"]


class TestHealth:
    def test_health_reports_clock_and_db(self, client):
        body = client.get("/api/v1/health").json()
        assert body["database"] == "ok"
        assert body["event_time"] == "2026-01-20T09:00:00"
        assert body["zones_today"] == ["hall-a", "hall-b"]
        assert body["inside"] == 0


class TestAttendanceFlow:
    def test_check_in_and_out(self, client, context):
        enroll(client)
        context.clock.instant = context.clock.instant.replace(hour=9, minute=50)
        response = client.post("/api/v1/attendance/REG-001/check-in", json={"zone_id": "hall-a"})
        assert response.status_code == 200
        assert response.json()["action"] == "CHECKED_IN"

        context.clock.advance(minutes=40)
        response = client.post("/api/v1/attendance/REG-001/check-out", json={})
        body = response.json()
        assert body["action"] == "CHECKED_OUT"
        assert body["record"]["total_recognized_minutes"] == 25
        assert body["logs"][0]["deduction_minutes"] == 15

        logs = client.get("/api/v1/attendance/REG-001/logs").json()
        assert [entry["entry_type"] for entry in logs] == ["ENTER", "EXIT"]

    def test_switch_zone_and_occupancy(self, client, context):
        enroll(client)
        client.post("/api/v1/attendance/REG-001/check-in", json={"zone_id": "hall-a"})
        context.clock.advance(minutes=30)
        body = client.post("/api/v1/attendance/REG-001/switch-zone", json={"zone_id": "hall-b"}).json()
        assert body["action"] == "ZONE_SWITCHED"
        assert [entry["entry_type"] for entry in body["logs"]] == ["EXIT", "ENTER"]
        assert client.get("/api/v1/zones/occupancy").json()["zones"] == {"hall-b": 1}

    def test_scan_auto(self, client, context):
        enroll(client)
        first = client.post("/api/v1/attendance/REG-001/scan", json={"zone_id": "hall-a"}).json()
        context.clock.advance(minutes=5)
        second = client.post("/api/v1/attendance/REG-001/scan", json={"zone_id": "hall-a"}).json()
        assert (first["action"], second["action"]) == ("CHECKED_IN", "CHECKED_OUT")

    def test_scan_rejects_unknown_mode(self, client):
        enroll(client)
        response = client.post("/api/v1/attendance/REG-001/scan", json={"zone_id": "hall-a", "mode": "SIDEWAYS"})
        assert response.status_code == 422

    def test_live_projection_with_display_clock(self, client):
        enroll(client)
        client.post("/api/v1/attendance/REG-001/check-in", json={"zone_id": "hall-a"})
        body = client.get("/api/v1/attendance/REG-001/live", params={"at": "2026-01-20T10:30:00"}).json()
        assert body["in_progress_minutes"] == 75
        assert body["projected_minutes"] == 75
        assert body["current_zone_name"] == "Hall A"
        assert body["projected_goal_met"] is True
        assert client.get("/api/v1/attendance/REG-001").json()["total_recognized_minutes"] == 0

    def test_batch_exit(self, client, context):
        for rid in ("REG-1", "REG-2"):
            enroll(client, rid)
            client.post(f"/api/v1/attendance/{rid}/check-in", json={"zone_id": "hall-b"})
        context.clock.advance(hours=9)
        body = client.post("/api/v1/attendance/batch-exit", json={}).json()
        assert (body["processed"], body["failed"]) == (2, 0)
        assert client.get("/api/v1/zones/occupancy").json()["zones"] == {}


class TestErrorMapping:
    def test_double_check_in_is_conflict(self, client):
        enroll(client)
        client.post("/api/v1/attendance/REG-001/check-in", json={"zone_id": "hall-a"})
        response = client.post("/api/v1/attendance/REG-001/check-in", json={"zone_id": "hall-a"})
        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_CHECKED_IN"

    def test_check_out_outside_is_conflict(self, client):
        enroll(client)
        response = client.post("/api/v1/attendance/REG-001/check-out", json={})
        assert response.status_code == 409
        assert response.json()["code"] == "NOT_CHECKED_IN"

    def test_unknown_zone(self, client):
        enroll(client)
        response = client.post("/api/v1/attendance/REG-001/check-in", json={"zone_id": "hall-z"})
        assert response.status_code == 422
        assert response.json()["code"] == "UNKNOWN_ZONE"

    def test_unknown_registrant(self, client):
        response = client.get("/api/v1/attendance/REG-404")
        assert response.status_code == 404
        assert response.json()["code"] == "RECORD_NOT_FOUND"


class TestBadges:
    def test_poll_active_then_issued_with_attendance(self, client, context):
        enroll(client)
        token = voucher(client)
        body = client.get(f"/api/v1/badges/{token}").json()
        assert body["status"] == "ACTIVE"
        assert body["attendance"] is None

        client.post("/api/v1/attendance/REG-001/check-in", json={"zone_id": "hall-a"})
        context.clock.advance(minutes=30)
        body = client.get(f"/api/v1/badges/{token}").json()
        assert body["status"] == "ISSUED"
        assert body["badge_qr"] == "BADGE-REG-001"
        assert body["attendance"]["projected_minutes"] == 30
        assert body["poll_after_seconds"] == context.settings.LIVE_TICK_SECONDS

    def test_reissue_redirects_old_token(self, client):
        enroll(client)
        token = voucher(client)
        new = client.post(f"/api/v1/badges/{token}/reissue").json()
        body = client.get(f"/api/v1/badges/{token}").json()
        assert body["status"] == "EXPIRED"
        assert body["redirect_required"] is True
        assert body["replacement_token"] == new["token"]

    def test_reissue_issued_badge_is_conflict(self, client):
        enroll(client)
        client.post("/api/v1/badges/issue", json={"registration_id": "REG-001"})
        response = client.post(f"/api/v1/badges/{voucher(client)}/reissue")
        assert response.status_code == 409

    def test_unknown_token(self, client):
        response = client.get("/api/v1/badges/TKN-missing")
        assert response.status_code == 404
        assert response.json()["code"] == "TOKEN_NOT_FOUND"


class TestRules:
    def test_get_rules(self, client):
        body = client.get("/api/v1/rules/2026-01-20").json()
        assert [z["zone_id"] for z in body["zones"]] == ["hall-a", "hall-b"]
        assert body["zones"][0]["breaks"][0]["label"] == "coffee"

    def test_missing_rules(self, client):
        assert client.get("/api/v1/rules/2026-02-01").status_code == 404

    def test_replace_rules(self, client):
        rules = {
            "global_goal_minutes": 60,
            "zones": [{"zone_id": "main", "name": "Main Hall", "start_time": "10:00", "end_time": "17:00"}],
        }
        response = client.put("/api/v1/rules/2026-01-21", json=rules)
        assert response.status_code == 200
        assert response.json()["zones"][0]["zone_id"] == "main"

    def test_invalid_window_rejected(self, client):
        rules = {"zones": [{"zone_id": "x", "name": "X", "start_time": "12:00", "end_time": "09:00"}]}
        assert client.put("/api/v1/rules/2026-01-21", json=rules).status_code == 422

    def test_duplicate_zone_rejected(self, client):
        zone = {"zone_id": "x", "name": "X", "start_time": "09:00", "end_time": "12:00"}
        response = client.put("/api/v1/rules/2026-01-21", json={"zones": [zone, zone]})
        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_RULE"


class TestApiKey:
    @pytest.fixture
    def keyed(self, client, context):
        context.settings.API_KEY = "desk-secret"
        return client

    def test_staff_route_requires_context_key(self, keyed):
        body = {"registration_id": "REG-001"}
        assert keyed.post("/api/v1/registrants", json=body).status_code == 401
        assert keyed.post("/api/v1/registrants", json=body, headers={"X-API-Key": "wrong"}).status_code == 401
        assert keyed.post("/api/v1/registrants", json=body, headers={"X-API-Key": "desk-secret"}).status_code == 200

    def test_attendee_routes_stay_open(self, keyed):
        keyed.post("/api/v1/registrants", json={"registration_id": "REG-001"}, headers={"X-API-Key": "desk-secret"})
        token = keyed.get("/api/v1/registrants/REG-001/badges", params={"api_key": "desk-secret"}).json()[0]["token"]
        assert keyed.get(f"/api/v1/badges/{token}").status_code == 200
        assert keyed.get("/api/v1/attendance/REG-001/live").status_code == 200
        assert keyed.post("/api/v1/badges/issue", json={"registration_id": "REG-001"}).status_code == 401

    def test_expired_voucher_issue_is_conflict(self, client, context):
        enroll(client)
        context.clock.advance(days=8)
        response = client.post("/api/v1/badges/issue", json={"registration_id": "REG-001"})
        assert response.status_code == 409
        assert response.json()["code"] == "VOUCHER_EXPIRED"
