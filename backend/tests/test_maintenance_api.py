# backend/tests/test_maintenance_api.py
from __future__ import annotations

from conftest import LANDLORD_ID, MANAGER_ID, TENANT_A, TENANT_B, as_user

HEATER = {
    "propertyId": 1,
    "unitNumber": "203",
    "issue": "Broken Heater",
    "description": "Heater making loud noise, not heating.",
    "priority": "high",
}


def _submit(client, payload=None, user_id=TENANT_A):
    return client.post("/api/maintenance-requests", json=payload or HEATER, headers=as_user(user_id, "tenant"))


def test_submit_returns_camel_case_record(client):
    r = _submit(client)
    assert r.status_code == 201
    body = r.json()

    assert body["status"] == "pending"
    assert body["priority"] == "high"
    assert body["tenantId"] == TENANT_A
    assert body["propertyId"] == 1
    assert body["unitNumber"] == "203"
    assert body["completedDate"] is None
    assert body["scheduledDate"] is None
    assert body["tenantName"] == "Alice Johnson"
    assert body["propertyName"] == "Sunset Apartments"
    assert isinstance(body["id"], int)
    assert body["createdAt"] == body["updatedAt"]
    assert "X-Request-ID" in r.headers


def test_submit_validation_failures_are_400(client):
    r = _submit(client, {**HEATER, "description": "too short"})
    assert r.status_code == 400
    assert r.json()["error"] == "validation_error"

    r = _submit(client, {k: v for k, v in HEATER.items() if k != "propertyId"})
    assert r.status_code == 400

    r = _submit(client, {**HEATER, "unitNumber": 999})
    assert r.status_code == 400


def test_requests_without_credentials_are_401(client):
    assert client.post("/api/maintenance-requests", json=HEATER).status_code == 401
    assert client.get("/api/maintenance-requests").status_code == 401
    assert client.patch("/api/maintenance-requests/1", json={"status": "in_progress"}).status_code == 401


def test_patch_schedule_then_reject_and_reopen(client):
    rid = _submit(client).json()["id"]
    landlord = as_user(LANDLORD_ID, "landlord")

    r = client.patch(
        f"/api/maintenance-requests/{rid}",
        json={"status": "scheduled", "scheduledDate": "2025-06-01"},
        headers=landlord,
    )
    assert r.status_code == 200
    assert r.json()["status"] == "scheduled"
    assert r.json()["scheduledDate"].startswith("2025-06-01")

    r = client.patch(f"/api/maintenance-requests/{rid}", json={"status": "completed"}, headers=landlord)
    assert r.status_code == 409
    body = r.json()
    assert body["error"] == "invalid_transition"
    assert body["currentStatus"] == "scheduled"
    assert body["allowedTargets"] == ["in_progress", "scheduled"]

    client.patch(f"/api/maintenance-requests/{rid}", json={"status": "in_progress"}, headers=landlord)
    r = client.patch(f"/api/maintenance-requests/{rid}", json={"status": "completed"}, headers=landlord)
    assert r.json()["status"] == "completed"
    assert r.json()["completedDate"] is not None

    r = client.patch(f"/api/maintenance-requests/{rid}", json={"status": "pending"}, headers=landlord)
    assert r.status_code == 200
    assert r.json()["completedDate"] is None


def test_tenant_patch_is_403(client):
    rid = _submit(client).json()["id"]

    r = client.patch(
        f"/api/maintenance-requests/{rid}",
        json={"status": "completed"},
        headers=as_user(TENANT_A, "tenant"),
    )
    assert r.status_code == 403
    assert r.json()["error"] == "authorization_error"

    detail = client.get(f"/api/maintenance-requests/{rid}", headers=as_user(TENANT_A, "tenant")).json()
    assert detail["status"] == "pending"


def test_patch_outside_caller_scope_matches_get(client):
    rid = _submit(client).json()["id"]

    for headers in (as_user(MANAGER_ID, "property_manager"), as_user(TENANT_B, "tenant")):
        got = client.get(f"/api/maintenance-requests/{rid}", headers=headers)
        patched = client.patch(f"/api/maintenance-requests/{rid}", json={"status": "in_progress"}, headers=headers)
        assert got.status_code == 404
        assert patched.status_code == 404
        assert patched.json()["error"] == "not_found"


def test_patch_unknown_id_is_404(client):
    r = client.patch(
        "/api/maintenance-requests/4040",
        json={"status": "in_progress"},
        headers=as_user(LANDLORD_ID, "landlord"),
    )
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


def test_list_by_query_identity(client):
    _submit(client)
    _submit(client, {**HEATER, "unitNumber": "204", "issue": "Window latch"}, user_id=TENANT_B)

    r = client.get("/api/maintenance-requests", params={"role": "tenant", "userId": TENANT_A})
    assert r.status_code == 200
    assert [x["tenantId"] for x in r.json()] == [TENANT_A]

    r = client.get("/api/maintenance-requests", params={"role": "landlord", "userId": LANDLORD_ID, "sort": "oldest"})
    assert [x["issue"] for x in r.json()] == ["Broken Heater", "Window latch"]

    r = client.get("/api/maintenance-requests", params={"role": "landlord", "userId": LANDLORD_ID, "search": "latch"})
    assert [x["issue"] for x in r.json()] == ["Window latch"]

    r = client.get("/api/maintenance-requests", params={"role": "tenant", "userId": 555})
    assert r.status_code == 200
    assert r.json() == []


def test_list_filters_by_property_id(client):
    _submit(client)
    landlord = as_user(LANDLORD_ID, "landlord")

    r = client.get("/api/maintenance-requests", params={"propertyId": 1}, headers=landlord)
    assert r.status_code == 200
    assert [x["propertyId"] for x in r.json()] == [1]

    # another owner's property narrows to nothing rather than widening the scope
    r = client.get("/api/maintenance-requests", params={"propertyId": 2}, headers=landlord)
    assert r.status_code == 200
    assert r.json() == []


def test_list_query_must_match_authenticated_caller(client):
    r = client.get(
        "/api/maintenance-requests",
        params={"role": "tenant", "userId": TENANT_B},
        headers=as_user(TENANT_A, "tenant"),
    )
    assert r.status_code == 403

    r = client.get("/api/maintenance-requests", headers=as_user(TENANT_A, "tenant"))
    assert r.status_code == 200


def test_stats_endpoint(client):
    _submit(client)
    rid = _submit(client, {**HEATER, "issue": "Smoke detector"}).json()["id"]
    client.patch(f"/api/maintenance-requests/{rid}", json={"status": "urgent"}, headers=as_user(LANDLORD_ID, "landlord"))

    r = client.get("/api/maintenance-requests/stats", params={"ownerId": LANDLORD_ID})
    assert r.status_code == 200
    assert r.json() == {"total": 2, "urgent": 1, "pending": 1, "in_progress": 0, "scheduled": 0, "completed": 0}

    r = client.get("/api/maintenance-requests/stats", headers=as_user(TENANT_A, "tenant"))
    assert r.status_code == 403

    r = client.get("/api/maintenance-requests/stats", headers=as_user(MANAGER_ID, "property_manager"))
    assert r.json()["total"] == 0


def test_actions_endpoint(client):
    rid = _submit(client).json()["id"]

    r = client.get(f"/api/maintenance-requests/{rid}/actions", headers=as_user(LANDLORD_ID, "landlord"))
    assert r.status_code == 200
    assert [a["label"] for a in r.json()] == ["Start Work", "Schedule", "Mark Urgent"]
    assert r.json()[0]["targetStatus"] == "in_progress"

    r = client.get(f"/api/maintenance-requests/{rid}/actions", headers=as_user(TENANT_A, "tenant"))
    assert r.json() == []

    r = client.get(f"/api/maintenance-requests/{rid}/actions", headers=as_user(TENANT_B, "tenant"))
    assert r.status_code == 404


def test_notes_endpoint(client):
    rid = _submit(client).json()["id"]

    r = client.post(
        f"/api/maintenance-requests/{rid}/notes",
        json={"note": "Please knock loudly"},
        headers=as_user(TENANT_A, "tenant"),
    )
    assert r.status_code == 200
    assert "Please knock loudly" in r.json()["notes"]

    r = client.post(
        f"/api/maintenance-requests/{rid}/notes",
        json={"note": "hi"},
        headers=as_user(TENANT_B, "tenant"),
    )
    assert r.status_code == 404


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
