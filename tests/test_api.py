"""
Tests for the JSON API.
"""

import pytest
from conftest import USER_A, USER_B

from case_ledger import set_advisor
from case_ledger.services.advisory import FALLBACK_MESSAGE, AdvisoryService
from case_ledger.services.store import JsonFileStore

CASE_BODY = {
    "case_number": "CR/1/2024",
    "next_date": "2024-05-10",
    "court_name": "District Court",
    "case_type": "Criminal",
    "case_name_parties": "State vs Rao",
    "step_of_the_day": "Filing",
    "notes": "bring docs",
    "priority": "High",
}


@pytest.fixture
def other_headers():
    return {"X-User-Id": USER_B}


def create_case(client, headers, **overrides):
    body = dict(CASE_BODY, **overrides)
    response = client.post("/api/cases", json=body, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["case"]


def test_missing_principal_is_401(client):
    response = client.get("/api/cases")
    assert response.status_code == 401
    assert response.get_json()["success"] is False


def test_malformed_principal_is_401(client):
    response = client.get("/api/cases", headers={"X-User-Id": "../etc/passwd"})
    assert response.status_code == 401


def test_create_and_fetch_case(client, headers):
    created = create_case(client, headers)

    assert created["user_id"] == USER_A
    assert created["status"] == "Active"
    assert created["history"] == []
    assert created["created_at"] == created["updated_at"]

    response = client.get(f"/api/cases/{created['case_id']}", headers=headers)
    assert response.status_code == 200
    assert response.get_json()["case"] == created


@pytest.mark.parametrize(
    "body,field",
    [
        ({"next_date": "2024-05-10"}, "case_number"),
        (dict(CASE_BODY, next_date="10/05/2024"), "next_date"),
        (dict(CASE_BODY, next_date="2024-02-30"), "next_date"),
        (dict(CASE_BODY, priority="Urgent"), "priority"),
        (dict(CASE_BODY, status="Archived"), "status"),
    ],
)
def test_invalid_case_is_400(client, headers, body, field):
    response = client.post("/api/cases", json=body, headers=headers)

    assert response.status_code == 400
    payload = response.get_json()
    assert payload["error"] == "Invalid input"
    assert payload["details"]["field"] == field


def test_non_json_body_is_400(client, headers):
    response = client.post("/api/cases", data="case_number=1", headers=headers)
    assert response.status_code == 400


def test_unknown_case_is_404(client, headers):
    response = client.get("/api/cases/does-not-exist", headers=headers)
    assert response.status_code == 404
    assert response.get_json()["details"]["code"] == "NOT_FOUND"


def test_foreign_case_is_403(client, headers, other_headers):
    created = create_case(client, headers)

    assert client.get(f"/api/cases/{created['case_id']}", headers=other_headers).status_code == 403
    assert client.put(f"/api/cases/{created['case_id']}", json={"notes": "x"}, headers=other_headers).status_code == 403
    assert client.delete(f"/api/cases/{created['case_id']}", headers=other_headers).status_code == 403
    assert client.get(f"/api/cases/{created['case_id']}", headers=headers).status_code == 200


def test_edit_with_new_date_records_history(client, headers):
    created = create_case(client, headers, case_number="X1", next_date="2024-01-10", step_of_the_day="Filing")

    response = client.put(
        f"/api/cases/{created['case_id']}",
        json={"next_date": "2024-02-10", "step_of_the_day": "Arguments"},
        headers=headers,
    )

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["history_appended"] is True
    assert payload["case"]["previous_date"] == "2024-01-10"
    assert payload["case"]["history"] == [{"date": "2024-01-10", "step": "Filing", "notes": "bring docs"}]


def test_edit_cannot_rewrite_history(client, headers):
    created = create_case(client, headers)
    client.put(f"/api/cases/{created['case_id']}", json={"next_date": "2024-06-01"}, headers=headers)

    response = client.put(
        f"/api/cases/{created['case_id']}", json={"notes": "updated", "history": []}, headers=headers
    )

    payload = response.get_json()
    assert payload["history_appended"] is False
    assert len(payload["case"]["history"]) == 1
    assert payload["case"]["notes"] == "updated"


def test_history_endpoint_newest_first(client, headers):
    created = create_case(client, headers, next_date="2024-01-10")
    for next_date in ("2024-03-10", "2024-02-10"):
        client.put(f"/api/cases/{created['case_id']}", json={"next_date": next_date}, headers=headers)

    payload = client.get(f"/api/cases/{created['case_id']}/history", headers=headers).get_json()

    assert [h["date"] for h in payload["history"]] == ["2024-03-10", "2024-01-10"]
    assert payload["derived"] is False
    assert payload["next_date"] == "2024-02-10"


def test_history_endpoint_derives_legacy_entry(client, headers):
    created = create_case(client, headers, previous_date="2023-12-01")

    payload = client.get(f"/api/cases/{created['case_id']}/history", headers=headers).get_json()

    assert payload["derived"] is True
    assert payload["history"][0]["step"] == "Previous Proceeding"


def test_history_pdf_download(client, headers):
    created = create_case(client, headers)

    response = client.get(f"/api/cases/{created['case_id']}/history.pdf", headers=headers)

    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert "CR-1-2024_History.pdf" in response.headers["Content-Disposition"]
    assert response.data.startswith(b"%PDF")


def test_advice_without_key_uses_fallback(client, headers):
    created = create_case(client, headers)

    payload = client.get(f"/api/cases/{created['case_id']}/advice", headers=headers).get_json()

    assert payload["advice"] == FALLBACK_MESSAGE
    assert payload["fallback"] is True


def test_advice_from_injected_generator(client, headers):
    set_advisor(AdvisoryService(generator=lambda case_type, step, notes: f"Prepare for {step}"))
    created = create_case(client, headers)

    payload = client.get(f"/api/cases/{created['case_id']}/advice", headers=headers).get_json()

    assert payload["advice"] == "Prepare for Filing"
    assert payload["fallback"] is False


def test_list_and_dashboard_views(client, headers):
    create_case(client, headers, serial_number="2")
    create_case(client, headers, serial_number="1", court_name="High Court")
    create_case(client, headers, next_date="2024-06-01")

    listed = client.get("/api/cases?sort=DATE_ASC", headers=headers).get_json()
    assert listed["count"] == 3

    board = client.get("/api/cases/dashboard?date=2024-05-10", headers=headers).get_json()
    assert [c["serial_number"] for c in board["cases"]] == ["1", "2"]
    assert board["courts"] == ["All", "District Court", "High Court"]

    assert client.get("/api/cases?sort=OLDEST", headers=headers).status_code == 400


def test_bulk_complete_and_delete(client, headers):
    a = create_case(client, headers)["case_id"]
    b = create_case(client, headers)["case_id"]

    completed = client.post("/api/cases/bulk-complete", json={"ids": [a, "missing"]}, headers=headers).get_json()
    assert completed["completed"] == [a]
    assert completed["skipped"] == ["missing"]
    assert {c["case_id"]: c["status"] for c in completed["cases"]} == {a: "Completed", b: "Active"}

    deleted = client.post("/api/cases/bulk-delete", json={"ids": [a, "missing", b]}, headers=headers).get_json()
    assert deleted["deleted"] == [a, b]
    assert deleted["cases"] == []

    assert client.post("/api/cases/bulk-delete", json={"ids": []}, headers=headers).status_code == 400


def test_client_links_and_unlinks_cases(client, headers):
    a = create_case(client, headers)["case_id"]
    b = create_case(client, headers)["case_id"]

    response = client.post(
        "/api/clients", json={"name": "Asha Rao", "case_number": "CR/1/2024", "phone": "98000"}, headers=headers
    )
    assert response.status_code == 201
    payload = response.get_json()
    client_id = payload["client"]["client_id"]
    assert sorted(payload["linked_cases"]) == sorted([a, b])
    assert payload["client"]["case_name"] == "State vs Rao"
    assert payload["client"]["contact_stale"] is True

    assert client.get(f"/api/cases/{a}", headers=headers).get_json()["case"]["client_id"] == client_id

    removed = client.delete(f"/api/clients/{client_id}", headers=headers).get_json()
    assert sorted(removed["unlinked_cases"]) == sorted([a, b])
    assert client.get(f"/api/cases/{b}", headers=headers).get_json()["case"]["client_id"] is None
    assert client.get("/api/clients", headers=headers).get_json()["count"] == 0


def test_client_validation_and_suggestions(client, headers):
    create_case(client, headers)

    assert client.post("/api/clients", json={"phone": "1"}, headers=headers).status_code == 400
    assert client.post("/api/clients", json={"name": "X", "email": "nope"}, headers=headers).status_code == 400

    suggestions = client.get("/api/clients/case-suggestions?q=cr/1", headers=headers).get_json()["suggestions"]
    assert [s["case_number"] for s in suggestions] == ["CR/1/2024"]
    assert client.get("/api/clients/case-suggestions?q=c", headers=headers).get_json()["suggestions"] == []


def test_update_client(client, headers):
    created = client.post("/api/clients", json={"name": "Asha"}, headers=headers).get_json()["client"]

    response = client.put(
        f"/api/clients/{created['client_id']}", json={"last_contacted": "2024-05-01"}, headers=headers
    )

    assert response.status_code == 200
    updated = response.get_json()["client"]
    assert updated["name"] == "Asha"
    assert updated["last_contacted"] == "2024-05-01"
    assert updated["created_at"] == created["created_at"]


def test_session_and_profile(client):
    user = client.post("/api/session", json={"email": "advocate@example.com"}).get_json()["user"]
    headers = {"X-User-Id": user["user_id"]}

    assert user["name"] == "advocate"
    assert client.post("/api/session", json={"email": "advocate@example.com"}).get_json()["user"] == user

    create_case(client, headers)
    profile = client.get("/api/profile", headers=headers).get_json()
    assert profile["stats"] == {"total": 1, "active": 1, "completed": 0}

    renamed = client.put("/api/profile", json={"name": "A. Advocate"}, headers=headers).get_json()
    assert renamed["user"]["name"] == "A. Advocate"


def test_profile_of_unknown_user_is_404(client, headers):
    assert client.get("/api/profile", headers=headers).status_code == 404


def test_storage_failure_is_503(client, headers, app_ledger, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    app_ledger.repository.store = JsonFileStore(str(blocker / "data"))

    response = client.get("/api/cases", headers=headers)
    assert response.status_code == 503
    assert response.get_json()["details"]["code"] == "PERSISTENCE_UNAVAILABLE"

    assert client.get("/api/health").status_code == 503


def test_malformed_stored_case_is_503(client, headers, app_ledger):
    app_ledger.repository.store.put("cases", [{"case_id": "x", "user_id": USER_A}])

    response = client.get("/api/cases", headers=headers)
    assert response.status_code == 503
    assert response.get_json()["details"]["code"] == "PERSISTENCE_UNAVAILABLE"


def test_bulk_complete_with_foreign_id_is_403(client, headers, other_headers):
    mine = create_case(client, headers)["case_id"]
    theirs = create_case(client, other_headers)["case_id"]

    response = client.post("/api/cases/bulk-complete", json={"ids": [mine, theirs]}, headers=headers)
    assert response.status_code == 403
    assert client.get(f"/api/cases/{mine}", headers=headers).get_json()["case"]["status"] == "Active"
