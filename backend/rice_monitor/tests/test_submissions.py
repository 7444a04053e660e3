import csv
import io
from datetime import datetime

from .conftest import create_field, create_submission, ensure_auth_headers, login


def test_field_to_submission_scenario(client):
    body, headers = login(client, email="a@example.com", name="A")
    assert body["user"]["role"] in ("observer", "researcher", "admin")
    field = create_field(client, headers, name="Plot 1")

    created = create_submission(client, headers, field["id"], growth_stage="Seedling")
    assert created["status"] == "submitted"
    assert created["user_id"] == body["user"]["id"]

    fetched = client.get(f"/api/v1/submissions/{created['id']}", headers=headers)
    assert fetched.status_code == 200
    data = fetched.json()["data"]
    assert data["field"]["name"] == "Plot 1"
    assert data["growth_stage"] == "Seedling"
    assert data["status"] == "submitted"


def test_created_submissions_are_distinct_and_readable(client):
    headers, _ = ensure_auth_headers(client)
    field = create_field(client, headers)
    ids = [create_submission(client, headers, field["id"], notes=f"visit {i}")["id"] for i in range(3)]
    assert len(set(ids)) == 3
    for i, sid in enumerate(ids):
        resp = client.get(f"/api/v1/submissions/{sid}", headers=headers)
        assert resp.json()["data"]["notes"] == f"visit {i}"


def test_create_requires_observer_and_known_field(client):
    headers, _ = ensure_auth_headers(client)
    field = create_field(client, headers)
    missing = client.post(
        "/api/v1/submissions",
        json={"field_id": field["id"], "date": "2024-06-01T08:00:00Z", "growth_stage": "Seedling"},
        headers=headers,
    )
    assert missing.status_code == 400
    assert missing.json()["error"] == "invalid_request"

    unknown = client.post(
        "/api/v1/submissions",
        json={
            "field_id": "no-such-field",
            "date": "2024-06-01T08:00:00Z",
            "growth_stage": "Seedling",
            "observer_name": "Ana",
        },
        headers=headers,
    )
    assert unknown.status_code == 400
    assert unknown.json()["message"] == "Unknown field_id: no-such-field"


def test_create_ignores_server_controlled_fields(client):
    headers, user = ensure_auth_headers(client)
    field = create_field(client, headers)
    created = create_submission(client, headers, field["id"], status="approved", user_id="intruder", id="chosen")
    assert created["status"] == "submitted"
    assert created["user_id"] == user["id"]
    assert created["id"] != "chosen"


def test_update_keeps_protected_fields(client):
    headers, user = ensure_auth_headers(client)
    field = create_field(client, headers)
    created = create_submission(client, headers, field["id"])

    resp = client.put(
        f"/api/v1/submissions/{created['id']}",
        json={
            "growth_stage": "Tillering",
            "notes": "edited",
            "id": "other",
            "user_id": "someone",
            "created_at": "2000-01-01T00:00:00Z",
        },
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["growth_stage"] == "Tillering"
    assert data["notes"] == "edited"
    assert data["id"] == created["id"]
    assert data["user_id"] == user["id"]
    assert data["created_at"] == created["created_at"]
    assert datetime.fromisoformat(data["updated_at"]) >= datetime.fromisoformat(created["updated_at"])


def test_update_to_unknown_field_rejected(client):
    headers, _ = ensure_auth_headers(client)
    field = create_field(client, headers)
    created = create_submission(client, headers, field["id"])
    resp = client.put(f"/api/v1/submissions/{created['id']}", json={"field_id": "gone"}, headers=headers)
    assert resp.status_code == 400


def test_foreign_submission_forbidden_admin_allowed(client):
    owner, _ = ensure_auth_headers(client)
    stranger, _ = ensure_auth_headers(client)
    admin, _ = ensure_auth_headers(client, role="admin")
    field = create_field(client, owner)
    created = create_submission(client, owner, field["id"])
    path = f"/api/v1/submissions/{created['id']}"

    assert client.get(path, headers=stranger).status_code == 403
    assert client.put(path, json={"notes": "x"}, headers=stranger).status_code == 403
    assert client.delete(path, headers=stranger).status_code == 403

    assert client.get(path, headers=admin).status_code == 200
    assert client.put(path, json={"notes": "reviewed"}, headers=admin).json()["data"]["notes"] == "reviewed"
    assert client.delete(path, headers=admin).status_code == 200
    assert client.get(path, headers=owner).status_code == 404


def test_missing_submission_is_not_found_before_forbidden(client):
    headers, _ = ensure_auth_headers(client)
    resp = client.delete("/api/v1/submissions/missing", headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"error": "not_found", "message": "Submission not found"}


def test_owner_deletes_submission(client):
    headers, _ = ensure_auth_headers(client)
    field = create_field(client, headers)
    created = create_submission(client, headers, field["id"])
    resp = client.delete(f"/api/v1/submissions/{created['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Submission deleted successfully"}


def test_list_paginates_and_filters(client):
    headers, _ = ensure_auth_headers(client)
    field_a = create_field(client, headers, name="A")
    field_b = create_field(client, headers, name="B")
    for _ in range(3):
        create_submission(client, headers, field_a["id"])
    create_submission(client, headers, field_b["id"])

    page1 = client.get("/api/v1/submissions", params={"limit": 2, "page": 1}, headers=headers).json()["data"]
    page2 = client.get("/api/v1/submissions", params={"limit": 2, "page": 2}, headers=headers).json()["data"]
    assert page1["total"] == 4 and page2["total"] == 4
    assert len(page1["submissions"]) == 2 and len(page2["submissions"]) == 2
    ids = [s["id"] for s in page1["submissions"] + page2["submissions"]]
    assert len(set(ids)) == 4
    created = [datetime.fromisoformat(s["created_at"]) for s in page1["submissions"] + page2["submissions"]]
    assert created == sorted(created, reverse=True)

    by_field = client.get("/api/v1/submissions", params={"field_id": field_b["id"]}, headers=headers).json()["data"]
    assert by_field["total"] == 1
    assert by_field["submissions"][0]["field"]["name"] == "B"

    by_status = client.get("/api/v1/submissions", params={"status": "approved"}, headers=headers).json()["data"]
    assert by_status["total"] == 0
    assert by_status["submissions"] == []


def test_list_rejects_bad_paging(client):
    headers, _ = ensure_auth_headers(client)
    assert client.get("/api/v1/submissions", params={"limit": 0}, headers=headers).status_code == 400
    assert client.get("/api/v1/submissions", params={"limit": 101}, headers=headers).status_code == 400
    assert client.get("/api/v1/submissions", params={"page": 0}, headers=headers).status_code == 400
    assert client.get("/api/v1/submissions", params={"status": "lost"}, headers=headers).status_code == 400


def test_list_hides_other_users_rows(client):
    alice, _ = ensure_auth_headers(client)
    bob, _ = ensure_auth_headers(client)
    create_submission(client, bob, create_field(client, bob)["id"])
    data = client.get("/api/v1/submissions", headers=alice).json()["data"]
    assert data["total"] == 0


def test_status_change_is_admin_only(client):
    headers, _ = ensure_auth_headers(client)
    field = create_field(client, headers)
    created = create_submission(client, headers, field["id"])
    resp = client.put(f"/api/v1/submissions/{created['id']}", json={"status": "approved"}, headers=headers)
    assert resp.status_code == 403
    resp = client.put(f"/api/v1/submissions/{created['id']}/status", json={"status": "under_review"}, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Admin access required"


def test_status_walks_the_review_cycle(client):
    owner, _ = ensure_auth_headers(client)
    admin, _ = ensure_auth_headers(client, role="admin")
    created = create_submission(client, owner, create_field(client, owner)["id"])
    path = f"/api/v1/submissions/{created['id']}"

    skip = client.put(f"{path}/status", json={"status": "approved"}, headers=admin)
    assert skip.status_code == 400
    assert skip.json()["message"] == "Cannot move submission from submitted to approved"

    for status in ("under_review", "rejected", "under_review", "approved"):
        resp = client.put(f"{path}/status", json={"status": status}, headers=admin)
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"]["status"] == status

    # same status again is a no-op, moving out of approved is not allowed
    assert client.put(path, json={"status": "approved"}, headers=admin).status_code == 200
    assert client.put(path, json={"status": "submitted"}, headers=admin).status_code == 400


def test_dangling_field_reads_as_null(client):
    headers, _ = ensure_auth_headers(client)
    field = create_field(client, headers)
    created = create_submission(client, headers, field["id"])
    assert client.delete(f"/api/v1/fields/{field['id']}", headers=headers).status_code == 200

    resp = client.get(f"/api/v1/submissions/{created['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["field"] is None
    assert resp.json()["data"]["field_id"] == field["id"]


def test_export_csv(client):
    headers, _ = ensure_auth_headers(client)
    field = create_field(client, headers, location="South terrace")
    created = [
        create_submission(client, headers, field["id"], growth_stage=stage)
        for stage in ("Seedling", "Tillering", "Flowering")
    ]

    resp = client.get("/api/v1/submissions/export", headers=headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert resp.headers["content-disposition"] == "attachment; filename=submissions.csv"

    lines = resp.text.strip().split("\n")
    assert len(lines) == 4
    rows = list(csv.reader(io.StringIO(resp.text)))
    assert rows[0] == ["ID", "Date", "Location", "Growth Stage", "Observer", "Status"]
    assert rows[1] == [created[0]["id"], "2024-06-01", "South terrace", "Seedling", "Ana", "submitted"]
    assert {r[0] for r in rows[1:]} == {s["id"] for s in created}


def test_vocabulary_lists_shared_values(client):
    assert client.get("/api/v1/submissions/vocabulary").status_code == 401
    headers, _ = ensure_auth_headers(client)
    resp = client.get("/api/v1/submissions/vocabulary", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["growth_stages"][0] == "Seedling"
    assert "Harvested" in data["growth_stages"]
    assert "Healthy" in data["plant_conditions"]
    assert data["statuses"] == ["submitted", "under_review", "approved", "rejected"]
    assert data["roles"] == ["admin", "researcher", "observer"]
    assert data["report_types"] == ["summary", "detailed", "field_analysis"]


def test_status_literal_follows_vocabulary():
    from typing import get_args

    from rice_monitor import models, schemas

    assert get_args(schemas.SubmissionStatus) == models.SUBMISSION_STATUSES
    assert get_args(schemas.Role) == models.ROLES
    assert get_args(schemas.ReportType) == schemas.REPORT_TYPES
