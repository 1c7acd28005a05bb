"""Tests for the HTTP API."""
import pytest


@pytest.mark.asyncio
async def test_health(client):
    """Health endpoint returns ok."""
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_list_programs_empty(client):
    r = await client.get("/api/programs")
    assert r.status_code == 200
    assert r.json() == []


@pytest.mark.asyncio
async def test_create_program_requires_admin(client):
    r = await client.post("/api/programs", json={"name": "Elocution", "section": "single", "category": "A"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_create_program_validates_section(client, auth_headers):
    r = await client.post(
        "/api/programs",
        json={"name": "Elocution", "section": "solo", "category": "A"},
        headers=auth_headers,
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_login_wrong_password(client, auth_headers):
    r = await client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me(client, auth_headers):
    r = await client.get("/api/auth/me", headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"username": "admin", "role": "admin"}

    r = await client.get("/api/auth/me/optional")
    assert r.status_code == 200
    assert r.json() is None


@pytest.mark.asyncio
async def test_x_auth_token_fallback(client, auth_headers):
    token = auth_headers["Authorization"].split(" ", 1)[1]
    r = await client.get("/api/auth/me", headers={"X-Auth-Token": token})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_student_chest_numbers(client, auth_headers):
    """Chest numbers are generated from the team name and must be unique."""
    r = await client.post("/api/teams", json={"name": "Alpha", "color": "#ff0000"}, headers=auth_headers)
    assert r.status_code == 200
    team_id = r.json()["id"]
    assert r.json()["total_points"] == 0

    r = await client.post("/api/students", json={"name": "Anna", "team_id": team_id}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["chest_no"] == "AL001"

    r = await client.get(f"/api/teams/{team_id}/next-chest-number")
    assert r.json() == {"chest_no": "AL002"}

    r = await client.post(
        "/api/students",
        json={"name": "Arun", "team_id": team_id, "chest_no": " al001 "},
        headers=auth_headers,
    )
    assert r.status_code == 409
    assert r.json()["kind"] == "duplicate"

    r = await client.post(
        "/api/students",
        json={"name": "Arun", "team_id": team_id, "chest_no": "x-7"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["chest_no"] == "X-7"

    r = await client.get(f"/api/teams/{team_id}")
    assert [s["name"] for s in r.json()["students"]] == ["Anna", "Arun"]


@pytest.mark.asyncio
async def test_jury_avatar_fixed(client, auth_headers):
    r = await client.post("/api/juries", json={"name": "Judge", "password": "secret"}, headers=auth_headers)
    assert r.status_code == 200
    jury = r.json()
    assert jury["id"].startswith("jury-")
    assert jury["avatar"]

    r = await client.patch(
        f"/api/juries/{jury['id']}",
        json={"name": "Judge Judy", "avatar": "/img/other.webp"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["name"] == "Judge Judy"
    assert r.json()["avatar"] == jury["avatar"]


@pytest.mark.asyncio
async def test_result_workflow_over_http(client, auth_headers, festival, publisher):
    """Assign, jury submits, duplicate is refused, admin approves, scoreboard moves."""
    single = festival["single"]
    jury = festival["jury"]
    s1, s2, s3, _ = festival["students"]

    r = await client.post(
        "/api/assignments",
        json={"program_id": single.id, "jury_id": jury.id},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["status"] == "pending"

    r = await client.post("/api/auth/jury/login", json={"id": jury.id, "password": "jurypass"})
    assert r.status_code == 200
    jury_headers = {"Authorization": f"Bearer {r.json()['access_token']}"}

    body = {
        "program_id": single.id,
        "winners": [
            {"position": 1, "id": s1.id, "grade": "A"},
            {"position": 2, "id": s2.id, "grade": "B"},
            {"position": 3, "id": s3.id, "grade": "C"},
        ],
    }
    # Admin tokens cannot submit as a jury
    r = await client.post("/api/results", json=body, headers=auth_headers)
    assert r.status_code == 403

    r = await client.post("/api/results", json=body, headers=jury_headers)
    assert r.status_code == 200
    result = r.json()
    assert result["status"] == "pending"
    assert [e["score"] for e in result["entries"]] == [15, 10, 6]

    r = await client.post("/api/results", json=body, headers=jury_headers)
    assert r.status_code == 409
    assert r.json()["kind"] == "duplicate_submission"
    assert r.json()["state"] == "pending"

    r = await client.get("/api/results/pending", headers=auth_headers)
    assert [x["id"] for x in r.json()] == [result["id"]]
    r = await client.get("/api/results")
    assert r.json() == []

    r = await client.get("/api/assignments", params={"jury_id": jury.id}, headers=auth_headers)
    assert r.json()[0]["status"] == "submitted"

    r = await client.post(f"/api/results/{result['id']}/approve", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "approved"

    r = await client.post(f"/api/results/{result['id']}/approve", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["kind"] == "not_found"

    r = await client.post("/api/results", json=body, headers=jury_headers)
    assert r.status_code == 409
    assert r.json()["state"] == "published"

    r = await client.get("/api/scoreboard")
    board = {row["name"]: row["total_points"] for row in r.json()}
    assert board == {"Alpha": 15, "Bravo": 10, "Charlie": 6}
    assert r.json()[0]["rank"] == 1

    r = await client.get(f"/api/results/program/{single.id}")
    assert r.status_code == 200
    assert r.json()["id"] == result["id"]

    r = await client.get("/api/notifications")
    data = r.json()
    assert data["unreadCount"] == 1
    assert data["notifications"][0]["program_name"] == "Elocution"

    r = await client.post("/api/notifications/read-all")
    assert r.json()["updated"] == 1

    r = await client.get("/api/assignments", params={"jury_id": jury.id}, headers=auth_headers)
    assert r.json()[0]["status"] == "completed"

    r = await client.get(f"/api/participants/{s1.chest_no}")
    assert r.json()["achievements"][0]["score"] == 15


@pytest.mark.asyncio
async def test_edit_and_delete_approved_over_http(client, auth_headers, festival):
    single = festival["single"]
    s1, s2, s3, s4 = festival["students"]
    winners = [
        {"position": 1, "id": s1.id, "grade": "A"},
        {"position": 2, "id": s2.id, "grade": "B"},
        {"position": 3, "id": s3.id, "grade": "C"},
    ]
    r = await client.post(
        "/api/results/admin",
        json={"program_id": single.id, "winners": winners},
        headers=auth_headers,
    )
    assert r.status_code == 200
    result_id = r.json()["id"]
    assert r.json()["jury_id"] == "jury-admin"

    # Approved edits only apply to published results
    r = await client.patch(f"/api/results/{result_id}", json={"winners": winners}, headers=auth_headers)
    assert r.status_code == 404

    await client.post(f"/api/results/{result_id}/approve", headers=auth_headers)

    winners[0] = {"position": 1, "id": s4.id, "grade": "none"}
    r = await client.patch(
        f"/api/results/{result_id}",
        json={"winners": winners, "penalties": [{"id": s2.id, "type": "student", "points": 3}]},
        headers=auth_headers,
    )
    assert r.status_code == 200
    r = await client.get("/api/scoreboard")
    board = {row["name"]: row["total_points"] for row in r.json()}
    assert board == {"Alpha": 10, "Bravo": 7, "Charlie": 6}

    r = await client.delete(f"/api/results/{result_id}", headers=auth_headers)
    assert r.status_code == 200
    r = await client.get("/api/scoreboard")
    assert all(row["total_points"] == 0 for row in r.json())


@pytest.mark.asyncio
async def test_invalid_candidate_over_http(client, auth_headers, festival):
    s1, s2, _, _ = festival["students"]
    r = await client.post(
        "/api/results/admin",
        json={
            "program_id": festival["single"].id,
            "winners": [
                {"position": 1, "id": s1.id},
                {"position": 2, "id": s2.id},
                {"position": 3, "id": "ghost"},
            ],
        },
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["kind"] == "invalid_candidate"


@pytest.mark.asyncio
async def test_team_portal_registration(client, festival):
    t1 = festival["teams"][0]
    s4 = festival["students"][3]

    r = await client.post("/api/auth/team/login", json={"id": t1.id, "password": "wrong"})
    assert r.status_code == 401
    r = await client.post("/api/auth/team/login", json={"id": t1.id, "password": "alphapass"})
    assert r.status_code == 200
    assert r.json()["role"] == "team"
    headers = {"Authorization": f"Bearer {r.json()['access_token']}"}

    r = await client.get("/api/settings/registration-window")
    assert r.json()["open"] is True

    r = await client.post(
        "/api/registrations",
        json={"program_id": festival["group"].id, "student_ids": [s4.id]},
        headers=headers,
    )
    assert r.status_code == 200
    reg_id = r.json()[0]["id"]

    r = await client.get("/api/registrations/mine", headers=headers)
    assert {x["program_id"] for x in r.json()} == {festival["single"].id, festival["group"].id}

    r = await client.delete(f"/api/registrations/mine/{reg_id}", headers=headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_registration_window_update(client, auth_headers):
    r = await client.patch(
        "/api/settings/registration-window",
        json={"start": "2020-01-02T00:00:00Z", "end": "2020-01-01T00:00:00Z"},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["kind"] == "validation"

    r = await client.patch(
        "/api/settings/registration-window",
        json={"start": "2020-01-01T00:00:00Z", "end": "2020-01-02T00:00:00Z"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["open"] is False


@pytest.mark.asyncio
async def test_delete_program_with_result_refused(client, auth_headers, festival):
    single = festival["single"]
    s1, s2, s3, _ = festival["students"]
    await client.post(
        "/api/results/admin",
        json={
            "program_id": single.id,
            "winners": [
                {"position": 1, "id": s1.id},
                {"position": 2, "id": s2.id},
                {"position": 3, "id": s3.id},
            ],
        },
        headers=auth_headers,
    )
    r = await client.delete(f"/api/programs/{single.id}", headers=auth_headers)
    assert r.status_code == 400

    r = await client.delete(f"/api/programs/{festival['group'].id}", headers=auth_headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_settings_backup_restore(client, auth_headers):
    r = await client.get("/api/settings/export", headers=auth_headers)
    assert r.status_code == 200
    dump = r.json()["settings"]

    r = await client.post(
        "/api/settings/import",
        json={"settings": {**dump, "festival_name": "Spring Fest"}},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["restored"] == len(dump) + 1

    r = await client.get("/api/settings/export", headers=auth_headers)
    assert r.json()["settings"]["festival_name"] == "Spring Fest"


@pytest.mark.asyncio
async def test_back_office_accounts(client, auth_headers):
    r = await client.post(
        "/api/auth/users", json={"username": "desk", "password": "deskpass"}, headers=auth_headers
    )
    assert r.status_code == 200
    assert r.json()["role"] == "user"

    r = await client.post(
        "/api/auth/users", json={"username": "desk", "password": "other"}, headers=auth_headers
    )
    assert r.status_code == 400

    r = await client.post("/api/auth/login", json={"username": "desk", "password": "deskpass"})
    assert r.status_code == 200
    desk_headers = {"Authorization": f"Bearer {r.json()['access_token']}"}
    r = await client.get("/api/auth/users", headers=desk_headers)
    assert r.status_code == 403

    r = await client.get("/api/auth/users", headers=auth_headers)
    by_name = {u["username"]: u for u in r.json()}
    assert by_name["desk"]["last_login_at"] is not None

    r = await client.delete("/api/auth/users/admin", headers=auth_headers)
    assert r.status_code == 400
    r = await client.delete("/api/auth/users/desk", headers=auth_headers)
    assert r.status_code == 200
    r = await client.delete("/api/auth/users/desk", headers=auth_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_unassigned_jury_submit_refused(client, auth_headers, festival):
    r = await client.post(
        "/api/juries", json={"name": "Guest", "password": "guestpass"}, headers=auth_headers
    )
    assert r.status_code == 200
    guest_id = r.json()["id"]
    r = await client.post("/api/auth/jury/login", json={"id": guest_id, "password": "guestpass"})
    headers = {"Authorization": f"Bearer {r.json()['access_token']}"}

    s1, s2, s3, _ = festival["students"]
    r = await client.post(
        "/api/results",
        json={
            "program_id": festival["single"].id,
            "winners": [
                {"position": 1, "id": s1.id},
                {"position": 2, "id": s2.id},
                {"position": 3, "id": s3.id},
            ],
        },
        headers=headers,
    )
    assert r.status_code == 400
    assert r.json()["kind"] == "validation"
    r = await client.get("/api/results/pending", headers=auth_headers)
    assert r.json() == []


@pytest.mark.asyncio
async def test_bulk_assignment_over_http(client, auth_headers, festival):
    r = await client.post(
        "/api/juries", json={"name": "Guest", "password": "guestpass"}, headers=auth_headers
    )
    guest_id = r.json()["id"]
    program_ids = [festival["single"].id, "missing", festival["group"].id]

    r = await client.post(
        "/api/assignments/bulk", json={"program_ids": program_ids, "jury_id": guest_id}, headers=auth_headers
    )
    assert r.status_code == 200
    data = r.json()
    assert data["assigned"] == [festival["single"].id, festival["group"].id]
    assert data["failed"] == [{"program_id": "missing", "error": "Program not found"}]
    assert data["message"] == "2 assigned, 1 failed"

    r = await client.get("/api/assignments", params={"jury_id": guest_id}, headers=auth_headers)
    assert {a["program_id"] for a in r.json()} == {festival["single"].id, festival["group"].id}
