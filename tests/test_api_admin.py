from conftest import ADMIN, DR_PAYASO, FOUNDER, PHOTOGRAPHER, RECRUIT, login, user_id


def test_user_directory_is_admin_only(client):
    assert client.get("/api/users", headers=login(client, RECRUIT)).status_code == 403

    admin = login(client, ADMIN)
    data = client.get("/api/users", headers=admin).get_json()
    assert data["total"] == 5

    dr = client.get("/api/users?role=dr_payaso", headers=admin).get_json()["users"]
    assert {u["email"] for u in dr} == {DR_PAYASO, FOUNDER}

    found = client.get("/api/users?search=chiflado", headers=admin).get_json()["users"]
    assert [u["email"] for u in found] == [FOUNDER]


def test_create_user(client):
    admin = login(client, ADMIN)
    body = {"email": "nuevo@payaso.org", "password": "payaso1", "full_name": "Nuevo Voluntario",
            "role": "volunteer"}
    response = client.post("/api/users", json=body, headers=admin)
    assert response.status_code == 201
    assert response.get_json()["user"]["available_roles"] == ["volunteer"]

    duplicate = client.post("/api/users", json=body, headers=admin)
    assert duplicate.status_code == 409

    bad = client.post("/api/users", json={**body, "email": "not-an-email"}, headers=admin)
    assert bad.status_code == 400


def test_profiles(client):
    recruit = login(client, RECRUIT)
    own = client.get(f"/api/users/{user_id(RECRUIT)}", headers=recruit).get_json()
    assert "admin_notes" in own

    other = client.get(f"/api/users/{user_id(DR_PAYASO)}", headers=recruit).get_json()
    assert "admin_notes" not in other
    assert other["display_name"] == "Dr. Risas"


def test_profile_update_rules(client):
    recruit = login(client, RECRUIT)
    uid = user_id(RECRUIT)

    ok = client.patch(f"/api/users/{uid}", json={"phone": "7000-0000"}, headers=recruit)
    assert ok.get_json()["user"]["phone"] == "7000-0000"

    refused = client.patch(f"/api/users/{uid}", json={"exempt_from_fees": True}, headers=recruit)
    assert refused.status_code == 403

    other = client.patch(f"/api/users/{user_id(DR_PAYASO)}", json={"phone": "1"}, headers=recruit)
    assert other.status_code == 403

    admin = login(client, ADMIN)
    updated = client.patch(f"/api/users/{uid}", headers=admin,
                           json={"exempt_from_fees": True, "valid_until": "2026-12-31"})
    assert updated.get_json()["user"]["exempt_from_fees"] is True
    assert updated.get_json()["user"]["valid_until"] == "2026-12-31"


def test_status_and_roles(client):
    admin = login(client, ADMIN)
    uid = user_id(PHOTOGRAPHER)

    response = client.put(f"/api/users/{uid}/status", json={"status": "inactive"}, headers=admin)
    assert response.get_json()["user"]["status"] == "inactive"
    assert client.post("/api/auth/login", json={"email": PHOTOGRAPHER, "password": "payaso123"}).status_code == 403

    self_off = client.put(f"/api/users/{user_id(ADMIN)}/status", json={"status": "inactive"}, headers=admin)
    assert self_off.status_code == 400

    roles = client.put(f"/api/users/{uid}/roles", json={"roles": []}, headers=admin)
    assert roles.status_code == 400

    roles = client.put(f"/api/users/{uid}/roles", json={"roles": ["photographer", "treasurer"]}, headers=admin)
    assert sorted(roles.get_json()["user"]["available_roles"]) == ["photographer", "treasurer"]


def test_locations(client):
    recruit = login(client, RECRUIT)
    admin = login(client, ADMIN)

    assert len(client.get("/api/locations", headers=recruit).get_json()["locations"]) == 5
    assert client.post("/api/locations", json={"name": "Escuela Central", "type": "escuela"},
                       headers=recruit).status_code == 403

    created = client.post("/api/locations", json={"name": "Escuela Central", "type": "escuela"}, headers=admin)
    assert created.status_code == 201
    location_id = created.get_json()["location"]["id"]

    bad_type = client.post("/api/locations", json={"name": "Parque", "type": "parque"}, headers=admin)
    assert bad_type.status_code == 400

    renamed = client.patch(f"/api/locations/{location_id}", json={"address": "Heredia"}, headers=admin)
    assert renamed.get_json()["location"]["address"] == "Heredia"

    client.put(f"/api/locations/{location_id}/status", json={"active": False}, headers=admin)
    names = [l["name"] for l in client.get("/api/locations", headers=recruit).get_json()["locations"]]
    assert "Escuela Central" not in names
    catalogue = client.get("/api/locations?include_inactive=true", headers=admin).get_json()["locations"]
    assert "Escuela Central" in [l["name"] for l in catalogue]


def test_graduation_flow(client, service):
    recruit = login(client, RECRUIT)
    progress = client.get("/api/graduation/progress", headers=recruit).get_json()
    assert progress["required_hours"] == 20
    assert progress["visits_pct"] == 20.0
    assert progress["eligible"] is False
    assert progress["graduation_requested"] is True

    # the demo recruit already has a pending request
    assert client.post("/api/graduation/requests", headers=recruit).status_code == 409

    dr = login(client, DR_PAYASO)
    assert client.post("/api/graduation/requests", headers=dr).status_code == 403

    admin = login(client, ADMIN)
    pending = client.get("/api/graduation/requests", headers=admin).get_json()["requests"]
    assert [r["user_full_name"] for r in pending] == ["Pepito López"]

    approved = client.post(f"/api/graduation/requests/{pending[0]['id']}/approve", headers=admin)
    assert approved.status_code == 200
    assert service.get_user(user_id(RECRUIT)).available_roles[0].value == "dr_payaso"

    history = client.get("/api/graduation/requests?status=all", headers=admin).get_json()["requests"]
    assert [r["status"] for r in history] == ["approved"]
    again = client.post(f"/api/graduation/requests/{pending[0]['id']}/reject", headers=admin)
    assert again.status_code == 409


def test_graduation_request_below_threshold(client, service):
    admin = login(client, ADMIN)
    pending = client.get("/api/graduation/requests", headers=admin).get_json()["requests"]
    client.post(f"/api/graduation/requests/{pending[0]['id']}/reject", headers=admin)

    recruit = login(client, RECRUIT)
    response = client.post("/api/graduation/requests", headers=recruit)
    assert response.status_code == 400


def test_mass_message_and_inbox(client):
    admin = login(client, ADMIN)
    body = {"target_roles": ["recruit", "dr_payaso"], "subject": "Reunión", "body": "Sábado 9am"}
    sent = client.post("/api/messages/mass", json=body, headers=admin)
    assert sent.status_code == 201
    assert sent.get_json()["message"]["sent_by"] == "Ana Gómez"

    inbox = client.get("/api/messages/inbox", headers=login(client, RECRUIT)).get_json()["messages"]
    assert [m["subject"] for m in inbox] == ["Reunión"]
    assert client.get("/api/messages/inbox", headers=login(client, PHOTOGRAPHER)).get_json()["messages"] == []

    empty = client.post("/api/messages/mass", json={**body, "target_roles": []}, headers=admin)
    assert empty.status_code == 400
    assert client.post("/api/messages/mass", json=body, headers=login(client, RECRUIT)).status_code == 403


def test_stats(client):
    admin = login(client, ADMIN)
    stats = client.get("/api/stats", headers=admin).get_json()
    assert stats["total_volunteers"] == 5
    roles = {r["name"]: r["value"] for r in stats["role_distribution"]}
    assert roles == {"Dr. Payaso": 2, "Reclutas": 1, "Fotógrafos": 1, "Staff": 1}
    assert sum(d["count"] for d in stats["weekday_activity"]) == 2
    assert stats["top_locations"][0]["count"] == 2

    assert client.get("/api/stats", headers=login(client, RECRUIT)).status_code == 403


def test_dashboard(client):
    recruit = login(client, RECRUIT)
    data = client.get("/api/dashboard", headers=recruit).get_json()
    assert data["stale"] is False
    assert data["next_mission"]["title"] == "Taller de Improvisación"
    assert data["users"] == []
    assert data["graduation"]["required_visits"] == 5
    assert data["is_up_to_date"] is False

    admin = login(client, ADMIN)
    data = client.get("/api/dashboard", headers=admin).get_json()
    assert len(data["users"]) == 5
    assert "graduation" not in data
