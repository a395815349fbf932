from datetime import datetime, timedelta

from conftest import ADMIN, DR_PAYASO, FOUNDER, PHOTOGRAPHER, RECRUIT, event_id, login, user_id

VISIT = "Visita Geriátrico San Pedro"
PAST_VISIT = "Visita Hospital de Niños"
TRAINING = "Taller de Improvisación"


def titles(response):
    return {e["title"] for e in response.get_json()["events"]}


def test_events_are_filtered_by_role_visibility(client):
    photographer = login(client, PHOTOGRAPHER)
    seen = titles(client.get("/api/events", headers=photographer))
    # the geriatric visit has no photographer spots
    assert VISIT not in seen
    assert TRAINING in seen
    assert PAST_VISIT in seen

    admin = login(client, ADMIN)
    assert VISIT in titles(client.get("/api/events", headers=admin))


def test_category_filter(client):
    headers = login(client, RECRUIT)
    trainings = client.get("/api/events?category=training", headers=headers).get_json()["events"]
    assert trainings and all(e["type"] == "training" for e in trainings)

    bad = client.get("/api/events?category=party", headers=headers)
    assert bad.status_code == 400


def test_event_carries_viewer_slot(client):
    headers = login(client, RECRUIT)
    event = client.get(f"/api/events/{event_id(VISIT)}", headers=headers).get_json()
    assert event["registered"] is True
    assert event["current_user_status"] == "registered"
    assert event["slot"] == {"taken": 1, "max": 3}
    assert event["is_full"] is False
    assert event["calendar_url"].startswith("https://calendar.google.com/")


def test_hidden_event_is_not_found(client):
    headers = login(client, PHOTOGRAPHER)
    assert client.get(f"/api/events/{event_id(VISIT)}", headers=headers).status_code == 404


def test_register_and_unregister(client):
    headers = login(client, FOUNDER)
    eid = event_id(VISIT)

    response = client.post(f"/api/events/{eid}/registration", headers=headers)
    assert response.status_code == 200
    event = response.get_json()["event"]
    assert event["registered"] is True
    assert event["attendees"]["dr_payaso"] == 2

    # again: nothing changes
    again = client.post(f"/api/events/{eid}/registration", headers=headers).get_json()["event"]
    assert again["attendees"]["dr_payaso"] == 2

    response = client.delete(f"/api/events/{eid}/registration", headers=headers)
    assert response.get_json()["event"]["registered"] is False


def test_register_when_full(client, service):
    headers = login(client, PHOTOGRAPHER)
    # photographer bucket on the past visit is 1/1 and taken by Carla herself
    eid = event_id(PAST_VISIT)
    service.unregister(eid, user_id(PHOTOGRAPHER))
    service.register(eid, user_id(FOUNDER), "photographer")

    response = client.post(f"/api/events/{eid}/registration", headers=headers)
    assert response.status_code == 409
    assert response.get_json()["msg"] == "No spots left for your role in this event"


def test_unregister_after_attendance_is_refused(client):
    headers = login(client, RECRUIT)
    response = client.delete(f"/api/events/{event_id(PAST_VISIT)}/registration", headers=headers)
    assert response.status_code == 409


def test_history(client):
    headers = login(client, RECRUIT)
    data = client.get("/api/events/history?limit=5", headers=headers).get_json()

    assert data["next_mission"]["title"] == TRAINING
    upcoming = [e["date"] for e in data["upcoming"]]
    assert upcoming == sorted(upcoming)
    assert [e["title"] for e in data["past"]] == [PAST_VISIT]
    assert data["has_more"] is False


def test_create_event_requires_admin(client):
    body = {
        "title": "Visita Hospital de la Mujer",
        "type": "visit",
        "date": (datetime.now() + timedelta(days=10)).isoformat(timespec="seconds"),
        "location": "Hospital de la Mujer",
        "capacity": {"recruit": 2, "dr_payaso": 3},
    }
    recruit = login(client, RECRUIT)
    assert client.post("/api/events", json=body, headers=recruit).status_code == 403

    admin = login(client, ADMIN)
    response = client.post("/api/events", json=body, headers=admin)
    assert response.status_code == 201
    event = response.get_json()["event"]
    assert event["total_capacity"] == 5
    assert event["capacity"]["photographer"] == 0


def test_create_event_validation(client):
    admin = login(client, ADMIN)
    response = client.post("/api/events", json={"title": "Sin fecha", "type": "visit"}, headers=admin)
    assert response.status_code == 400
    assert "date" in response.get_json()["errors"]


def test_attendance_marking(client):
    admin = login(client, ADMIN)
    eid, uid = event_id(PAST_VISIT), user_id(FOUNDER)

    response = client.put(f"/api/events/{eid}/attendees/{uid}", json={"status": "attended"}, headers=admin)
    assert response.status_code == 200
    statuses = {a["user_id"]: a["status"] for a in response.get_json()["attendees"]}
    assert statuses[uid] == "attended"

    # corrections stay possible
    response = client.put(f"/api/events/{eid}/attendees/{uid}", json={"status": "absent"}, headers=admin)
    statuses = {a["user_id"]: a["status"] for a in response.get_json()["attendees"]}
    assert statuses[uid] == "absent"


def test_attendance_for_unregistered_user(client):
    admin = login(client, ADMIN)
    response = client.put(f"/api/events/{event_id(VISIT)}/attendees/{user_id(ADMIN)}",
                          json={"status": "attended"}, headers=admin)
    assert response.status_code == 404


def test_attendees_list_is_admin_only(client):
    headers = login(client, DR_PAYASO)
    assert client.get(f"/api/events/{event_id(PAST_VISIT)}/attendees", headers=headers).status_code == 403


def test_chat(client):
    headers = login(client, DR_PAYASO)
    eid = event_id(PAST_VISIT)

    data = client.get(f"/api/events/{eid}/messages", headers=headers).get_json()
    assert data["poll_seconds"] == 5
    last = data["messages"][-1]["timestamp"]

    sent = client.post(f"/api/events/{eid}/messages", json={"text": "Yo llevo globos"}, headers=headers)
    assert sent.status_code == 201
    assert sent.get_json()["message"]["user_name"] == "Dr. Risas"

    newer = client.get(f"/api/events/{eid}/messages?since={last}", headers=headers).get_json()
    assert [m["text"] for m in newer["messages"]] == ["Yo llevo globos"]

    assert client.post(f"/api/events/{eid}/messages", json={"text": ""}, headers=headers).status_code == 400
    assert client.get(f"/api/events/{eid}/messages?since=yesterday", headers=headers).status_code == 400


def test_chat_since_with_utc_offset(client):
    headers = login(client, DR_PAYASO)
    url = f"/api/events/{event_id(PAST_VISIT)}/messages"

    for since in ("2020-01-01T00:00:00+00:00", "2020-01-01T00:00:00Z"):
        response = client.get(url, query_string={"since": since}, headers=headers)
        assert response.status_code == 200
        assert [m["user_name"] for m in response.get_json()["messages"]] == ["Dr. Risas"]

    future = client.get(url, query_string={"since": "2099-01-01T00:00:00-06:00"}, headers=headers)
    assert future.get_json()["messages"] == []


def test_chat_timestamps_use_local_time(client):
    headers = login(client, DR_PAYASO)
    sent = client.post(f"/api/events/{event_id(PAST_VISIT)}/messages", json={"text": "Hola"}, headers=headers)
    stamp = datetime.fromisoformat(sent.get_json()["message"]["timestamp"])
    assert abs(stamp - datetime.now()) < timedelta(minutes=1)


def test_history_rejects_negative_limit(client):
    headers = login(client, RECRUIT)
    assert client.get("/api/events/history?limit=-1", headers=headers).status_code == 400
    assert client.get("/api/events/history?limit=0", headers=headers).get_json()["has_more"] is True
