from conftest import ADMIN, DR_PAYASO, PHOTOGRAPHER, RECRUIT, login, user_id
from payaso.domain.compliance import month_label


def test_volunteer_sees_only_own_payments(client):
    headers = login(client, DR_PAYASO)
    data = client.get("/api/payments", headers=headers).get_json()
    assert len(data["payments"]) == 4
    assert data["payments"][0]["status"] == "pending_approval"
    assert data["total_paid"] == 15000

    recruit = login(client, RECRUIT)
    assert client.get("/api/payments", headers=recruit).get_json()["payments"] == []


def test_volunteer_reports_pending_payment(client):
    headers = login(client, RECRUIT)
    body = {"amount": 5000, "month": month_label()}

    missing_ref = client.post("/api/payments", json=body, headers=headers)
    assert missing_ref.status_code == 400

    body["reference_id"] = "SINPE-123"
    response = client.post("/api/payments", json=body, headers=headers)
    assert response.status_code == 201
    payment = response.get_json()["payment"]
    assert payment["status"] == "pending_approval"
    assert payment["notes"] == "Ref: SINPE-123."

    # pending does not make the recruit compliant
    compliance = client.get("/api/payments/compliance", headers=headers).get_json()
    assert compliance["is_up_to_date"] is False
    assert compliance["current_month"] == month_label()


def test_volunteer_cannot_report_for_others(client):
    headers = login(client, RECRUIT)
    body = {"amount": 5000, "month": "Mayo 2024", "reference_id": "X", "user_id": user_id(DR_PAYASO)}
    assert client.post("/api/payments", json=body, headers=headers).status_code == 403


def test_treasury_records_paid_payment_and_approves(client):
    admin = login(client, ADMIN)
    recruit_id = user_id(RECRUIT)

    response = client.post("/api/payments", headers=admin,
                           json={"user_id": recruit_id, "amount": 5000, "month": month_label()})
    assert response.get_json()["payment"]["status"] == "paid"

    recruit = login(client, RECRUIT)
    assert client.get("/api/payments/compliance", headers=recruit).get_json()["is_up_to_date"] is True

    pending = next(p for p in client.get("/api/payments", headers=admin).get_json()["payments"]
                   if p["status"] == "pending_approval")
    approved = client.patch(f"/api/payments/{pending['id']}", json={"status": "paid"}, headers=admin)
    assert approved.status_code == 200
    assert approved.get_json()["payment"]["date_paid"] is not None

    again = client.patch(f"/api/payments/{pending['id']}", json={"status": "rejected"}, headers=admin)
    assert again.status_code == 409


def test_payment_status_change_requires_treasury(client):
    headers = login(client, DR_PAYASO)
    assert client.patch("/api/payments/1", json={"status": "paid"}, headers=headers).status_code == 403


def test_exempt_user_is_compliant(client):
    headers = login(client, PHOTOGRAPHER)
    data = client.get("/api/payments/compliance", headers=headers).get_json()
    assert data["is_up_to_date"] is True
    assert data["last_payment_month"] == "Sin pagos"


def test_treasury_overview(client):
    admin = login(client, ADMIN)
    data = client.get("/api/treasury", headers=admin).get_json()
    assert data["monthly_fee"] == 5000
    assert len(data["pending_payments"]) == 1
    # u1, u3 and u5 pay dues, none for the current month
    assert data["up_to_date_count"] == 0
    assert data["overdue_count"] == 3
    assert data["compliance_rate"] == 0

    exempt = client.get("/api/treasury?status=exempt", headers=admin).get_json()["users"]
    assert {u["full_name"] for u in exempt} == {"Ana Gómez", "Carla Zoom"}

    assert client.get("/api/treasury?status=late", headers=admin).status_code == 400
    assert client.get("/api/treasury", headers=login(client, RECRUIT)).status_code == 403


def test_treasury_export(client):
    admin = login(client, ADMIN)
    response = client.get("/api/treasury/export?search=juan", headers=admin)
    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    lines = response.get_data(as_text=True).strip().splitlines()
    assert lines[0].startswith("User ID,Name")
    assert len(lines) == 2
    assert "Juan Pérez" in lines[1]
