import re
import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from helpers import FakeMailer

API = "/api/v1"
ADMIN = {"username": "frontdesk", "password": "s3cret-pass", "email": "admin@example.com"}
CRON = {"x-cron-secret": "cron-test-secret"}


def future(days: int) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


@pytest.fixture(scope="session")
def outbox():
    return FakeMailer()


@pytest.fixture(scope="session")
def client(outbox):
    from app.main import app
    from app.core.mailer import get_mailer
    app.dependency_overrides[get_mailer] = lambda: outbox
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def auth(client):
    r = client.post(f"{API}/auth/setup", json=ADMIN)
    assert r.status_code == 201, r.text
    r = client.post(f"{API}/auth/login", json={"username": ADMIN["username"], "password": ADMIN["password"]})
    assert r.status_code == 200, r.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {r.json()['token']}"}


def new_patient(client, auth, first, email=None) -> dict:
    r = client.post(f"{API}/patients", json={"first_name": first, "last_name": "Test", "email": email}, headers=auth)
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    assert client.get(f"{API}/health").json() == {"status": "ok"}


def test_auth_flow(client, auth):
    assert client.post(f"{API}/auth/setup", json=ADMIN).status_code == 409
    r = client.post(f"{API}/auth/login", json={"username": ADMIN["username"], "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid username or password"}

    assert client.get(f"{API}/auth/me").status_code == 401
    assert client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401
    me = client.get(f"{API}/auth/me", headers=auth).json()
    assert me["username"] == "frontdesk"

    r = client.put(f"{API}/auth/me", json={"email": "desk@example.com"}, headers=auth)
    assert r.json()["email"] == "desk@example.com"

    wrong = {"current_password": "nope", "new_password": "another-pass"}
    assert client.post(f"{API}/auth/change-password", json=wrong, headers=auth).status_code == 401
    change = {"current_password": ADMIN["password"], "new_password": "another-pass"}
    assert client.post(f"{API}/auth/change-password", json=change, headers=auth).json() == {"success": True}
    back = {"current_password": "another-pass", "new_password": ADMIN["password"]}
    assert client.post(f"{API}/auth/change-password", json=back, headers=auth).status_code == 200


def test_login_sets_cookie_and_logout_clears_it(client, auth):
    r = client.post(f"{API}/auth/login", json={"username": ADMIN["username"], "password": ADMIN["password"]})
    assert "auth-token" in r.cookies
    assert client.get(f"{API}/auth/me").status_code == 200
    client.post(f"{API}/auth/logout")
    client.cookies.clear()
    assert client.get(f"{API}/auth/me").status_code == 401


def test_protected_routes_need_a_session(client):
    assert client.get(f"{API}/patients").status_code == 401
    assert client.get(f"{API}/appointments").status_code == 401
    assert client.post(f"{API}/reminders/process").status_code == 401


def test_validation_errors_name_fields(client, auth):
    r = client.post(f"{API}/patients", json={"first_name": "", "last_name": "X", "phone": "call me"}, headers=auth)
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Validation error"
    fields = {d["field"] for d in body["details"]}
    assert {"first_name", "phone"} <= fields


def test_patient_crud(client, auth):
    p = new_patient(client, auth, "Crud", "crud@example.com")
    assert p["registration_status"] == "approved"
    assert p["patient_code"].startswith("P")

    r = client.get(f"{API}/patients", params={"search": "crud"}, headers=auth)
    assert r.json()["pagination"]["total"] == 1

    r = client.put(f"{API}/patients/{p['id']}", json={"phone": "555-010-9999"}, headers=auth)
    assert r.json()["phone"] == "555-010-9999"

    r = client.delete(f"{API}/patients/{p['id']}", headers=auth)
    assert r.json()["success"] is True
    assert client.get(f"{API}/patients/{p['id']}", headers=auth).status_code == 404


def test_online_registration_review(client, auth, outbox):
    r = client.post(f"{API}/patients/register", json={"first_name": "Online", "last_name": "Applicant", "email": "online@example.com"})
    assert r.status_code == 201, r.text
    patient_id = r.json()["patient_id"]
    assert outbox.sent[-1]["to"] == "online@example.com"

    dup = client.post(f"{API}/patients/register", json={"first_name": "Again", "last_name": "Applicant", "email": "ONLINE@example.com"})
    assert dup.status_code == 409

    pending = client.get(f"{API}/patients", params={"registration_status": "pending"}, headers=auth).json()
    assert patient_id in {p["id"] for p in pending["patients"]}

    notes = client.get(f"{API}/notifications", params={"unread_only": True}, headers=auth).json()
    mine = [n for n in notes["notifications"] if n["patient_id"] == patient_id]
    assert mine and mine[0]["type"] == "registration_pending"
    r = client.post(f"{API}/notifications/{mine[0]['id']}/read", headers=auth)
    assert r.json()["is_read"] is True

    r = client.post(f"{API}/patients/{patient_id}/approve", headers=auth)
    assert r.json()["registration_status"] == "approved"
    r = client.post(f"{API}/patients/{patient_id}/deny", json={"reason": "late"}, headers=auth)
    assert r.status_code == 400
    assert "error" in r.json()


def test_appointment_lifecycle(client, auth, outbox):
    p = new_patient(client, auth, "Booker", "booker@example.com")
    day = future(30)
    r = client.post(f"{API}/appointments", json={
        "patient_id": p["id"], "appointment_date": day, "appointment_time": "10:00", "duration_minutes": 60,
    }, headers=auth)
    assert r.status_code == 201, r.text
    appt = r.json()
    assert appt["status"] == "scheduled"
    assert appt["patient"]["first_name"] == "Booker"

    clash = client.post(f"{API}/appointments", json={
        "patient_id": p["id"], "appointment_date": day, "appointment_time": "10:30", "duration_minutes": 30,
    }, headers=auth)
    assert clash.status_code == 409
    assert clash.json() == {"error": "Appointment time conflicts with existing appointment"}

    avail = client.get(f"{API}/appointments/availability", params={"date": day, "duration": 30}, headers=auth).json()
    assert "10:00:00" not in avail["available_slots"]
    assert "09:00:00" in avail["available_slots"]
    assert avail["total_slots"] == len(avail["available_slots"])

    past = client.get(f"{API}/appointments/availability", params={"date": future(-1)}, headers=auth).json()
    assert past["available_slots"] == [] and past["message"]

    r = client.post(f"{API}/appointments/{appt['id']}/notify", headers=auth)
    assert r.status_code == 200
    assert outbox.sent[-1]["to"] == "booker@example.com"

    r = client.put(f"{API}/appointments/{appt['id']}", json={"appointment_time": "11:00"}, headers=auth)
    assert r.json()["appointment_time"] == "11:00:00"

    r = client.delete(f"{API}/appointments/{appt['id']}", headers=auth)
    assert r.json()["status"] == "cancelled"
    r = client.put(f"{API}/appointments/{appt['id']}", json={"status": "completed"}, headers=auth)
    assert r.status_code == 400

    listed = client.get(f"{API}/appointments", params={"start_date": day, "end_date": day}, headers=auth).json()
    assert [a["id"] for a in listed["appointments"]] == [appt["id"]]
    assert client.get(f"{API}/appointments/{uuid.uuid4()}", headers=auth).status_code == 404


def test_past_booking_is_rejected(client, auth):
    p = new_patient(client, auth, "Late")
    r = client.post(f"{API}/appointments", json={
        "patient_id": p["id"], "appointment_date": future(-2), "appointment_time": "10:00",
    }, headers=auth)
    assert r.status_code == 400


def test_treatment_billing(client, auth):
    proc = client.post(f"{API}/procedures", json={"name": "Api Crown", "category": "Restorative", "price": "900.00"}, headers=auth)
    assert proc.status_code == 201, proc.text
    proc_id = proc.json()["id"]
    assert client.post(f"{API}/procedures", json={"name": "api crown"}, headers=auth).status_code == 409

    p = new_patient(client, auth, "Billed")
    day = future(31)
    appt = client.post(f"{API}/appointments", json={
        "patient_id": p["id"], "appointment_date": day, "appointment_time": "09:00", "duration_minutes": 90,
    }, headers=auth).json()

    r = client.post(f"{API}/treatments", json={
        "patient_id": p["id"], "appointment_id": appt["id"], "treatment_date": day,
        "procedures": [{"procedure_id": proc_id, "quantity": 2, "unit_price": "850.00", "tooth_number": "3"}],
    }, headers=auth)
    assert r.status_code == 201, r.text
    t = r.json()
    assert Decimal(t["total_amount"]) == Decimal("1700.00")
    assert t["payment_status"] == "pending"
    assert t["items"][0]["procedure"]["name"] == "Api Crown"
    assert client.get(f"{API}/appointments/{appt['id']}", headers=auth).json()["status"] == "completed"

    r = client.patch(f"{API}/treatments/{t['id']}/payment", json={"payment_status": "paid", "amount_paid": "1700.00"}, headers=auth)
    assert r.json()["payment_status"] == "paid"

    assert client.post(f"{API}/treatments", json={
        "patient_id": p["id"], "treatment_date": day, "procedures": [],
    }, headers=auth).status_code == 400

    assert client.delete(f"{API}/procedures/{proc_id}", headers=auth).status_code == 409
    assert client.delete(f"{API}/treatments/{t['id']}", headers=auth).status_code == 204
    assert client.delete(f"{API}/procedures/{proc_id}", headers=auth).status_code == 204


def test_qr_registration(client, auth, outbox):
    r = client.post(f"{API}/qr-tokens", json={"qr_type": "single-use", "expiration_hours": 2}, headers=auth)
    assert r.status_code == 201, r.text
    issued = r.json()
    assert issued["status"] == "active"
    assert issued["qr_code"].startswith("data:image/png;base64,")
    assert issued["registration_url"].endswith(issued["token"])

    bad = client.post(f"{API}/qr-tokens", json={"qr_type": "single-use", "expiration_hours": 0}, headers=auth)
    assert bad.status_code == 400
    # issuing is not a side effect of a read
    assert client.get(f"{API}/qr-registration", headers=auth).status_code == 405

    v = client.post(f"{API}/qr-tokens/validate", json={"token": issued["token"]}).json()
    assert v["valid"] is True

    r = client.post(f"{API}/qr-registration", json={
        "token": issued["token"],
        "patient_data": {"first_name": "Qr", "last_name": "Walkin", "email": "qr-walkin@example.com"},
    })
    assert r.status_code == 201, r.text
    assert outbox.sent[-1]["to"] == "qr-walkin@example.com"

    v = client.post(f"{API}/qr-tokens/validate", json={"token": issued["token"]}).json()
    assert v == {"valid": False, "reason": "Token has already been used", "token": None}
    again = client.post(f"{API}/qr-registration", json={
        "token": issued["token"], "patient_data": {"first_name": "Second", "last_name": "Try"},
    })
    assert again.status_code == 409

    detail = client.get(f"{API}/qr-tokens/{issued['id']}", headers=auth).json()
    assert detail["status"] == "used" and detail["usage_count"] == 1
    png = client.get(f"{API}/qr-tokens/{issued['id']}/qr.png", headers=auth)
    assert png.headers["content-type"] == "image/png"

    used = client.get(f"{API}/qr-tokens", params={"status": "used"}, headers=auth).json()
    assert issued["id"] in {t["id"] for t in used["tokens"]}
    assert client.delete(f"{API}/qr-tokens/{issued['id']}", headers=auth).json() == {"success": True}
    assert client.post(f"{API}/qr-tokens/validate", json={"token": issued["token"]}).json()["reason"] == "Token not found"


def test_reminder_configuration_and_dispatch(client, auth, outbox):
    r = client.post(f"{API}/reminders/config", json={
        "reminder_type": "custom", "hours_before": 4,
        "subject_template": "See you {{appointment_date}}",
        "body_template": "Hello {{patient_name}}, your {{reason}} visit is at {{appointment_time}}.",
    }, headers=auth)
    assert r.status_code == 201, r.text
    config = r.json()

    bad = client.put(f"{API}/reminders/config/{config['id']}", json={"body_template": "Hello {{first_name}} there"}, headers=auth)
    assert bad.status_code == 400

    r = client.put(f"{API}/reminders/config/{config['id']}", json={"is_enabled": False}, headers=auth)
    assert r.json()["is_enabled"] is False

    p = new_patient(client, auth, "Reminded", "reminded@example.com")
    appt = client.post(f"{API}/appointments", json={
        "patient_id": p["id"], "appointment_date": future(32), "appointment_time": "15:00", "reason": "Cleaning",
    }, headers=auth).json()
    r = client.post(f"{API}/reminders/config/{config['id']}/test", json={"appointment_id": appt["id"]}, headers=auth)
    assert r.status_code == 200, r.text
    assert r.json()["sent_to"] == "reminded@example.com"
    assert outbox.sent[-1]["subject"].startswith("[TEST] See you ")

    history = client.get(f"{API}/reminders/logs/{appt['id']}", headers=auth).json()
    assert [(h["reminder_type"], h["status"]) for h in history] == [("test_custom", "sent")]
    assert client.get(f"{API}/reminders/logs/{uuid.uuid4()}", headers=auth).status_code == 404

    listed = client.get(f"{API}/reminders/config", headers=auth).json()
    assert listed["email_configured"] is True
    assert config["id"] in {c["id"] for c in listed["configs"]}

    r = client.post(f"{API}/reminders/process", headers=CRON)
    assert r.status_code == 200, r.text
    assert r.json()["success"] is True
    assert client.post(f"{API}/reminders/process", headers={"x-cron-secret": "wrong"}).status_code == 401
    status = client.get(f"{API}/reminders/process", headers=auth).json()
    assert status["status"] == "Reminder system operational"


def reset_link_token(html: str) -> str:
    return re.search(r"/reset-password/([\w.\-]+)", html).group(1)


def test_password_reset_flow(client, auth, outbox):
    email = client.get(f"{API}/auth/me", headers=auth).json()["email"]
    expected = {"success": True, "message": "If an account with that email exists, we have sent a password reset link."}

    before = len(outbox.sent)
    r = client.post(f"{API}/auth/forgot-password", json={"email": "nobody@example.com"})
    assert r.status_code == 200 and r.json() == expected
    assert len(outbox.sent) == before

    r = client.post(f"{API}/auth/forgot-password", json={"email": email.upper()})
    assert r.json() == expected
    assert outbox.sent[-1]["to"] == email
    token = reset_link_token(outbox.sent[-1]["html"])

    # a reset link is not a session
    assert client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401
    assert client.get(f"{API}/auth/reset-password", params={"token": token}).json() == {"success": True, "email": email}

    assert client.post(f"{API}/auth/reset-password", json={"token": token, "password": "short"}).status_code == 400
    r = client.post(f"{API}/auth/reset-password", json={"token": token, "password": "reset-pass-123"})
    assert r.json() == {"success": True, "message": "Password updated successfully"}
    assert client.post(f"{API}/auth/login", json={"username": ADMIN["username"], "password": "reset-pass-123"}).status_code == 200
    client.cookies.clear()
    r = client.post(f"{API}/auth/reset-password", json={"token": token, "password": "reset-pass-456"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid or expired reset token"}

    back = {"current_password": "reset-pass-123", "new_password": ADMIN["password"]}
    assert client.post(f"{API}/auth/change-password", json=back, headers=auth).status_code == 200


def test_dashboard_and_patient_stats(client, auth):
    p = new_patient(client, auth, "Stats", "stats@example.com")
    assert client.post(f"{API}/appointments", json={
        "patient_id": p["id"], "appointment_date": future(40), "appointment_time": "09:00",
    }, headers=auth).status_code == 201

    stats = client.get(f"{API}/dashboard/stats", headers=auth).json()["stats"]
    assert stats["total_patients"] >= 1
    assert stats["current_month"] == date.today().strftime("%Y-%m")
    assert set(stats["progress"]) == {"patients", "daily_schedule", "monthly_revenue", "procedures"}
    assert client.get(f"{API}/dashboard/stats").status_code == 401

    mine = client.get(f"{API}/patients/{p['id']}/stats", headers=auth).json()["stats"]
    assert mine["total_treatments"] == 0
    assert Decimal(mine["total_amount_paid"]) == 0
    assert mine["upcoming_appointments"] == 1
    assert client.get(f"{API}/patients/{uuid.uuid4()}/stats", headers=auth).status_code == 404


def test_medical_history_fields(client, auth):
    r = client.post(f"{API}/medical-history-fields", json={"field_name": "Takes blood thinners"}, headers=auth)
    assert r.status_code == 201, r.text
    field = r.json()
    assert field["field_type"] == "checkbox"
    assert client.post(f"{API}/medical-history-fields", json={"field_name": "TAKES BLOOD THINNERS"}, headers=auth).status_code == 409
    assert client.post(f"{API}/medical-history-fields", json={"field_name": "X", "field_type": "select"}, headers=auth).status_code == 400
    assert client.post(f"{API}/medical-history-fields", json={"field_name": "Y"}).status_code == 401

    # the intake form reads the active list without a session
    public = client.get(f"{API}/medical-history-fields").json()["fields"]
    assert field["id"] in {f["id"] for f in public}

    r = client.put(f"{API}/medical-history-fields/{field['id']}", json={"field_type": "text"}, headers=auth)
    assert r.json()["field_type"] == "text"
    assert client.delete(f"{API}/medical-history-fields/{field['id']}", headers=auth).json() == {"success": True}
    assert field["id"] not in {f["id"] for f in client.get(f"{API}/medical-history-fields").json()["fields"]}
    everything = client.get(f"{API}/medical-history-fields/all", headers=auth).json()["fields"]
    assert field["id"] in {f["id"] for f in everything}
    assert client.get(f"{API}/medical-history-fields/{field['id']}", headers=auth).json()["is_active"] is False
    assert client.get(f"{API}/medical-history-fields/{uuid.uuid4()}", headers=auth).status_code == 404
