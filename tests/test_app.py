import json

import pytest
from fastapi.testclient import TestClient

from clinic_booking.app import create_app
from tests.conftest import BIRTH_DATE, FIRST_WEEKDAY, VALID_CPF


@pytest.fixture
def client(services):
    """Create a FastAPI TestClient over the in-memory test services."""
    return TestClient(create_app(services))


def _login(client, cpf=VALID_CPF):
    return client.post("/api/auth/login", json={"cpf": cpf, "birth_date": BIRTH_DATE}).json()


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "message" in response.json()


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_login_contract(client):
    first = _login(client)
    assert first["success"] is True
    assert first["user_exists"] is False
    assert first["has_bookings"] is False
    assert first["bookings"] == []

    second = _login(client)
    assert second["user_exists"] is True
    assert second["user"]["id"] == first["user"]["id"]


def test_login_invalid_cpf(client):
    response = client.post("/api/auth/login", json={"cpf": "11111111111", "birth_date": BIRTH_DATE})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid CPF", "code": "VALIDATION_ERROR"}


def test_missing_body_fields_use_error_envelope(client):
    response = client.post("/api/auth/login", json={"cpf": VALID_CPF})
    assert response.status_code == 422
    assert response.json()["success"] is False


def test_profile_update(client):
    user_id = _login(client)["user"]["id"]
    response = client.put(f"/api/users/{user_id}", json={"name": "Maria", "email": "maria@example.com"})
    assert response.json()["user"]["name"] == "Maria"
    assert client.get(f"/api/users/{user_id}").json()["user"]["email"] == "maria@example.com"

    assert client.get("/api/users/ghost").status_code == 404


def test_profile_update_with_null_name_keeps_account_usable(client):
    user_id = _login(client)["user"]["id"]
    client.put(f"/api/users/{user_id}", json={"name": "Maria"})

    response = client.put(f"/api/users/{user_id}", json={"name": None})
    assert response.status_code == 200
    assert response.json()["user"]["name"] == "Maria"

    relogin = client.post("/api/auth/login", json={"cpf": VALID_CPF, "birth_date": BIRTH_DATE})
    assert relogin.status_code == 200
    assert relogin.json()["user"]["name"] == "Maria"


def test_reference_endpoints(client):
    assert client.get("/api/cities").json()["cities"][0]["name"] == "Springfield"
    assert client.get("/api/cities/1/clinics").json()["clinics"][0]["name"] == "Central Clinic"
    assert client.get("/api/clinics/1/specialties").json()["specialties"][1]["name"] == "Cardiology"
    assert client.get("/api/clinics/1/specialties/2/doctors").json()["doctors"] == ["Dr. B", "Dr. C"]

    missing = client.get("/api/clinics/1/specialties/3/doctors")
    assert missing.status_code == 404
    assert missing.json()["success"] is False


def test_available_dates_endpoint(client):
    body = client.get("/api/clinics/1/specialties/1/dates", params={"doctor": "Dr. A"}).json()
    first = body["available_dates"][0]
    assert first["date"] == FIRST_WEEKDAY
    assert first["turns"]["morning"]["open"] is True
    assert first["turns"]["morning"]["times"][0] == "08:00"


def test_selection_endpoint(client):
    body = client.post("/api/selection", json={"city": "Springfield", "clinic": "North Clinic"}).json()
    assert body["next"] == "clinic"
    assert body["options"] == ["Central Clinic"]
    assert body["selection"]["clinic"] is None
    assert body["complete"] is False


def test_booking_create_and_cancel(client):
    user_id = _login(client)["user"]["id"]
    payload = {
        "user_id": user_id,
        "city_name": "Springfield",
        "clinic_name": "Central Clinic",
        "clinic_address": "1 Main Street",
        "specialty_name": "General Medicine",
        "doctor_name": "Dr. A",
        "date": FIRST_WEEKDAY,
        "time": "08:00",
        "turn": "morning",
    }
    created = client.post("/api/bookings", json=payload)
    assert created.status_code == 201
    booking = created.json()["booking"]
    assert booking["status"] == "scheduled"

    clash = client.post("/api/bookings", json=payload)
    assert clash.status_code == 409

    cancelled = client.post(f"/api/bookings/{booking['id']}/cancel").json()
    assert cancelled["booking"]["status"] == "cancelled"

    listed = client.get(f"/api/users/{user_id}/bookings").json()["bookings"]
    assert [b["status"] for b in listed] == ["cancelled"]

    assert _login(client)["has_bookings"] is True
    assert client.post("/api/bookings/missing/cancel").status_code == 404


def test_admin_endpoints(client):
    assert client.post("/api/admin/login", json={"username": "admin", "password": "admin123"}).json()["success"]
    assert client.post("/api/admin/login", json={"username": "admin", "password": "x"}).status_code == 400

    city = client.post("/api/admin/cities", json={"name": "Capital City"}).json()["city"]
    clinic = client.post(
        "/api/admin/clinics", json={"city_id": city["id"], "name": "East Clinic", "address": "9 Oak Avenue"}
    ).json()["clinic"]
    specialty = client.post(
        "/api/admin/specialties", json={"clinic_id": clinic["id"], "name": "Neurology", "doctors": ["Dr. F"]}
    ).json()["specialty"]
    assert client.get(f"/api/clinics/{clinic['id']}/specialties/{specialty['id']}/doctors").json()["doctors"] == ["Dr. F"]

    slot = client.post(
        "/api/admin/slots",
        json={"clinic_id": 1, "specialty_id": 1, "date": FIRST_WEEKDAY, "turn": "morning", "total": 4},
    )
    assert slot.status_code == 201
    listed = client.get("/api/admin/slots").json()["slots"]
    assert len(listed) == 1
    assert listed[0]["clinic_name"] == "Central Clinic"
    assert listed[0]["remaining"] == 4
    assert client.delete(f"/api/admin/slots/{slot.json()['slot']['id']}").json()["success"]

    stats = client.get("/api/admin/stats").json()["stats"]
    assert stats["total_bookings"] == 0


def test_admin_status_transitions(client):
    user_id = _login(client)["user"]["id"]
    booking = client.post(
        "/api/bookings",
        json={
            "user_id": user_id,
            "city_name": "Springfield",
            "clinic_name": "Central Clinic",
            "specialty_name": "General Medicine",
            "doctor_name": "Dr. A",
            "date": FIRST_WEEKDAY,
            "time": "09:00",
            "turn": "morning",
        },
    ).json()["booking"]

    url = f"/api/admin/bookings/{booking['id']}/status"
    assert client.put(url, json={"status": "confirmed"}).json()["booking"]["status"] == "confirmed"
    assert client.put(url, json={"status": "scheduled"}).status_code == 409
    assert client.put(url, json={"status": "postponed"}).status_code == 422

    rows = client.get("/api/admin/bookings").json()["bookings"]
    assert rows[0]["user_cpf"] == VALID_CPF


def test_websocket_contract(client):
    user_id = _login(client)["user"]["id"]
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text(json.dumps({"thread_id": "ws1", "user_id": user_id, "message": "Springfield"}))
        response_data = json.loads(websocket.receive_text())

        assert response_data["thread_id"] == "ws1"
        assert "clinic" in response_data["message"].lower()


def test_websocket_error_handling(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text(json.dumps({"message": "Hello"}))
        response_data = json.loads(websocket.receive_text())
        assert response_data["success"] is False
        assert "missing" in response_data["error"].lower()

        websocket.send_text("not json")
        assert "malformed" in json.loads(websocket.receive_text())["error"].lower()


def test_admin_hierarchy_listings(client):
    clinics = client.get("/api/admin/clinics").json()["clinics"]
    assert [(c["name"], c["city_name"]) for c in clinics] == [
        ("Central Clinic", "Springfield"),
        ("North Clinic", "Shelbyville"),
    ]

    specialties = client.get("/api/admin/specialties").json()["specialties"]
    assert [s["name"] for s in specialties] == ["General Medicine", "Cardiology", "Pediatrics"]

    duplicate = client.post("/api/admin/clinics", json={"city_id": 1, "name": "Central Clinic"})
    assert duplicate.status_code == 409


def test_websocket_unknown_user_gets_login_reply(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text(json.dumps({"thread_id": "t", "user_id": "ghost", "message": "Springfield"}))
        response_data = json.loads(websocket.receive_text())
        assert "log in" in response_data["message"].lower()
