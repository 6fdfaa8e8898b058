from datetime import date, timedelta

from jamroom.core import security
from jamroom.db import models


def create_user(SessionLocal, name="Vikram", role=models.UserRole.user):
    with SessionLocal() as db:
        user = models.User(
            name=name,
            email=f"{name.lower()}@example.com",
            password_hash=security.get_password_hash("secret1"),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user


def test_public_settings_need_no_login(api_client):
    client, _ = api_client

    response = client.get("/api/v1/settings/public")

    assert response.status_code == 200
    body = response.json()
    assert [rental["name"] for rental in body["rental_types"]][:2] == ["JamRoom", "Instruments"]
    assert body["business_hours"] == {"start_time": "09:00", "end_time": "22:00"}
    assert "upi_id" not in body


def test_admin_updates_settings(api_client):
    client, SessionLocal = api_client
    client.login_as(create_user(SessionLocal, name="Admin", role=models.UserRole.admin))

    response = client.put(
        "/api/v1/settings",
        json={
            "slot_duration": 30,
            "rental_types": [{"name": "Drums", "base_price": 250}],
            "business_hours": {"start_time": "10:00", "end_time": "20:00"},
        },
    )
    current = client.get("/api/v1/settings").json()

    assert response.status_code == 200
    assert current["slot_duration"] == 30
    assert current["rental_types"] == [
        {"name": "Drums", "description": "", "base_price": 250, "sub_items": []}
    ]
    assert current["upi_id"] == "jamroom@paytm"


def test_settings_update_rejects_inverted_hours(api_client):
    client, SessionLocal = api_client
    client.login_as(create_user(SessionLocal, name="Admin", role=models.UserRole.admin))

    response = client.put(
        "/api/v1/settings",
        json={"business_hours": {"start_time": "20:00", "end_time": "10:00"}},
    )

    assert response.status_code == 422
    assert "business_hours" in response.json()["fields"]


def test_settings_require_admin(api_client):
    client, SessionLocal = api_client
    client.login_as(create_user(SessionLocal))

    assert client.get("/api/v1/settings").status_code == 403


def test_register_login_and_me(api_client):
    client, _ = api_client

    registered = client.post(
        "/api/v1/auth/register",
        json={"name": "Sana", "email": "Sana@Example.com", "password": "secret1"},
    )
    duplicate = client.post(
        "/api/v1/auth/register",
        json={"name": "Sana", "email": "sana@example.com", "password": "secret1"},
    )
    login = client.post(
        "/api/v1/auth/login", data={"username": "sana@example.com", "password": "secret1"}
    )
    wrong = client.post(
        "/api/v1/auth/login", data={"username": "sana@example.com", "password": "nope"}
    )

    assert registered.status_code == 201
    assert registered.json()["user"]["email"] == "sana@example.com"
    assert duplicate.status_code == 409
    assert login.status_code == 200
    token = login.json()["access_token"]
    assert security.decode_access_token(token)["sub"] == str(registered.json()["user"]["id"])
    assert wrong.status_code == 400


def test_profile_update_and_delete(api_client):
    client, SessionLocal = api_client
    user = create_user(SessionLocal)
    client.login_as(user)

    updated = client.patch("/api/v1/profile", json={"mobile": "9876543210", "whatsapp_enabled": True})
    assert updated.status_code == 200
    assert updated.json()["whatsapp_enabled"] is True
    assert client.get("/api/v1/profile").json()["mobile"] == "9876543210"

    with SessionLocal() as db:
        slot = models.Slot(date=date.today() + timedelta(days=1), start_time="10:00", end_time="11:00")
        db.add(slot)
        db.commit()
        slot_id = slot.id
    booking_id = client.post(
        "/api/v1/bookings", json={"slot_id": slot_id, "rental_type": "JamRoom"}
    ).json()["id"]
    assert client.delete("/api/v1/profile").status_code == 409

    client.post(f"/api/v1/bookings/{booking_id}/cancel")
    assert client.delete("/api/v1/profile").status_code == 204
    with SessionLocal() as db:
        assert db.get(models.User, user.id) is None
        assert db.get(models.Booking, booking_id).user_name == "Vikram"


def test_health(api_client):
    client, _ = api_client
    assert client.get("/api/v1/health").json() == {"status": "ok"}


def test_settings_update_rejects_malformed_admin_email(api_client):
    client, SessionLocal = api_client
    client.login_as(create_user(SessionLocal, name="Admin", role=models.UserRole.admin))

    response = client.put("/api/v1/settings", json={"admin_emails": ["bad\nadmin@example.com"]})

    assert response.status_code == 422
    assert client.get("/api/v1/settings").json()["admin_emails"] == ["admin@jamroom.com"]


def test_change_password(api_client):
    client, SessionLocal = api_client
    client.login_as(create_user(SessionLocal))

    wrong = client.put(
        "/api/v1/profile/password",
        json={"current_password": "nope", "new_password": "newpass1", "confirm_password": "newpass1"},
    )
    mismatch = client.put(
        "/api/v1/profile/password",
        json={"current_password": "secret1", "new_password": "newpass1", "confirm_password": "newpass2"},
    )
    changed = client.put(
        "/api/v1/profile/password",
        json={"current_password": "secret1", "new_password": "newpass1", "confirm_password": "newpass1"},
    )

    assert wrong.status_code == 422
    assert "current_password" in wrong.json()["fields"]
    assert mismatch.status_code == 422
    assert changed.status_code == 200
    login = client.post(
        "/api/v1/auth/login", data={"username": "vikram@example.com", "password": "newpass1"}
    )
    assert login.status_code == 200
