from sqlalchemy import select

from app.integrations.twilio_client import SMSDeliveryError, TwilioClient
from app.models.user import OTPCode
from conftest import auth_headers


async def _register(client, email="new@example.com", password="correct-horse"):
    return await client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "first_name": "Nia", "phone": "(415) 555-2680"},
    )


async def test_register_and_me(client):
    response = await _register(client)
    assert response.status_code == 201
    token = response.json()["access_token"]
    assert response.json()["role"] == "client"

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "new@example.com"
    assert me.json()["phone"] == "+14155552680"


async def test_duplicate_email(client):
    await _register(client)
    response = await _register(client, email="NEW@example.com")
    assert response.status_code == 409
    assert response.json()["error"] == "Email already registered"


async def test_login(client):
    await _register(client)

    ok = await client.post("/api/auth/login", json={"email": "new@example.com", "password": "correct-horse"})
    assert ok.status_code == 200

    bad = await client.post("/api/auth/login", json={"email": "new@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401
    assert bad.json()["code"] == "auth.invalid_credentials"


async def test_invalid_phone_is_rejected(client):
    response = await client.post(
        "/api/auth/register",
        json={"email": "x@example.com", "password": "correct-horse", "phone": "12"},
    )
    assert response.status_code == 422


async def test_bad_token(client):
    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"] == "Could not validate credentials"


async def test_otp_login_creates_client(client):
    requested = await client.post("/api/auth/otp/request", json={"phone": "+1 415 555 2699"})
    assert requested.status_code == 200
    code = requested.json()["code"]

    wrong = "000000" if code != "000000" else "111111"
    rejected = await client.post("/api/auth/otp/verify", json={"phone": "+14155552699", "code": wrong})
    assert rejected.status_code == 401
    assert rejected.json()["code"] == "auth.invalid_otp"

    verified = await client.post("/api/auth/otp/verify", json={"phone": "+14155552699", "code": code})
    assert verified.status_code == 200
    token = verified.json()["access_token"]

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["phone_verified"] is True
    assert me.json()["role"] == "client"

    # Codes are single use
    reused = await client.post("/api/auth/otp/verify", json={"phone": "+14155552699", "code": code})
    assert reused.status_code == 401


async def test_otp_send_failure_is_reported(monkeypatch, client, db):
    async def failing_send(self, to, message):
        raise SMSDeliveryError("Unreachable number")

    monkeypatch.setattr(TwilioClient, "send_sms", failing_send)

    response = await client.post("/api/auth/otp/request", json={"phone": "+14155552699"})
    assert response.status_code == 502
    assert response.json()["code"] == "auth.otp_send_failed"

    # The unsent code cannot be used
    result = await db.execute(select(OTPCode).where(OTPCode.phone == "+14155552699"))
    assert result.scalars().all() == []


async def test_address_book_default(client, client_user):
    headers = auth_headers(client_user)
    home = {"street": "1 Main St", "city": "Austin", "state": "TX", "postal_code": "78701", "is_default": True}
    office = {**home, "label": "Office", "street": "2 Market St"}

    await client.post("/api/profile/addresses", json=home, headers=headers)
    created = await client.post("/api/profile/addresses", json=office, headers=headers)
    assert created.status_code == 201
    assert created.json()["full_address"] == "2 Market St, Austin, TX 78701"

    addresses = (await client.get("/api/profile/addresses", headers=headers)).json()
    assert [a["label"] for a in addresses if a["is_default"]] == ["Office"]

    deleted = await client.delete(f"/api/profile/addresses/{created.json()['id']}", headers=headers)
    assert deleted.status_code == 204


async def test_client_applies_as_agent(client, client_user):
    headers = auth_headers(client_user)
    applied = await client.post(
        "/api/agent/register", json={"bio": "Handy", "service_types": ["tv_mounting"]}, headers=headers,
    )
    assert applied.status_code == 201
    assert applied.json()["status"] == "pending"

    again = await client.post("/api/agent/register", json={}, headers=headers)
    assert again.status_code == 409
