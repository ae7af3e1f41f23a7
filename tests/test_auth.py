from conftest import PASSWORD, auth_headers
from models.log import Log


def register(client, **overrides):
    payload = {
        "name": "Bob",
        "email": "bob@example.com",
        "password": "password123",
        "password_confirmation": "password123",
    }
    payload.update(overrides)
    return client.post("/register", json=payload)


def test_register_returns_user_and_token(client):
    res = register(client)
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "bob@example.com"
    assert body["data"]["user"]["role"] == "user"
    assert body["data"]["token"]

    profile = client.get("/profile", headers={"Authorization": f"Bearer {body['data']['token']}"})
    assert profile.status_code == 200
    assert profile.json()["data"]["name"] == "Bob"


def test_register_duplicate_email_is_field_error(client, user):
    res = register(client, email="ALICE@example.com")
    assert res.status_code == 422
    body = res.json()
    assert body["success"] is False
    assert "email" in body["errors"]


def test_register_validation_errors_are_keyed_by_field(client):
    res = register(client, name="B", password="short", password_confirmation="short")
    assert res.status_code == 422
    errors = res.json()["errors"]
    assert "name" in errors
    assert "password" in errors


def test_register_password_confirmation_must_match(client):
    res = register(client, password_confirmation="different123")
    assert res.status_code == 422
    assert "password_confirmation" in res.json()["errors"]


def test_login_success_and_failure(client, user, db):
    ok = client.post("/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert ok.status_code == 200
    assert ok.json()["data"]["user"]["id"] == user.id

    bad = client.post("/login", json={"email": "alice@example.com", "password": "wrong-password"})
    assert bad.status_code == 401
    assert bad.json() == {"success": False, "message": "Invalid credentials"}

    db.expire_all()
    statuses = [row.status for row in db.query(Log).filter(Log.action == "LOGIN").order_by(Log.id)]
    assert statuses == ["SUCCESS", "FAIL"]


def test_profile_requires_token(client):
    res = client.get("/profile")
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_invalid_token_is_rejected(client):
    res = client.get("/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


def test_update_profile_fields(client, user, user_headers):
    res = client.put("/update", json={"name": "Alice Smith"}, headers=user_headers)
    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Alice Smith"


def test_update_password_requires_correct_current_password(client, user, user_headers):
    res = client.put(
        "/update",
        json={"current_password": "not-it", "password": "newpass123", "password_confirmation": "newpass123"},
        headers=user_headers,
    )
    assert res.status_code == 400

    res = client.put(
        "/update",
        json={"current_password": PASSWORD, "password": "newpass123", "password_confirmation": "newpass123"},
        headers=user_headers,
    )
    assert res.status_code == 200
    login = client.post("/login", json={"email": "alice@example.com", "password": "newpass123"})
    assert login.status_code == 200


def test_update_email_taken_by_another_user(client, user, make_user, user_headers):
    make_user(email="carol@example.com")
    res = client.put("/update", json={"email": "carol@example.com"}, headers=user_headers)
    assert res.status_code == 422
    assert "email" in res.json()["errors"]


def test_logout_revokes_token(client, user):
    headers = auth_headers(user)
    assert client.post("/logout", headers=headers).status_code == 200

    res = client.get("/profile", headers=headers)
    assert res.status_code == 401
    assert res.json()["message"] == "Token has been revoked"

    # A fresh token still works
    assert client.get("/profile", headers=auth_headers(user)).status_code == 200
