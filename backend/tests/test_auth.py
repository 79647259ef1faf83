"""Login, token validation and role checks."""

from tests.conftest import auth_headers


def test_login_success(client, seed_users):
    resp = client.post("/api/auth/login", json={"email": "admin@example.com"})
    assert resp.status_code == 200
    data = resp.json()
    assert "access_token" in data
    assert data["user"]["email"] == "admin@example.com"
    assert data["user"]["is_admin"] is True


def test_login_is_case_insensitive(client, seed_users):
    resp = client.post("/api/auth/login", json={"email": "  Alice@Example.com "})
    assert resp.status_code == 200
    assert resp.json()["user"]["display_name"] == "Alice"


def test_login_invalid_user(client, seed_users):
    resp = client.post("/api/auth/login", json={"email": "nobody@example.com"})
    assert resp.status_code == 401


def test_login_inactive_user(client, db, seed_users):
    seed_users["bob"].is_active = False
    db.commit()
    resp = client.post("/api/auth/login", json={"email": "bob@example.com"})
    assert resp.status_code == 401


def test_get_me(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    resp = client.get("/api/auth/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "alice@example.com"
    assert resp.json()["role"] == "user"


def test_invalid_token(client, seed_users):
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
