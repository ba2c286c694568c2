"""Tests for authentication routes and token handling."""

from datetime import timedelta

from app.auth import create_access_token, hash_password, user_id_from_token, verify_password
from app.config import get_settings


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong", hashed)

    def test_verify_malformed_hash(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestTokens:
    def test_round_trip(self):
        settings = get_settings()
        token = create_access_token("usr_abc", settings)
        assert user_id_from_token(token, settings) == "usr_abc"


class TestRegister:
    def test_register(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"name": "Ada Lovelace", "email": "Ada@Example.com", "password": "analytical"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["user"]["email"] == "ada@example.com"
        assert body["user"]["id"].startswith("usr_")
        assert body["accessToken"]
        assert "passwordHash" not in body["user"]

    def test_duplicate_email(self, client, register):
        user, _ = register()
        resp = client.post(
            "/api/auth/register",
            json={"name": "Someone Else", "email": user["email"].upper(), "password": "another-pass"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Email already registered", "kind": "conflict"}

    def test_invalid_body(self, client):
        resp = client.post("/api/auth/register", json={"name": "A", "email": "x", "password": "1"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["kind"] == "validation_error"
        assert body["errors"]

    def test_invalid_email(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"name": "Valid Name", "email": "not-an-email", "password": "long-enough"},
        )
        assert resp.status_code == 400
        assert resp.json()["kind"] == "validation_error"


class TestLogin:
    def test_login(self, client, register):
        user, _ = register()
        resp = client.post("/api/auth/login", json={"email": user["email"], "password": "correct-horse"})
        assert resp.status_code == 200
        token = resp.json()["accessToken"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["user"]["id"] == user["id"]

    def test_wrong_password(self, client, register):
        user, _ = register()
        resp = client.post("/api/auth/login", json={"email": user["email"], "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["kind"] == "unauthenticated"

    def test_unknown_email(self, client):
        resp = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "x"})
        assert resp.status_code == 401


class TestCurrentUser:
    def test_missing_header(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_garbage_token(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

    def test_expired_token(self, client, register):
        user, _ = register()
        token = create_access_token(user["id"], get_settings(), expires_delta=timedelta(seconds=-5))
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_token_for_unknown_user(self, client):
        token = create_access_token("usr_TEST_ONLY_000000", get_settings())
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401


class TestHealth:
    def test_root(self, client):
        assert client.get("/").json()["status"] == "ok"

    def test_health(self, client):
        for path in ("/health", "/api/health"):
            body = client.get(path).json()
            assert body["status"] == "healthy"
            assert body["database"] == "connected"
