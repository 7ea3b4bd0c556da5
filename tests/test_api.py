"""
Tests for the account endpoints: /auth, /users/me and /health.
"""

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.user import User


class TestRegister:
    """POST /auth/register"""

    def test_register_user(self, client: TestClient):
        response = client.post("/auth/register", json={
            "email": "minji@example.com",
            "password": "securepass123",
            "display_name": "Minji",
            "timezone": "Asia/Seoul",
            "locale": "ko",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "minji@example.com"
        assert data["timezone"] == "Asia/Seoul"
        assert data["locale"] == "ko"
        assert data["is_active"] is True
        assert "password" not in data
        assert "hashed_password" not in data

    def test_register_duplicate_email(self, client: TestClient, test_user: User):
        response = client.post("/auth/register", json={
            "email": test_user.email,
            "password": "anotherpass123",
        })

        assert response.status_code == 400
        assert response.json()["detail"] == "Email already registered"

    def test_register_short_password(self, client: TestClient):
        response = client.post("/auth/register", json={
            "email": "short@example.com",
            "password": "1234567",
        })
        assert response.status_code == 422

    def test_register_unknown_timezone(self, client: TestClient):
        response = client.post("/auth/register", json={
            "email": "tz@example.com",
            "password": "securepass123",
            "timezone": "Mars/Olympus",
        })
        assert response.status_code == 422

    def test_register_unsupported_locale(self, client: TestClient):
        response = client.post("/auth/register", json={
            "email": "fr@example.com",
            "password": "securepass123",
            "locale": "fr",
        })
        assert response.status_code == 422


class TestLogin:
    """POST /auth/login"""

    def test_login_success(self, client: TestClient, test_user: User):
        response = client.post("/auth/login", json={
            "email": "test@example.com",
            "password": "testpassword",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]

    def test_login_wrong_password(self, client: TestClient, test_user: User):
        response = client.post("/auth/login", json={
            "email": "test@example.com",
            "password": "wrongpassword",
        })
        assert response.status_code == 401

    def test_login_unknown_email(self, client: TestClient):
        response = client.post("/auth/login", json={
            "email": "nobody@example.com",
            "password": "whatever123",
        })
        assert response.status_code == 401

    def test_login_inactive_user(self, client: TestClient, db: Session, test_user: User):
        test_user.is_active = False
        db.commit()

        response = client.post("/auth/login", json={
            "email": "test@example.com",
            "password": "testpassword",
        })
        assert response.status_code == 403


class TestUsersMe:
    """GET / PATCH /users/me"""

    def test_get_profile(self, client: TestClient, auth_headers: dict, test_user: User):
        response = client.get("/users/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["id"] == str(test_user.id)

    def test_requires_token(self, client: TestClient):
        response = client.get("/users/me")
        assert response.status_code in (401, 403)

    def test_invalid_token(self, client: TestClient):
        response = client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_inactive_user_rejected(self, client: TestClient, db: Session, test_user: User, auth_headers: dict):
        test_user.is_active = False
        db.commit()

        response = client.get("/users/me", headers=auth_headers)
        assert response.status_code == 403

    def test_update_timezone_and_locale(self, client: TestClient, auth_headers: dict):
        response = client.patch("/users/me", headers=auth_headers, json={
            "timezone": "America/New_York",
            "locale": "en",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["timezone"] == "America/New_York"
        assert data["locale"] == "en"
        assert data["display_name"] == "Test User"

    def test_update_rejects_unknown_timezone(self, client: TestClient, auth_headers: dict):
        response = client.patch("/users/me", headers=auth_headers, json={"timezone": "Nowhere/City"})
        assert response.status_code == 422


def test_health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
