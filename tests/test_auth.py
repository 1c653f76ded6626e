"""Tests for admin authentication.

This module tests:
- Password hashing and JWT helpers
- Login and the current-admin endpoint
"""

import pytest
from datetime import timedelta

from seatbooking import auth_utils


class TestAuthUtils:
    """Test hashing and token helpers."""

    def test_password_round_trip(self):
        hashed = auth_utils.hash_password("correct horse")

        assert hashed != "correct horse"
        assert auth_utils.verify_password("correct horse", hashed) is True
        assert auth_utils.verify_password("wrong horse", hashed) is False

    def test_malformed_hash_does_not_verify(self):
        assert auth_utils.verify_password("anything", "not-a-bcrypt-hash") is False

    def test_access_token_payload(self):
        token = auth_utils.create_access_token({"sub": "abc", "email": "admin@example.com"})
        payload = auth_utils.validate_access_token(token)

        assert payload["sub"] == "abc"
        assert payload["type"] == "access"

    def test_expired_token_rejected(self):
        token = auth_utils.create_access_token({"sub": "abc"}, expires_delta=timedelta(seconds=-10))

        with pytest.raises(ValueError):
            auth_utils.validate_access_token(token)

    def test_tampered_token_rejected(self):
        token = auth_utils.create_access_token({"sub": "abc"})

        with pytest.raises(ValueError):
            auth_utils.validate_access_token(token[:-2] + ("aa" if token[-2:] != "aa" else "bb"))


class TestLogin:
    """Test POST /api/auth/login and GET /api/auth/me."""

    def test_login_success(self, client, admin_user):
        response = client.post(
            "/api/auth/login",
            json={"email": "Admin@Example.com", "password": "adminpassword123"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] > 0
        assert data["access_token"]

    def test_wrong_password(self, client, admin_user):
        response = client.post(
            "/api/auth/login",
            json={"email": "admin@example.com", "password": "not-the-password"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect email or password"

    def test_unknown_email_gets_same_error(self, client, admin_user):
        response = client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": "adminpassword123"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect email or password"

    def test_me(self, client, admin_headers):
        response = client.get("/api/auth/me", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "admin@example.com"
        assert data["full_name"] == "Event Desk"
        assert data["last_login"] is not None

    def test_me_with_deleted_admin(self, client, test_db, admin_user, admin_headers):
        test_db.delete(admin_user)
        test_db.commit()

        response = client.get("/api/auth/me", headers=admin_headers)

        assert response.status_code == 401
