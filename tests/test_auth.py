"""
Tests for authentication endpoints (signup and login).

These tests verify:
  - Successful signup creates a USER and returns a JWT
  - Duplicate email signup is rejected (409 Conflict)
  - Successful login returns a valid JWT
  - Wrong password is rejected (401 Unauthorized)
  - Non-existent email is rejected with the same error (anti-enumeration)
  - Short passwords and malformed emails are rejected (422)
  - Protected endpoints reject missing or forged tokens
"""

import pytest


# ---------------------------------------------------------------------------
# Signup Tests
# ---------------------------------------------------------------------------

class TestSignup:
    """Tests for POST /auth/signup."""

    async def test_signup_success(self, client):
        """A valid signup should return 201 with user_id, email, role and token."""
        response = await client.post(
            "/auth/signup",
            json={"email": "newuser@example.com", "password": "StrongPass99!"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["role"] == "USER"
        assert data["token_type"] == "bearer"
        assert "token" in data
        assert "user_id" in data
        assert "password" not in data
        assert "hashed_password" not in data

    async def test_signup_duplicate_email(self, client):
        """Signing up with an already-registered email should return 409."""
        signup_data = {"email": "duplicate@example.com", "password": "StrongPass99!"}
        response1 = await client.post("/auth/signup", json=signup_data)
        assert response1.status_code == 201

        response2 = await client.post("/auth/signup", json=signup_data)
        assert response2.status_code == 409
        assert response2.json()["error_type"] == "duplicate_email"
        assert "already registered" in response2.json()["detail"]

    async def test_signup_short_password(self, client):
        """Passwords shorter than 8 characters should be rejected."""
        response = await client.post(
            "/auth/signup",
            json={"email": "short@example.com", "password": "short"},
        )
        assert response.status_code == 422

    async def test_signup_invalid_email(self, client):
        response = await client.post(
            "/auth/signup",
            json={"email": "not-an-email", "password": "StrongPass99!"},
        )
        assert response.status_code == 422

    async def test_signup_missing_fields(self, client):
        response = await client.post("/auth/signup", json={"email": "missing@example.com"})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Login Tests
# ---------------------------------------------------------------------------

class TestLogin:
    """Tests for POST /auth/login."""

    async def test_login_success(self, client):
        await client.post(
            "/auth/signup",
            json={"email": "login@example.com", "password": "CorrectPass123!"},
        )

        response = await client.post(
            "/auth/login",
            json={"email": "login@example.com", "password": "CorrectPass123!"},
        )
        assert response.status_code == 200
        data = response.json()
        assert "token" in data
        assert data["token_type"] == "bearer"

    async def test_login_wrong_password(self, client):
        await client.post(
            "/auth/signup",
            json={"email": "wrongpw@example.com", "password": "CorrectPass123!"},
        )

        response = await client.post(
            "/auth/login",
            json={"email": "wrongpw@example.com", "password": "WrongPassword!"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_login_nonexistent_email(self, client):
        """Login with an unknown email should return 401.

        The error message must be identical to the wrong-password case to
        prevent user enumeration.
        """
        response = await client.post(
            "/auth/login",
            json={"email": "nobody@example.com", "password": "SomePassword123!"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_login_token_works_for_protected_endpoint(self, client):
        await client.post(
            "/auth/signup",
            json={"email": "protected@example.com", "password": "ValidPass123!"},
        )
        login_response = await client.post(
            "/auth/login",
            json={"email": "protected@example.com", "password": "ValidPass123!"},
        )
        token = login_response.json()["token"]

        response = await client.get(
            "/cards",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        assert response.json() == []


# ---------------------------------------------------------------------------
# Token Validation Tests
# ---------------------------------------------------------------------------

class TestTokenValidation:
    """Tests for JWT token validation on protected endpoints."""

    @pytest.mark.parametrize("path", ["/cards", "/transfers", "/admin/cards"])
    async def test_no_token_returns_401(self, client, path):
        response = await client.get(path)
        assert response.status_code == 401

    async def test_invalid_token_returns_401(self, client):
        response = await client.get(
            "/cards",
            headers={"Authorization": "Bearer totally.fake.token"},
        )
        assert response.status_code == 401

    async def test_malformed_auth_header_returns_401(self, client):
        response = await client.get(
            "/cards",
            headers={"Authorization": "NotBearer sometoken"},
        )
        assert response.status_code == 401


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
