"""Integration tests for auth endpoints."""
import pytest


@pytest.mark.asyncio
class TestAuthEndpoints:
    """Tests for /auth."""

    async def test_register(self, app_client):
        """Test registration returns the user without secrets."""
        response = await app_client.post(
            "/auth/register",
            json={"email": "new@example.com", "password": "password123", "name": "New"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new@example.com"
        assert data["role"] == "user"
        assert "id" in data
        assert "hashed_password" not in data

    async def test_register_duplicate(self, app_client):
        """Test duplicate email returns 400."""
        body = {"email": "dup@example.com", "password": "password123", "name": "Dup"}
        await app_client.post("/auth/register", json=body)

        response = await app_client.post("/auth/register", json=body)

        assert response.status_code == 400
        assert "already registered" in response.json()["detail"].lower()

    async def test_register_invalid_email(self, app_client):
        """Test invalid email returns 422."""
        response = await app_client.post(
            "/auth/register",
            json={"email": "not-an-email", "password": "password123", "name": "X"},
        )

        assert response.status_code == 422

    async def test_login_wrong_password(self, app_client, login):
        """Test wrong password returns 401."""
        await login("wrong@example.com")

        response = await app_client.post(
            "/auth/login",
            json={"email": "wrong@example.com", "password": "bad"},
        )

        assert response.status_code == 401

    async def test_me(self, app_client, login):
        """Test /auth/me returns the caller with their role."""
        user_id, headers = await login("me@example.com", role="admin")

        response = await app_client.get("/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["id"] == user_id
        assert response.json()["role"] == "admin"

    async def test_me_requires_auth(self, app_client):
        """Test missing and invalid tokens return 401."""
        assert (await app_client.get("/auth/me")).status_code == 401

        response = await app_client.get(
            "/auth/me", headers={"Authorization": "Bearer invalid.token.here"}
        )
        assert response.status_code == 401

    async def test_list_users(self, app_client, login):
        """Test only admins can list users."""
        _, user_headers = await login("plain@example.com")
        _, admin_headers = await login("boss@example.com", role="admin")

        assert (await app_client.get("/auth/users", headers=user_headers)).status_code == 403

        response = await app_client.get("/auth/users", headers=admin_headers)
        assert response.status_code == 200
        assert {u["email"] for u in response.json()} == {"plain@example.com", "boss@example.com"}
