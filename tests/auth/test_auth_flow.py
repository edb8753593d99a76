"""Integration tests for signup, login, token refresh and logout."""

from httpx import AsyncClient

from conftest import DEFAULT_PASSWORD, signup


class TestSignup:
    async def test_signup_returns_tokens_and_user(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/signup", json={"email": "New.User@Example.com", "password": "secret123"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 3600
        assert data["user"]["email"] == "new.user@example.com"
        assert data["access_token"] and data["refresh_token"]

    async def test_duplicate_email_conflicts(self, client: AsyncClient):
        await signup(client, "dup@example.com")
        response = await client.post(
            "/api/auth/signup", json={"email": "DUP@example.com", "password": "another1"}
        )
        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "CONFLICT"
        assert error["message"] == "An account with this email already exists"

    async def test_short_password_rejected(self, client: AsyncClient):
        response = await client.post("/api/auth/signup", json={"email": "a@example.com", "password": "12345"})
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "password"

    async def test_invalid_email_rejected(self, client: AsyncClient):
        response = await client.post("/api/auth/signup", json={"email": "not-an-email", "password": "secret123"})
        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "email"


class TestLogin:
    async def test_login_success(self, client: AsyncClient):
        await signup(client, "carol@example.com")
        response = await client.post(
            "/api/auth/login", json={"email": "carol@example.com", "password": DEFAULT_PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "carol@example.com"

    async def test_wrong_password_and_unknown_email_look_the_same(self, client: AsyncClient):
        await signup(client, "carol@example.com")
        wrong_password = await client.post(
            "/api/auth/login", json={"email": "carol@example.com", "password": "wrong-password"}
        )
        unknown_email = await client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": DEFAULT_PASSWORD}
        )
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["error"]["message"] == "Invalid email or password"


class TestTokenRefresh:
    async def test_refresh_token_rotation(self, client: AsyncClient):
        tokens = await signup(client, "dave@example.com")
        response = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        data = response.json()
        assert data["refresh_token"] != tokens["refresh_token"]
        assert data["user"]["email"] == "dave@example.com"

    async def test_old_refresh_token_rejected_after_rotation(self, client: AsyncClient):
        tokens = await signup(client, "dave@example.com")
        await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        response = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401

    async def test_refresh_token_invalid(self, client: AsyncClient):
        response = await client.post("/api/auth/refresh", json={"refresh_token": "not_a_valid_jwt_token"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"

    async def test_access_token_cannot_refresh(self, client: AsyncClient):
        tokens = await signup(client, "dave@example.com")
        response = await client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 401


class TestLogout:
    async def test_logout_revokes_refresh_token(self, client: AsyncClient):
        tokens = await signup(client, "erin@example.com")
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        response = await client.post(
            "/api/auth/logout", json={"refresh_token": tokens["refresh_token"]}, headers=headers
        )
        assert response.status_code == 200
        assert response.json() == {"status": "logged_out"}

        refreshed = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert refreshed.status_code == 401

    async def test_logout_with_unknown_token_still_succeeds(self, client: AsyncClient):
        tokens = await signup(client, "erin@example.com")
        response = await client.post(
            "/api/auth/logout",
            json={"refresh_token": "garbage"},
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        assert response.status_code == 200

    async def test_logout_requires_access_token(self, client: AsyncClient):
        tokens = await signup(client, "erin@example.com")
        response = await client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401


class TestProtectedEndpoints:
    async def test_missing_token(self, client: AsyncClient):
        response = await client.get("/api/topics")
        assert response.status_code == 401
        assert response.json() == {
            "error": {"code": "AUTHENTICATION_ERROR", "message": "Missing or invalid authentication token"}
        }

    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get("/api/topics", headers={"Authorization": "Bearer abc.def.ghi"})
        assert response.status_code == 401

    async def test_refresh_token_not_accepted_as_access(self, client: AsyncClient):
        tokens = await signup(client, "frank@example.com")
        response = await client.get(
            "/api/topics", headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
        )
        assert response.status_code == 401
