"""
Tests for authentication endpoints: signup, login, refresh and the current user.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.core.security import create_access_token, create_refresh_token
from app.models.user import UserStatus

from conftest import PASSWORD, auth_headers_for, make_user


@pytest.mark.asyncio
async def test_signup_client(client: AsyncClient):
    """Successful signup returns the user and a token pair."""
    response = await client.post("/api/v1/auth/signup", json={
        "email": "New@Example.com",
        "password": "SecurePass123",
        "first_name": "New",
        "last_name": "Client",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["user"]["email"] == "new@example.com"
    assert data["user"]["user_type"] == "CLIENT"
    assert data["user"]["last_login"] is not None
    assert data["tokens"]["access_token"]
    assert data["tokens"]["refresh_token"]
    assert data["tokens"]["token_type"] == "bearer"
    assert "hashed_password" not in data["user"]  # Never expose password hash


@pytest.mark.asyncio
async def test_signup_performer(client: AsyncClient):
    response = await client.post("/api/v1/auth/signup", json={
        "email": "dj@example.com",
        "password": "SecurePass123",
        "first_name": "Mike",
        "last_name": "Beats",
        "user_type": "PERFORMER",
    })
    assert response.status_code == 201
    assert response.json()["user"]["user_type"] == "PERFORMER"


@pytest.mark.asyncio
async def test_signup_cannot_create_admin(client: AsyncClient):
    response = await client.post("/api/v1/auth/signup", json={
        "email": "sneaky@example.com",
        "password": "SecurePass123",
        "first_name": "Sneaky",
        "last_name": "Admin",
        "user_type": "ADMIN",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_signup_duplicate_email(client: AsyncClient, client_user):
    """Duplicate email returns 409."""
    response = await client.post("/api/v1/auth/signup", json={
        "email": "client@example.com",
        "password": "SecurePass123",
        "first_name": "John",
        "last_name": "Again",
    })
    assert response.status_code == 409
    assert response.json()["code"] == "USER_EXISTS"


@pytest.mark.asyncio
async def test_signup_short_password(client: AsyncClient):
    """Password under 8 chars fails validation."""
    response = await client.post("/api/v1/auth/signup", json={
        "email": "weak@example.com",
        "password": "Sh0rt",
        "first_name": "Weak",
        "last_name": "User",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_signup_weak_password(client: AsyncClient):
    """Long enough but missing an uppercase letter and a digit."""
    response = await client.post("/api/v1/auth/signup", json={
        "email": "weak@example.com",
        "password": "alllowercase",
        "first_name": "Weak",
        "last_name": "User",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "WEAK_PASSWORD"
    assert "uppercase" in body["detail"]


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, client_user):
    """Valid credentials return JWT tokens."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "client@example.com",
        "password": PASSWORD,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == client_user.id
    assert "access_token" in data["tokens"]


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, client_user):
    """Wrong password returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "client@example.com",
        "password": "WrongPassword1",
    })
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_nonexistent_email(client: AsyncClient):
    """Non-existent email returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "nobody@example.com",
        "password": "AnyPassword123",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_suspended_account(client: AsyncClient, db_session):
    await make_user(db_session, "suspended@example.com", status=UserStatus.SUSPENDED)
    response = await client.post("/api/v1/auth/login", json={
        "email": "suspended@example.com",
        "password": PASSWORD,
    })
    assert response.status_code == 401
    assert response.json()["code"] == "ACCOUNT_INACTIVE"


@pytest.mark.asyncio
async def test_me_requires_token(client: AsyncClient):
    response = await client.get("/api/v1/users/me")
    assert response.status_code == 401
    assert response.json()["code"] == "MISSING_TOKEN"


@pytest.mark.asyncio
async def test_me_rejects_garbage_token(client: AsyncClient):
    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_me_rejects_expired_token(client: AsyncClient, client_user):
    token = create_access_token({"sub": str(client_user.id)}, expires_delta=timedelta(seconds=-10))
    response = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["code"] == "TOKEN_EXPIRED"


@pytest.mark.asyncio
async def test_me_rejects_refresh_token(client: AsyncClient, client_user):
    """A refresh token is not accepted where an access token is required."""
    token = create_refresh_token({"sub": str(client_user.id)})
    response = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_me_returns_performer_profile(client: AsyncClient, performer_user, performer):
    response = await client.get("/api/v1/users/me", headers=auth_headers_for(performer_user))
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "magician@example.com"
    assert data["performer"]["id"] == performer.id
    assert data["performer"]["stripe_onboarding_complete"] is True


@pytest.mark.asyncio
async def test_me_client_has_no_performer(client: AsyncClient, client_headers):
    response = await client.get("/api/v1/users/me", headers=client_headers)
    assert response.status_code == 200
    assert response.json()["performer"] is None


@pytest.mark.asyncio
async def test_refresh_issues_new_pair(client: AsyncClient, client_headers):
    response = await client.post("/api/v1/auth/refresh", headers=client_headers)
    assert response.status_code == 200
    assert set(response.json()) == {"access_token", "refresh_token", "token_type"}


@pytest.mark.asyncio
async def test_logout(client: AsyncClient, client_headers):
    response = await client.post("/api/v1/auth/logout", headers=client_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"
