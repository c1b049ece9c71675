"""
Integration tests for the Authentication Flow.

Verifies Login -> Me and role checks.
"""

import pytest
from sqlalchemy import select

from backend.app.models.audit_log import AuditLog
from backend.app.models.enums import UserRole
from backend.app.services.audit import AuditAction


@pytest.mark.asyncio
async def test_login_and_me(client, make_user):
    """Login by username or email returns a token that /me accepts."""
    await make_user("salesman1", "sales123", UserRole.SALESMAN)

    response = await client.post("/v1/auth/login", json={"username": "salesman1@distro.in", "password": "sales123"})
    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "SALESMAN"
    assert data["customer_id"] is None

    me = await client.get("/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "salesman1"


@pytest.mark.asyncio
async def test_login_wrong_password_is_audited(client, make_user, db_session):
    await make_user("admin", "admin123", UserRole.ADMIN)

    response = await client.post("/v1/auth/login", json={"username": "admin", "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_UNAUTHORIZED"

    result = await db_session.execute(select(AuditLog).where(AuditLog.action == AuditAction.LOGIN_FAILED))
    log = result.scalar_one()
    assert log.meta_data == {"reason": "Invalid password"}


@pytest.mark.asyncio
async def test_unknown_user_cannot_login(client):
    response = await client.post("/v1/auth/login", json={"username": "ghost", "password": "whatever"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_cannot_login(client, make_user):
    await make_user("former", "former123", UserRole.SALESMAN, is_active=False)

    response = await client.post("/v1/auth/login", json={"username": "former", "password": "former123"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_customer_login_carries_customer_id(client, customer_account):
    customer_id, token = customer_account

    me = await client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["role"] == "CUSTOMER"
    assert me.json()["customer_id"] == customer_id


@pytest.mark.asyncio
async def test_missing_or_bad_token(client):
    response = await client.get("/v1/auth/me")
    assert response.status_code in (401, 403)

    response = await client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_only_admin_creates_customers(client, salesman_token):
    response = await client.post(
        "/v1/customers",
        json={"name": "Gupta Stores", "address": "4 Station Road"},
        headers={"Authorization": f"Bearer {salesman_token}"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_health_reports_cache_backend(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["cache"] == "memory"
