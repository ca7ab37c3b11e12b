from datetime import datetime, timedelta, timezone

import uuid

import jwt
import pytest

from zena.api.core.config import settings
from zena.api.core.errors import TenantMismatch
from zena.api.core.security import CurrentUser, create_access_token, ensure_same_tenant
from zena.api.tests.conftest import auth


def _token(claims):
    return {"Authorization": f"Bearer {jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)}"}


def test_valid_token_resolves_user(client, approver):
    response = client.get("/api/v1/me", headers=auth(approver))

    assert response.status_code == 200
    assert response.json()["tenant_id"] == str(approver.tenant_id)


def test_expired_token(client, approver):
    headers = _token({
        "sub": str(approver.id),
        "tenant_id": str(approver.tenant_id),
        "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
    })

    response = client.get("/api/v1/me", headers=headers)

    assert response.status_code == 401
    assert response.json()["detail"]["message"] == "Token has expired"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_tampered_token(client, approver):
    token = create_access_token(approver.id, approver.tenant_id)

    response = client.get("/api/v1/me", headers={"Authorization": f"Bearer {token}x"})

    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "UNAUTHENTICATED"


def test_token_tenant_must_match_user(client, approver, other_tenant):
    headers = {"Authorization": f"Bearer {create_access_token(approver.id, other_tenant.id)}"}

    response = client.get("/api/v1/me", headers=headers)

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "TENANT_MISMATCH"


def test_inactive_user_is_rejected(client, db, approver):
    approver.is_active = False
    db.commit()

    response = client.get("/api/v1/me", headers=auth(approver))

    assert response.status_code == 401


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_ensure_same_tenant():
    tenant_id = uuid.uuid4()
    user = CurrentUser(id=uuid.uuid4(), tenant_id=tenant_id, name="u", email="u@test")

    ensure_same_tenant(user, tenant_id)
    with pytest.raises(TenantMismatch) as exc_info:
        ensure_same_tenant(user, uuid.uuid4())
    assert exc_info.value.status_code == 403
    assert exc_info.value.detail["code"] == "TENANT_MISMATCH"
