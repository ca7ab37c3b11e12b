"""
Authentication and RBAC enforcement.

Callers authenticate with a bearer JWT carrying `sub` (user id) and
`tenant_id`. The resolved CurrentUser holds the tenant id explicitly; routes
pass it to every service call instead of relying on an ambient tenant.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import FrozenSet, Optional

import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from zena.api.core.config import settings
from zena.api.core.errors import Forbidden, TenantMismatch, Unauthenticated
from zena.api.db.session import get_db
from zena.api.models.user import User
from zena.api.services.rbac_service import effective_permissions


@dataclass(frozen=True)
class CurrentUser:
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    email: str
    permissions: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def actor(self) -> str:
        return str(self.id)

    def has(self, *permissions: str) -> bool:
        """True if the user holds any of the given permissions."""
        return any(permission in self.permissions for permission in permissions)


def create_access_token(user_id: uuid.UUID, tenant_id: uuid.UUID, ttl_minutes: Optional[int] = None) -> str:
    """Issue a signed access token for a user."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id),
        "iat": now,
        "exp": now + timedelta(minutes=ttl_minutes or settings.ACCESS_TOKEN_TTL_MINUTES),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated()
    return token.strip()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser:
    """
    Resolve the authenticated user from the bearer token.

    Raises:
        Unauthenticated(401): Missing, expired or invalid token, or unknown/inactive user
        TenantMismatch(403): Token tenant does not match the user's tenant
    """
    token = _bearer_token(request)
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        user_id = uuid.UUID(claims["sub"])
        tenant_id = uuid.UUID(claims["tenant_id"])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise Unauthenticated("Invalid token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise Unauthenticated("Unknown or inactive user")
    if user.tenant_id != tenant_id:
        raise TenantMismatch("Token tenant does not match user tenant")

    return CurrentUser(
        id=user.id,
        tenant_id=user.tenant_id,
        name=user.name,
        email=user.email,
        permissions=effective_permissions(user),
    )


def require_permission(*permissions: str):
    """
    Dependency for permission-based access control.

    The caller must hold at least one of the given permissions.

    Usage:
        @router.get("/x")
        def x(current_user: CurrentUser = Depends(require_permission("admin.role.manage"))):
            ...
    """
    def _require_permission(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not current_user.has(*permissions):
            raise Forbidden()
        return current_user

    return _require_permission


def ensure_same_tenant(current_user: CurrentUser, tenant_id: uuid.UUID) -> None:
    """Tenant check that must run before any business logic on a resource."""
    if current_user.tenant_id != tenant_id:
        raise TenantMismatch()


def get_client_ip(request: Request) -> Optional[str]:
    """
    Get client IP address from request.

    Args:
        request: FastAPI request

    Returns:
        IP address string or None
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_user_agent(request: Request) -> Optional[str]:
    """
    Get user agent from request.

    Args:
        request: FastAPI request

    Returns:
        User agent string or None
    """
    return request.headers.get("User-Agent")
