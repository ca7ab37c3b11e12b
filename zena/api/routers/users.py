"""
User administration endpoints and the caller's own identity.
"""
import uuid
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import List
from zena.api.core.security import CurrentUser, get_client_ip, get_current_user, get_user_agent, require_permission
from zena.api.db.session import get_db
from zena.api.models.user import User
from zena.api.schemas.rbac import AssignProfile, MeResponse, SyncResult, UserResponse, UserRolesSync
from zena.api.services import rbac_service
from zena.api.services.audit_service import audit_log
from zena.api.services.permission_catalog import USER_MANAGE

router = APIRouter(prefix="/api/v1/admin/users", tags=["admin-users"])
me_router = APIRouter(prefix="/api/v1/me", tags=["me"])


@router.get("", response_model=List[UserResponse])
def list_users(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(USER_MANAGE))
):
    query = db.query(User).filter(User.tenant_id == current_user.tenant_id)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.name).all()


@router.put("/{user_id}/roles", response_model=SyncResult)
def sync_user_roles(
    user_id: uuid.UUID,
    sync_data: UserRolesSync,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(USER_MANAGE))
):
    """Replace the user's roles with exactly the given set."""
    user = rbac_service.get_tenant_user(db, current_user.tenant_id, user_id)
    result = rbac_service.sync_user_roles(db, current_user.tenant_id, user, sync_data.role_ids)

    audit_log(
        db=db,
        tenant_id=current_user.tenant_id,
        entity_type="User",
        entity_id=user.id,
        event_type="user.roles_synced",
        actor=current_user.actor,
        details=result,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        commit=False
    )
    db.commit()
    return result


@router.put("/{user_id}/assign-profile", response_model=SyncResult)
def assign_profile(
    user_id: uuid.UUID,
    assign_data: AssignProfile,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(USER_MANAGE))
):
    """Replace the user's roles with the profile's roles."""
    user = rbac_service.get_tenant_user(db, current_user.tenant_id, user_id)
    profile = rbac_service.get_profile(db, current_user.tenant_id, assign_data.profile_id)
    result = rbac_service.apply_profile(db, current_user.tenant_id, user, profile)

    audit_log(
        db=db,
        tenant_id=current_user.tenant_id,
        entity_type="User",
        entity_id=user.id,
        event_type="user.profile_assigned",
        actor=current_user.actor,
        details={"profile_id": str(profile.id), **result},
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        commit=False
    )
    db.commit()
    return result


@me_router.get("", response_model=MeResponse)
def get_me(current_user: CurrentUser = Depends(get_current_user)):
    """Authenticated user with effective permissions."""
    return MeResponse(
        id=current_user.id,
        tenant_id=current_user.tenant_id,
        name=current_user.name,
        email=current_user.email,
        permissions=sorted(current_user.permissions),
    )
