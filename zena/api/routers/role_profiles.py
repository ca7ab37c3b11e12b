"""
Role profile endpoints - named bundles of roles.
"""
import uuid
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from typing import List
from zena.api.core.security import CurrentUser, get_client_ip, get_user_agent, require_permission
from zena.api.db.session import get_db
from zena.api.models.role import RoleProfile
from zena.api.schemas.rbac import RoleProfileCreate, RoleProfileResponse, RoleProfileUpdate
from zena.api.services import rbac_service
from zena.api.services.audit_service import audit_log
from zena.api.services.permission_catalog import ROLE_MANAGE, USER_MANAGE

router = APIRouter(prefix="/api/v1/admin/role-profiles", tags=["admin-role-profiles"])


def _audit_profile(db: Session, request: Request, current_user: CurrentUser, profile: RoleProfile, event_type: str):
    audit_log(
        db=db,
        tenant_id=current_user.tenant_id,
        entity_type="RoleProfile",
        entity_id=profile.id,
        event_type=event_type,
        actor=current_user.actor,
        details={"name": profile.name, "role_ids": list(profile.role_ids or []), "is_active": profile.is_active},
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        commit=False
    )


@router.get("", response_model=List[RoleProfileResponse])
def list_role_profiles(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE, USER_MANAGE))
):
    return db.query(RoleProfile).filter(
        RoleProfile.tenant_id == current_user.tenant_id
    ).order_by(RoleProfile.name).all()


@router.post("", response_model=RoleProfileResponse, status_code=201)
def create_role_profile(
    profile_data: RoleProfileCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE))
):
    profile = RoleProfile(
        tenant_id=current_user.tenant_id,
        name=profile_data.name,
        description=profile_data.description,
        role_ids=rbac_service.normalize_profile_roles(db, current_user.tenant_id, profile_data.role_ids),
        is_active=profile_data.is_active
    )
    db.add(profile)
    db.flush()
    _audit_profile(db, request, current_user, profile, "role_profile.created")
    db.commit()
    db.refresh(profile)
    return profile


@router.get("/{profile_id}", response_model=RoleProfileResponse)
def get_role_profile(
    profile_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE, USER_MANAGE))
):
    return rbac_service.get_profile(db, current_user.tenant_id, profile_id)


@router.put("/{profile_id}", response_model=RoleProfileResponse)
def update_role_profile(
    profile_id: uuid.UUID,
    profile_data: RoleProfileUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE))
):
    profile = rbac_service.get_profile(db, current_user.tenant_id, profile_id)

    if profile_data.name is not None:
        profile.name = profile_data.name
    if profile_data.description is not None:
        profile.description = profile_data.description
    if profile_data.is_active is not None:
        profile.is_active = profile_data.is_active
    if profile_data.role_ids is not None:
        profile.role_ids = rbac_service.normalize_profile_roles(db, current_user.tenant_id, profile_data.role_ids)

    _audit_profile(db, request, current_user, profile, "role_profile.updated")
    db.commit()
    db.refresh(profile)
    return profile


@router.delete("/{profile_id}", status_code=204)
def delete_role_profile(
    profile_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE))
):
    profile = rbac_service.get_profile(db, current_user.tenant_id, profile_id)
    _audit_profile(db, request, current_user, profile, "role_profile.deleted")
    db.delete(profile)
    db.commit()
    return Response(status_code=204)
