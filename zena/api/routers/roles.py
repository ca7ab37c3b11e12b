"""
Role administration and permission inspection endpoints.

System roles (tenant_id NULL) are listed for every tenant but are read-only;
tenant roles are fully managed here.
"""
import uuid
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session
from typing import List, Optional
from zena.api.core.security import CurrentUser, get_client_ip, get_user_agent, require_permission
from zena.api.db.session import get_db
from zena.api.models.role import Role
from zena.api.schemas.rbac import (
    PermissionGroupResponse,
    PermissionInspectionResponse,
    PermissionSync,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
    SyncResult,
)
from zena.api.services import permission_catalog, rbac_service
from zena.api.services.audit_service import audit_log
from zena.api.services.permission_catalog import ROLE_MANAGE, USER_MANAGE

router = APIRouter(prefix="/api/v1/admin", tags=["admin-roles"])


def _audit_role(db: Session, request: Request, current_user: CurrentUser, role: Role, event_type: str, details: dict):
    audit_log(
        db=db,
        tenant_id=current_user.tenant_id,
        entity_type="Role",
        entity_id=role.id,
        event_type=event_type,
        actor=current_user.actor,
        details={"slug": role.slug, **details},
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        commit=False
    )


@router.get("/permissions", response_model=List[PermissionGroupResponse])
def get_permission_catalog(
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE, USER_MANAGE))
):
    """Permission catalog grouped by area."""
    return [
        PermissionGroupResponse(
            key=group.key,
            label=group.label,
            permissions=[perm._asdict() for perm in group.permissions],
        )
        for group in permission_catalog.PERMISSION_GROUPS
    ]


@router.get("/permissions/inspect", response_model=PermissionInspectionResponse)
def inspect_permissions(
    user_id: Optional[uuid.UUID] = None,
    filter: Optional[str] = None,
    required: Optional[List[str]] = Query(None),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE, USER_MANAGE))
):
    """
    Effective permissions of a user with the roles that grant them.

    Query:
        user_id: User to inspect (defaults to the caller)
        filter: Catalog group (cost, project, task, document, user, system)
        required: Permission keys to check, repeated or comma-separated;
            defaults to every key of the selected group
    """
    user = rbac_service.get_tenant_user(db, current_user.tenant_id, user_id or current_user.id)

    required_keys = None
    if required:
        required_keys = [key.strip() for item in required for key in item.split(",") if key.strip()]

    inspection = rbac_service.inspect_user_permissions(user, group=filter, required=required_keys)
    return {"user_id": user.id, "filter": filter, **inspection.as_dict()}


@router.get("/roles", response_model=List[RoleResponse])
def list_roles(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE, USER_MANAGE))
):
    query = rbac_service.visible_roles_query(db, current_user.tenant_id)
    if not include_inactive:
        query = query.filter(Role.is_active.is_(True))
    return query.order_by(Role.is_system.desc(), Role.name).all()


@router.post("/roles", response_model=RoleResponse, status_code=201)
def create_role(
    role_data: RoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE))
):
    role = rbac_service.create_role(
        db,
        current_user.tenant_id,
        name=role_data.name,
        description=role_data.description,
        scope=role_data.scope,
        permissions=role_data.permissions,
    )
    db.flush()
    _audit_role(db, request, current_user, role, "role.created", {"permissions": role.permissions})
    db.commit()
    db.refresh(role)
    return role


@router.get("/roles/{role_id}", response_model=RoleResponse)
def get_role(
    role_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE, USER_MANAGE))
):
    return rbac_service.get_role(db, current_user.tenant_id, role_id)


@router.put("/roles/{role_id}", response_model=RoleResponse)
def update_role(
    role_id: uuid.UUID,
    role_data: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE))
):
    role = rbac_service.get_role(db, current_user.tenant_id, role_id)
    changes = role_data.model_dump(exclude_unset=True)
    rbac_service.update_role(db, role, **changes)
    _audit_role(db, request, current_user, role, "role.updated", {"changes": changes})
    db.commit()
    db.refresh(role)
    return role


@router.delete("/roles/{role_id}", status_code=204)
def delete_role(
    role_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE))
):
    role = rbac_service.get_role(db, current_user.tenant_id, role_id)
    _audit_role(db, request, current_user, role, "role.deleted", {"name": role.name})
    rbac_service.delete_role(db, role)
    db.commit()
    return Response(status_code=204)


@router.put("/roles/{role_id}/permissions", response_model=SyncResult)
def sync_role_permissions(
    role_id: uuid.UUID,
    sync_data: PermissionSync,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(ROLE_MANAGE))
):
    """Replace the role's permission set; unknown keys are rejected."""
    role = rbac_service.get_role(db, current_user.tenant_id, role_id)
    result = rbac_service.sync_role_permissions(role, sync_data.permissions)
    _audit_role(db, request, current_user, role, "role.permissions_synced", result)
    db.commit()
    return result
