"""
RBAC service - roles, role permissions, role profiles and user role assignment.

Assignments are bulk syncs against the pivot tables: rows not in the
requested set are deleted, missing rows are inserted. Every write is
validated against the permission catalog and scoped to the caller's tenant.
"""
import re
import uuid
from typing import Dict, FrozenSet, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from zena.api.core.errors import Forbidden, NotFound, TenantMismatch, ValidationFailed
from zena.api.core.logging import get_logger
from zena.api.models.role import Role, RolePermission, RoleProfile
from zena.api.models.user import User
from zena.api.services import permission_catalog
from zena.api.services.permission_inspector import PermissionInspection, inspect_permissions

logger = get_logger("rbac")


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")


def _active_roles(user: User) -> List[Role]:
    return [role for role in user.roles if role.is_active]


def role_grants_for_user(user: User) -> Dict[str, List[str]]:
    """Role id -> expanded permission keys, active roles only."""
    return {
        str(role.id): sorted(permission_catalog.expand(role.permissions))
        for role in _active_roles(user)
    }


def role_names_for_user(user: User) -> Dict[str, str]:
    """Role id -> display name, active roles only."""
    return {str(role.id): role.name for role in _active_roles(user)}


def effective_permissions(user: User) -> FrozenSet[str]:
    """Union of permissions over every active role of the user."""
    keys = set()
    for perms in role_grants_for_user(user).values():
        keys.update(perms)
    return frozenset(keys)


def inspect_user_permissions(
    user: User,
    group: Optional[str] = None,
    required: Optional[Iterable[str]] = None
) -> PermissionInspection:
    """
    Permission inspector for one user.

    Args:
        user: User to inspect
        group: Optional catalog group filter (cost, project, task, document, user, system)
        required: Keys to check; defaults to every key of the selected group

    Raises:
        ValidationFailed: Unknown group or unknown required permission
    """
    try:
        universe = permission_catalog.permissions_in_group(group)
    except KeyError:
        raise ValidationFailed(
            f"Unknown permission group '{group}'. Expected one of {permission_catalog.group_keys()}"
        )

    if required is None:
        required = universe
    else:
        required = list(required)
        unknown = permission_catalog.unknown_permissions(required)
        if unknown:
            raise ValidationFailed(f"Unknown permissions: {unknown}", extra={"unknown": unknown})

    return inspect_permissions(
        role_grants_for_user(user),
        required=required,
        universe=universe,
        role_names=role_names_for_user(user),
    )


# Roles

def visible_roles_query(db: Session, tenant_id: uuid.UUID):
    """System roles plus the tenant's own roles."""
    return db.query(Role).filter(or_(Role.tenant_id.is_(None), Role.tenant_id == tenant_id))


def get_role(db: Session, tenant_id: uuid.UUID, role_id: uuid.UUID) -> Role:
    role = db.query(Role).filter(Role.id == role_id).first()
    if not role:
        raise NotFound("Role not found")
    if role.tenant_id is not None and role.tenant_id != tenant_id:
        raise TenantMismatch()
    return role


def _ensure_editable(role: Role) -> None:
    if role.is_system:
        raise Forbidden("System roles cannot be modified")


def validate_permission_keys(keys: Iterable[str]) -> List[str]:
    keys = sorted(set(keys))
    unknown = permission_catalog.unknown_permissions(keys)
    if unknown:
        raise ValidationFailed(f"Unknown permissions: {unknown}", extra={"unknown": unknown})
    return keys


def _unique_slug(
    db: Session,
    tenant_id: uuid.UUID,
    name: str,
    exclude_id: Optional[uuid.UUID] = None
) -> str:
    """Slug for a role name; must not clash with any role visible to the tenant."""
    slug = slugify(name)
    if not slug:
        raise ValidationFailed("Role name must contain letters or digits")

    query = visible_roles_query(db, tenant_id).filter(Role.slug == slug)
    if exclude_id is not None:
        query = query.filter(Role.id != exclude_id)
    if query.first():
        raise ValidationFailed(f"A role with slug '{slug}' already exists")
    return slug


def create_role(
    db: Session,
    tenant_id: uuid.UUID,
    name: str,
    description: Optional[str] = None,
    scope: str = "tenant",
    permissions: Iterable[str] = ()
) -> Role:
    slug = _unique_slug(db, tenant_id, name)
    role = Role(tenant_id=tenant_id, name=name, slug=slug, description=description, scope=scope)
    role.permission_rows = [RolePermission(permission=key) for key in validate_permission_keys(permissions)]
    db.add(role)
    return role


def update_role(
    db: Session,
    role: Role,
    name: Optional[str] = None,
    description: Optional[str] = None,
    is_active: Optional[bool] = None
) -> Role:
    _ensure_editable(role)
    if name is not None and name != role.name:
        role.slug = _unique_slug(db, role.tenant_id, name, exclude_id=role.id)
        role.name = name
    if description is not None:
        role.description = description
    if is_active is not None:
        role.is_active = is_active
    return role


def delete_role(db: Session, role: Role) -> None:
    _ensure_editable(role)
    db.delete(role)


def sync_role_permissions(role: Role, keys: Iterable[str]) -> Dict[str, List[str]]:
    """
    Replace a role's permission set.

    Returns:
        {"added": [...], "removed": [...]}
    """
    _ensure_editable(role)
    wanted = set(validate_permission_keys(keys))
    current = {row.permission: row for row in role.permission_rows}

    removed = sorted(set(current) - wanted)
    added = sorted(wanted - set(current))

    for key in removed:
        role.permission_rows.remove(current[key])
    for key in added:
        role.permission_rows.append(RolePermission(permission=key))

    return {"added": added, "removed": removed}


def resolve_roles(db: Session, tenant_id: uuid.UUID, role_ids: Iterable) -> List[Role]:
    """Load roles by id, all of which must be visible to the tenant."""
    ids = []
    for raw in role_ids:
        try:
            ids.append(raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw)))
        except ValueError:
            raise ValidationFailed(f"Invalid role id: {raw}")
    ids = list(dict.fromkeys(ids))
    if not ids:
        return []

    roles = visible_roles_query(db, tenant_id).filter(Role.id.in_(ids)).all()
    found = {role.id for role in roles}
    missing = [str(role_id) for role_id in ids if role_id not in found]
    if missing:
        raise ValidationFailed(f"Unknown roles: {missing}", extra={"unknown": missing})
    return roles


# Users

def get_tenant_user(db: Session, tenant_id: uuid.UUID, user_id: uuid.UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    if user.tenant_id != tenant_id:
        raise TenantMismatch()
    return user


def sync_user_roles(db: Session, tenant_id: uuid.UUID, user: User, role_ids: Iterable) -> Dict[str, List[str]]:
    """Replace a user's roles with exactly the given set."""
    if user.tenant_id != tenant_id:
        raise TenantMismatch()

    wanted = resolve_roles(db, tenant_id, role_ids)
    wanted_ids = {role.id for role in wanted}
    current_ids = {role.id for role in user.roles}

    removed = sorted(str(role.id) for role in user.roles if role.id not in wanted_ids)
    added = sorted(str(role.id) for role in wanted if role.id not in current_ids)

    user.roles = sorted(wanted, key=lambda role: role.name)
    logger.info("Synced roles for user %s: +%s -%s", user.id, added, removed)
    return {"added": added, "removed": removed}


# Role profiles

def get_profile(db: Session, tenant_id: uuid.UUID, profile_id: uuid.UUID) -> RoleProfile:
    profile = db.query(RoleProfile).filter(RoleProfile.id == profile_id).first()
    if not profile:
        raise NotFound("Role profile not found")
    if profile.tenant_id != tenant_id:
        raise TenantMismatch()
    return profile


def normalize_profile_roles(db: Session, tenant_id: uuid.UUID, role_ids: Iterable) -> List[str]:
    return [str(role.id) for role in sorted(resolve_roles(db, tenant_id, role_ids), key=lambda r: r.name)]


def apply_profile(db: Session, tenant_id: uuid.UUID, user: User, profile: RoleProfile) -> Dict[str, List[str]]:
    """Replace the user's roles with the profile's roles."""
    if profile.tenant_id != tenant_id:
        raise TenantMismatch()
    if not profile.is_active:
        raise ValidationFailed("Role profile is inactive")
    return sync_user_roles(db, tenant_id, user, profile.role_ids or [])


def seed_system_roles(db: Session) -> List[Role]:
    """Create or refresh the catalog's system roles. Idempotent."""
    seeded = []
    for definition in permission_catalog.SYSTEM_ROLES:
        role = db.query(Role).filter(Role.tenant_id.is_(None), Role.slug == definition.slug).first()
        if role is None:
            role = Role(
                tenant_id=None,
                slug=definition.slug,
                name=definition.name,
                scope="system",
                is_system=True,
            )
            db.add(role)
        role.description = definition.description
        existing = {row.permission for row in role.permission_rows}
        wanted = set(definition.permissions)
        role.permission_rows = [row for row in role.permission_rows if row.permission in wanted]
        for key in sorted(wanted - existing):
            role.permission_rows.append(RolePermission(permission=key))
        seeded.append(role)
    db.commit()
    return seeded
