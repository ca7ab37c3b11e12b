"""
Permission catalog - the closed set of permission keys the system knows about.

Loaded once at import. Role writes are validated against it; the permission
inspector and the admin UI read their groups from it. Default system roles
are declared here too so seeding and validation share one source.
"""
from typing import Dict, FrozenSet, Iterable, List, NamedTuple, Optional

WILDCARD = "*"

# Bypass capability: exempts the holder from every cost approval threshold
APPROVE_UNLIMITED = "projects.cost.approve_unlimited"
COST_APPROVE = "projects.cost.approve"
COST_VIEW = "projects.cost.view"
COST_EDIT = "projects.cost.edit"
COST_POLICY_MANAGE = "projects.cost.policy.manage"
PROJECT_READ = "project.read"
PROJECT_WRITE = "project.write"
ROLE_MANAGE = "admin.role.manage"
USER_MANAGE = "admin.user.manage"
COST_GOVERNANCE_VIEW = "system.cost_governance.view"


class PermissionDefinition(NamedTuple):
    key: str
    label: str
    description: str = ""


class PermissionGroup(NamedTuple):
    key: str
    label: str
    permissions: List[PermissionDefinition]


PERMISSION_GROUPS: List[PermissionGroup] = [
    PermissionGroup("cost", "Cost control", [
        PermissionDefinition(COST_VIEW, "View cost data"),
        PermissionDefinition(COST_EDIT, "Create/Edit change orders, certificates and payments"),
        PermissionDefinition(COST_APPROVE, "Approve cost objects"),
        PermissionDefinition(APPROVE_UNLIMITED, "Approve cost objects without threshold limits",
                             "Bypasses dual approval and over-budget blocking"),
        PermissionDefinition(COST_POLICY_MANAGE, "Manage the cost approval policy"),
    ]),
    PermissionGroup("project", "Projects", [
        PermissionDefinition(PROJECT_READ, "View projects"),
        PermissionDefinition(PROJECT_WRITE, "Create/Edit projects"),
        PermissionDefinition("project.assign", "Assign project members"),
        PermissionDefinition("project.delete", "Delete projects"),
    ]),
    PermissionGroup("task", "Tasks", [
        PermissionDefinition("task.read", "View tasks"),
        PermissionDefinition("task.write", "Create/Edit tasks"),
        PermissionDefinition("task.assign", "Assign tasks"),
        PermissionDefinition("task.delete", "Delete tasks"),
    ]),
    PermissionGroup("document", "Documents", [
        PermissionDefinition("document.read", "View documents"),
        PermissionDefinition("document.upload", "Upload documents"),
        PermissionDefinition("document.approve", "Approve documents"),
    ]),
    PermissionGroup("user", "Users", [
        PermissionDefinition(USER_MANAGE, "Manage users and their roles"),
    ]),
    PermissionGroup("system", "System", [
        PermissionDefinition(ROLE_MANAGE, "Manage roles and role profiles"),
        PermissionDefinition("admin.system.manage", "Manage system settings"),
        PermissionDefinition("report.view", "View reports"),
        PermissionDefinition(COST_GOVERNANCE_VIEW, "View the cost governance overview"),
    ]),
]

ALL_PERMISSIONS: FrozenSet[str] = frozenset(
    perm.key for group in PERMISSION_GROUPS for perm in group.permissions
)

_GROUP_INDEX: Dict[str, PermissionGroup] = {group.key: group for group in PERMISSION_GROUPS}


def group_keys() -> List[str]:
    return list(_GROUP_INDEX)


def permissions_in_group(group_key: Optional[str]) -> FrozenSet[str]:
    """Permission keys of one group, or the whole catalog when group_key is None."""
    if group_key is None:
        return ALL_PERMISSIONS
    group = _GROUP_INDEX.get(group_key)
    if group is None:
        raise KeyError(group_key)
    return frozenset(perm.key for perm in group.permissions)


def unknown_permissions(keys: Iterable[str]) -> List[str]:
    """Keys that are neither in the catalog nor the wildcard, sorted."""
    return sorted({key for key in keys if key != WILDCARD and key not in ALL_PERMISSIONS})


def expand(keys: Iterable[str]) -> FrozenSet[str]:
    """Resolve the wildcard into the full catalog."""
    keys = set(keys)
    if WILDCARD in keys:
        return ALL_PERMISSIONS
    return frozenset(keys)


class SystemRole(NamedTuple):
    slug: str
    name: str
    description: str
    permissions: List[str]


SYSTEM_ROLES: List[SystemRole] = [
    SystemRole("super_admin", "Super Administrator", "Full system access with all permissions", [WILDCARD]),
    SystemRole("admin", "Administrator", "Tenant administration and user management", [
        PROJECT_READ, PROJECT_WRITE, "project.assign",
        "task.read", "task.write", "task.assign",
        "document.read", "document.upload",
        COST_VIEW, COST_EDIT, COST_POLICY_MANAGE,
        USER_MANAGE, ROLE_MANAGE, "report.view", COST_GOVERNANCE_VIEW,
    ]),
    SystemRole("project_manager", "Project Manager", "Project management and oversight", [
        PROJECT_READ, PROJECT_WRITE, "project.assign",
        "task.read", "task.write", "task.assign",
        "document.read", "document.upload", "document.approve",
        COST_VIEW, COST_EDIT, COST_APPROVE, "report.view",
    ]),
    SystemRole("cost_controller", "Cost Controller", "Cost review and approval", [
        PROJECT_READ, COST_VIEW, COST_EDIT, COST_APPROVE, "report.view",
    ]),
    SystemRole("site_engineer", "Site Engineer", "Site operations and field management", [
        PROJECT_READ, "task.read", "task.write", "document.read", "document.upload", COST_VIEW,
    ]),
    SystemRole("viewer", "Viewer", "Read-only access", [
        PROJECT_READ, "task.read", "document.read", COST_VIEW,
    ]),
]
