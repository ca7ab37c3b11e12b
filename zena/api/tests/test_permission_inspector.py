import uuid

import pytest

from zena.api.core.errors import ValidationFailed
from zena.api.models.role import Role, RolePermission
from zena.api.models.user import User
from zena.api.services import permission_catalog
from zena.api.services.permission_inspector import inspect_permissions
from zena.api.services.rbac_service import effective_permissions, inspect_user_permissions, role_grants_for_user


def _role(name, *keys, is_active=True):
    role = Role(id=uuid.uuid4(), name=name, slug=name.lower(), is_active=is_active)
    role.permission_rows = [RolePermission(permission=key) for key in keys]
    return role


def test_union_with_multiple_sources():
    inspection = inspect_permissions({"A": ["x", "y"], "B": ["y", "z"]})
    assert inspection.granted == frozenset({"x", "y", "z"})
    assert inspection.sources_of("y") == ("A", "B")
    assert inspection.sources_of("x") == ("A",)
    assert inspection.sources_of("z") == ("B",)


def test_missing_permissions_is_required_minus_granted():
    inspection = inspect_permissions({"A": ["x"], "B": ["y"]}, required=["x", "w", "v"])
    assert inspection.missing_permissions == ("v", "w")


def test_inspection_is_idempotent():
    grants = {"B": ["z", "y"], "A": ["y", "x"]}
    assert inspect_permissions(grants, required=["q"]).as_dict() == inspect_permissions(grants, required=["q"]).as_dict()


def test_user_inspection_over_roles():
    user = User(name="u", email="u@test")
    retired = _role("Retired", permission_catalog.APPROVE_UNLIMITED, is_active=False)
    user.roles = [
        _role("Estimator", permission_catalog.COST_VIEW, permission_catalog.COST_EDIT),
        _role("Reviewer", permission_catalog.COST_EDIT, permission_catalog.COST_APPROVE),
        retired,
    ]

    inspection = inspect_user_permissions(user, group="cost")
    assert inspection.sources_of(permission_catalog.COST_EDIT) == ("Estimator", "Reviewer")
    assert permission_catalog.APPROVE_UNLIMITED in inspection.missing_permissions
    assert permission_catalog.COST_APPROVE in effective_permissions(user)
    assert str(retired.id) not in role_grants_for_user(user)


def test_wildcard_role_expands_to_catalog():
    user = User(name="root", email="root@test")
    user.roles = [_role("Super", permission_catalog.WILDCARD)]
    assert effective_permissions(user) == permission_catalog.ALL_PERMISSIONS


def test_unknown_group_or_permission_is_rejected():
    user = User(name="u", email="u@test")
    user.roles = []
    with pytest.raises(ValidationFailed):
        inspect_user_permissions(user, group="finance")
    with pytest.raises(ValidationFailed) as exc_info:
        inspect_user_permissions(user, required=["projects.cost.teleport"])
    assert exc_info.value.detail["code"] == "VALIDATION_ERROR"
    assert exc_info.value.detail["unknown"] == ["projects.cost.teleport"]


def test_roles_sharing_a_name_stay_separate_sources():
    inspection = inspect_permissions(
        {"r1": ["x", "y"], "r2": ["y"]},
        role_names={"r1": "Cost Controller", "r2": "Cost Controller"},
    )

    assert [(role.id, role.name) for role in inspection.roles] == [
        ("r1", "Cost Controller"),
        ("r2", "Cost Controller"),
    ]
    assert inspection.sources_of("y") == ("Cost Controller", "Cost Controller")
    assert inspection.entry("y").source_ids == ("r1", "r2")
    assert inspection.entry("x").source_ids == ("r1",)


def test_user_inspection_keeps_same_named_roles_apart():
    user = User(name="u", email="u@test")
    first = _role("Approvers", permission_catalog.COST_APPROVE, permission_catalog.COST_VIEW)
    second = _role("Approvers", permission_catalog.COST_APPROVE)
    user.roles = [first, second]

    inspection = inspect_user_permissions(user, group="cost")

    assert len(inspection.roles) == 2
    assert sorted(inspection.entry(permission_catalog.COST_APPROVE).source_ids) == sorted(
        [str(first.id), str(second.id)]
    )
    assert inspection.entry(permission_catalog.COST_VIEW).source_ids == (str(first.id),)
