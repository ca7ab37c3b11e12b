from zena.api.models import AuditLog, Role, RolePermission
from zena.api.services import permission_catalog
from zena.api.tests.conftest import auth, make_user, system_role


def _create_role(client, admin, name, permissions):
    response = client.post("/api/v1/admin/roles", headers=auth(admin), json={
        "name": name,
        "permissions": permissions,
    })
    assert response.status_code == 201, response.text
    return response.json()


def test_permission_catalog_is_grouped(client, admin):
    response = client.get("/api/v1/admin/permissions", headers=auth(admin))

    assert response.status_code == 200
    groups = {group["key"]: group for group in response.json()}
    assert list(groups) == ["cost", "project", "task", "document", "user", "system"]
    cost_keys = {perm["key"] for perm in groups["cost"]["permissions"]}
    assert permission_catalog.APPROVE_UNLIMITED in cost_keys


def test_role_crud_and_permission_sync(client, db, admin):
    role = _create_role(client, admin, "Site Lead", [permission_catalog.PROJECT_READ])
    assert role["slug"] == "site_lead"
    assert role["is_system"] is False

    synced = client.put(f"/api/v1/admin/roles/{role['id']}/permissions", headers=auth(admin), json={
        "permissions": [permission_catalog.COST_VIEW, permission_catalog.COST_EDIT],
    })
    assert synced.status_code == 200
    assert synced.json() == {
        "added": sorted([permission_catalog.COST_EDIT, permission_catalog.COST_VIEW]),
        "removed": [permission_catalog.PROJECT_READ],
    }

    fetched = client.get(f"/api/v1/admin/roles/{role['id']}", headers=auth(admin)).json()
    assert fetched["permissions"] == sorted([permission_catalog.COST_VIEW, permission_catalog.COST_EDIT])

    renamed = client.put(f"/api/v1/admin/roles/{role['id']}", headers=auth(admin), json={"description": "Leads a site"})
    assert renamed.json()["description"] == "Leads a site"

    assert client.delete(f"/api/v1/admin/roles/{role['id']}", headers=auth(admin)).status_code == 204
    assert client.get(f"/api/v1/admin/roles/{role['id']}", headers=auth(admin)).status_code == 404

    events = {row.event_type for row in db.query(AuditLog).filter(AuditLog.entity_type == "Role").all()}
    assert events == {"role.created", "role.permissions_synced", "role.updated", "role.deleted"}


def test_unknown_permission_is_rejected(client, admin):
    response = client.post("/api/v1/admin/roles", headers=auth(admin), json={
        "name": "Wizard",
        "permissions": ["projects.cost.teleport"],
    })

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"
    assert response.json()["detail"]["unknown"] == ["projects.cost.teleport"]


def test_system_roles_are_read_only(client, db, admin):
    viewer_role = system_role(db, "viewer")

    response = client.put(f"/api/v1/admin/roles/{viewer_role.id}/permissions", headers=auth(admin), json={
        "permissions": [],
    })

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "FORBIDDEN"
    assert client.delete(f"/api/v1/admin/roles/{viewer_role.id}", headers=auth(admin)).status_code == 403


def test_duplicate_role_slug_is_rejected(client, admin):
    _create_role(client, admin, "Estimator", [])
    response = client.post("/api/v1/admin/roles", headers=auth(admin), json={"name": "estimator"})

    assert response.status_code == 422


def test_other_tenant_roles_are_invisible(client, db, admin, outsider, other_tenant):
    foreign = Role(tenant_id=other_tenant.id, name="Foreign", slug="foreign")
    db.add(foreign)
    db.commit()

    listed = {role["slug"] for role in client.get("/api/v1/admin/roles", headers=auth(admin)).json()}
    single = client.get(f"/api/v1/admin/roles/{foreign.id}", headers=auth(admin))

    assert "foreign" not in listed
    assert "viewer" in listed
    assert single.status_code == 403
    assert single.json()["detail"]["code"] == "TENANT_MISMATCH"


def test_sync_user_roles_and_inspect(client, db, tenant, admin):
    role_a = _create_role(client, admin, "A", [permission_catalog.COST_VIEW, permission_catalog.PROJECT_READ])
    role_b = _create_role(client, admin, "B", [permission_catalog.PROJECT_READ, permission_catalog.COST_EDIT])
    worker = make_user(db, tenant, "worker")

    synced = client.put(f"/api/v1/admin/users/{worker.id}/roles", headers=auth(admin), json={
        "role_ids": [role_a["id"], role_b["id"]],
    })
    assert synced.status_code == 200
    assert sorted(synced.json()["added"]) == sorted([role_a["id"], role_b["id"]])

    inspected = client.get("/api/v1/admin/permissions/inspect", headers=auth(admin), params={
        "user_id": str(worker.id),
        "required": f"{permission_catalog.COST_APPROVE},{permission_catalog.COST_VIEW}",
    })
    assert inspected.status_code == 200
    body = inspected.json()
    entries = {entry["key"]: entry for entry in body["permissions"]}
    assert entries[permission_catalog.PROJECT_READ]["sources"] == ["A", "B"]
    assert entries[permission_catalog.COST_VIEW]["sources"] == ["A"]
    assert entries[permission_catalog.COST_EDIT]["sources"] == ["B"]
    assert body["missing_permissions"] == [permission_catalog.COST_APPROVE]

    again = client.get("/api/v1/admin/permissions/inspect", headers=auth(admin), params={
        "user_id": str(worker.id),
        "required": f"{permission_catalog.COST_APPROVE},{permission_catalog.COST_VIEW}",
    })
    assert again.json() == body


def test_inspect_with_group_filter(client, db, tenant, admin):
    worker = make_user(db, tenant, "worker", system_role(db, "site_engineer"))

    response = client.get("/api/v1/admin/permissions/inspect", headers=auth(admin), params={
        "user_id": str(worker.id),
        "filter": "cost",
    })

    body = response.json()
    keys = {entry["key"] for entry in body["permissions"]}
    assert keys == permission_catalog.permissions_in_group("cost")
    assert permission_catalog.COST_APPROVE in body["missing_permissions"]
    assert permission_catalog.COST_VIEW not in body["missing_permissions"]

    unknown = client.get("/api/v1/admin/permissions/inspect", headers=auth(admin), params={"filter": "finance"})
    assert unknown.status_code == 422


def test_role_profiles_assign_roles(client, db, tenant, admin):
    role_a = _create_role(client, admin, "A", [permission_catalog.COST_VIEW])
    controller = system_role(db, "cost_controller")
    worker = make_user(db, tenant, "worker", system_role(db, "viewer"))

    profile = client.post("/api/v1/admin/role-profiles", headers=auth(admin), json={
        "name": "Cost team",
        "role_ids": [role_a["id"], str(controller.id)],
    })
    assert profile.status_code == 201
    assert len(profile.json()["role_ids"]) == 2

    assigned = client.put(f"/api/v1/admin/users/{worker.id}/assign-profile", headers=auth(admin), json={
        "profile_id": profile.json()["id"],
    })
    assert assigned.status_code == 200
    assert assigned.json()["removed"] == [str(system_role(db, "viewer").id)]

    users = client.get("/api/v1/admin/users", headers=auth(admin)).json()
    worker_roles = next(user["roles"] for user in users if user["id"] == str(worker.id))
    assert sorted(role["slug"] for role in worker_roles) == ["a", "cost_controller"]

    deactivated = client.put(f"/api/v1/admin/role-profiles/{profile.json()['id']}", headers=auth(admin), json={
        "is_active": False,
    })
    assert deactivated.json()["is_active"] is False
    refused = client.put(f"/api/v1/admin/users/{worker.id}/assign-profile", headers=auth(admin), json={
        "profile_id": profile.json()["id"],
    })
    assert refused.status_code == 422

    assert client.delete(f"/api/v1/admin/role-profiles/{profile.json()['id']}", headers=auth(admin)).status_code == 204


def test_me_reports_effective_permissions(client, approver):
    response = client.get("/api/v1/me", headers=auth(approver))

    assert response.status_code == 200
    permissions = response.json()["permissions"]
    assert permission_catalog.COST_APPROVE in permissions
    assert permission_catalog.ROLE_MANAGE not in permissions
    assert permissions == sorted(permissions)


def test_admin_endpoints_require_permissions(client, viewer):
    assert client.get("/api/v1/admin/roles", headers=auth(viewer)).status_code == 403
    assert client.get("/api/v1/admin/users", headers=auth(viewer)).status_code == 403


def test_rename_onto_a_visible_role_name_is_rejected(client, db, admin):
    role = _create_role(client, admin, "Approvers", [permission_catalog.COST_APPROVE])

    clash = client.put(f"/api/v1/admin/roles/{role['id']}", headers=auth(admin), json={"name": "Cost Controller"})
    assert clash.status_code == 422
    assert clash.json()["detail"]["code"] == "VALIDATION_ERROR"

    renamed = client.put(f"/api/v1/admin/roles/{role['id']}", headers=auth(admin), json={"name": "Site Approvers"})
    assert renamed.status_code == 200
    assert renamed.json()["slug"] == "site_approvers"


def test_inspect_keeps_same_named_roles_as_separate_sources(client, db, tenant, admin):
    controller = system_role(db, "cost_controller")
    local = Role(tenant_id=tenant.id, name="Cost Controller", slug="local_cost_controller")
    local.permission_rows = [
        RolePermission(permission=permission_catalog.COST_APPROVE),
        RolePermission(permission=permission_catalog.COST_VIEW),
    ]
    db.add(local)
    db.commit()
    worker = make_user(db, tenant, "worker", controller, local)

    response = client.get("/api/v1/admin/permissions/inspect", headers=auth(admin), params={
        "user_id": str(worker.id),
        "filter": "cost",
    })

    assert response.status_code == 200
    body = response.json()
    assert [role["name"] for role in body["roles"]] == ["Cost Controller", "Cost Controller"]
    assert {role["id"] for role in body["roles"]} == {str(controller.id), str(local.id)}
    entries = {entry["key"]: entry for entry in body["permissions"]}
    approve = entries[permission_catalog.COST_APPROVE]
    assert approve["sources"] == ["Cost Controller", "Cost Controller"]
    assert sorted(approve["source_ids"]) == sorted([str(controller.id), str(local.id)])
