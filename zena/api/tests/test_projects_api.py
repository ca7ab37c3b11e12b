from decimal import Decimal

from zena.api.tests.conftest import auth


def test_project_and_contract_lifecycle(client, admin, approver):
    created = client.post("/api/v1/projects", headers=auth(admin), json={
        "name": "Harbour Bridge",
        "code": "HB-01",
        "budget_total": "2500000",
    })
    assert created.status_code == 201
    project = created.json()
    assert Decimal(project["budget_total"]) == Decimal("2500000")

    updated = client.put(f"/api/v1/projects/{project['id']}", headers=auth(admin), json={"status": "on_hold"})
    assert updated.json()["status"] == "on_hold"

    contract = client.post(f"/api/v1/projects/{project['id']}/contracts", headers=auth(admin), json={
        "code": "C-1",
        "name": "Steelwork",
        "base_amount": "1800000",
    })
    assert contract.status_code == 201

    contracts = client.get(f"/api/v1/projects/{project['id']}/contracts", headers=auth(approver))
    assert [item["code"] for item in contracts.json()] == ["C-1"]

    listed = client.get("/api/v1/projects", headers=auth(approver))
    assert [item["name"] for item in listed.json()] == ["Harbour Bridge"]


def test_projects_are_tenant_scoped(client, project, outsider):
    assert client.get("/api/v1/projects", headers=auth(outsider)).json() == []

    response = client.get(f"/api/v1/projects/{project.id}", headers=auth(outsider))
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "TENANT_MISMATCH"


def test_project_write_permission_required(client, approver):
    response = client.post("/api/v1/projects", headers=auth(approver), json={"name": "Nope"})

    assert response.status_code == 403
