from decimal import Decimal

from zena.api.models import Contract, CostObjectStatus, CostObjectType, Project
from zena.api.services.cost_policy_service import project_over_budget_percent
from zena.api.tests.conftest import auth, make_cost_object, set_policy


def _add_contract(db, project, amount, code):
    contract = Contract(
        tenant_id=project.tenant_id,
        project_id=project.id,
        code=code,
        name=code,
        base_amount=Decimal(amount),
        created_by=project.created_by,
    )
    db.add(contract)
    db.commit()
    return contract


def test_within_budget_is_zero(db, tenant, project, contract):
    assert project_over_budget_percent(db, tenant.id, project) == Decimal("0.00")


def test_no_budget_is_unknown(db, tenant, admin):
    project = Project(tenant_id=tenant.id, name="Unbudgeted", budget_total=0, created_by=str(admin.id))
    db.add(project)
    db.commit()
    _add_contract(db, project, "1000", "C-1")

    assert project_over_budget_percent(db, tenant.id, project) is None


def test_only_approved_change_orders_count(db, tenant, project, contract):
    make_cost_object(db, contract, 150000, status=CostObjectStatus.APPROVED, code="CO-1")
    make_cost_object(db, contract, 900000, status=CostObjectStatus.PENDING_APPROVAL, code="CO-2")
    make_cost_object(db, contract, 900000, object_type=CostObjectType.PAYMENT,
                     status=CostObjectStatus.APPROVED, code="PAY-1")
    _add_contract(db, project, "100000", "C-2")

    # 800000 + 100000 + 150000 against 1000000
    assert project_over_budget_percent(db, tenant.id, project) == Decimal("5.00")


def test_percent_is_rounded_half_up(db, tenant, project, contract):
    _add_contract(db, project, "200123.45", "C-2")

    # 1000123.45 over 1000000 -> 0.0123450 %
    assert project_over_budget_percent(db, tenant.id, project) == Decimal("0.01")


def test_over_budget_endpoint_reports_risk(client, db, tenant, project, contract, approver):
    _add_contract(db, project, "300000", "C-2")
    set_policy(db, tenant, over_budget_threshold_percent=Decimal("10.00"), over_budget_blocks_approval=False)

    response = client.get(f"/api/v1/projects/{project.id}/over-budget", headers=auth(approver))

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["over_budget_percent"]) == Decimal("10.00")
    assert body["policy_risk"] is True
    assert body["blocks_approval"] is False


def test_deductive_change_order_lowers_the_percent(db, tenant, project, contract):
    _add_contract(db, project, "400000", "C-2")
    assert project_over_budget_percent(db, tenant.id, project) == Decimal("20.00")

    make_cost_object(db, contract, 150000, amount_delta=-150000, status=CostObjectStatus.APPROVED, code="CO-1")

    # 800000 + 400000 - 150000 against 1000000
    assert project_over_budget_percent(db, tenant.id, project) == Decimal("5.00")
