from decimal import Decimal

import pytest

from zena.api.models.cost_object import CostObjectType
from zena.api.services.permission_catalog import APPROVE_UNLIMITED, COST_APPROVE, WILDCARD
from zena.api.services.policy_evaluator import (
    CODE_OVER_BUDGET,
    CODE_THRESHOLD_EXCEEDED,
    PolicyThresholds,
    evaluate,
    exceeds_over_budget,
)

APPROVER = {COST_APPROVE}


def test_null_policy_never_restricts():
    for object_type in CostObjectType:
        for amount in (0, 1, 99999999, 10 ** 12):
            decision = evaluate(object_type, amount, PolicyThresholds(), Decimal("250.00"), APPROVER)
            assert decision.unrestricted
            assert not decision.policy_risk
            assert decision.codes == ()


def test_missing_policy_behaves_as_null_policy():
    decision = evaluate(CostObjectType.PAYMENT, 5000, None, None, APPROVER)
    assert decision.unrestricted


def test_scenario_a_amount_equal_to_threshold_requires_dual_approval():
    policy = PolicyThresholds(co_dual_threshold_amount=Decimal("100000000"))
    decision = evaluate(CostObjectType.CHANGE_ORDER, 100000000, policy, None, APPROVER)
    assert decision.requires_dual_approval
    assert not decision.blocked
    assert decision.threshold_compared == Decimal("100000000")
    assert decision.codes == (CODE_THRESHOLD_EXCEEDED,)


def test_scenario_b_amount_below_threshold_is_single_approval():
    policy = PolicyThresholds(co_dual_threshold_amount=Decimal("100000000"))
    decision = evaluate(CostObjectType.CHANGE_ORDER, 99999999, policy, None, APPROVER)
    assert not decision.requires_dual_approval
    assert decision.unrestricted


@pytest.mark.parametrize("percent", ["10.01", "10.00"])
def test_scenario_c_over_budget_at_or_above_tolerance_is_policy_risk(percent):
    policy = PolicyThresholds(over_budget_threshold_percent=Decimal("10.00"))
    decision = evaluate(CostObjectType.CHANGE_ORDER, 1, policy, Decimal(percent), APPROVER)
    assert decision.policy_risk
    assert decision.blocked
    assert CODE_OVER_BUDGET in decision.codes


def test_scenario_c_exclusive_boundary():
    policy = PolicyThresholds(over_budget_threshold_percent=Decimal("10.00"))
    at_boundary = evaluate(
        CostObjectType.CHANGE_ORDER, 1, policy, Decimal("10.00"), APPROVER, over_budget_inclusive=False
    )
    above = evaluate(
        CostObjectType.CHANGE_ORDER, 1, policy, Decimal("10.01"), APPROVER, over_budget_inclusive=False
    )
    assert not at_boundary.policy_risk
    assert above.policy_risk


def test_scenario_d_bypass_wins_over_zero_thresholds():
    policy = PolicyThresholds(
        co_dual_threshold_amount=Decimal("0"),
        certificate_dual_threshold_amount=Decimal("0"),
        payment_dual_threshold_amount=Decimal("0"),
        over_budget_threshold_percent=Decimal("0"),
    )
    for object_type in CostObjectType:
        decision = evaluate(object_type, 1, policy, Decimal("500"), {APPROVE_UNLIMITED})
        assert decision.unrestricted
        assert decision.bypassed
        assert not decision.policy_risk


def test_wildcard_holder_bypasses():
    policy = PolicyThresholds(co_dual_threshold_amount=Decimal("0"))
    decision = evaluate(CostObjectType.CHANGE_ORDER, 10, policy, None, {WILDCARD})
    assert decision.bypassed


def test_threshold_is_per_object_type():
    policy = PolicyThresholds(
        co_dual_threshold_amount=Decimal("1000"),
        certificate_dual_threshold_amount=None,
        payment_dual_threshold_amount=Decimal("50"),
    )
    assert evaluate(CostObjectType.CHANGE_ORDER, 1000, policy, None, APPROVER).requires_dual_approval
    assert not evaluate(CostObjectType.CERTIFICATE, 10 ** 9, policy, None, APPROVER).requires_dual_approval
    assert evaluate(CostObjectType.PAYMENT, 50, policy, None, APPROVER).requires_dual_approval
    assert not evaluate(CostObjectType.PAYMENT, "49.99", policy, None, APPROVER).requires_dual_approval


def test_non_blocking_policy_reports_risk_without_blocking():
    policy = PolicyThresholds(
        over_budget_threshold_percent=Decimal("5"),
        over_budget_blocks_approval=False,
    )
    decision = evaluate(CostObjectType.CERTIFICATE, 100, policy, Decimal("7.5"), APPROVER)
    assert decision.policy_risk
    assert not decision.blocked
    assert decision.unrestricted


def test_unknown_over_budget_percent_never_flags():
    assert not exceeds_over_budget(None, Decimal("10"))
    assert not exceeds_over_budget(Decimal("99"), None)


def test_evaluation_is_idempotent():
    policy = PolicyThresholds(
        co_dual_threshold_amount=Decimal("100"),
        over_budget_threshold_percent=Decimal("3"),
    )
    args = (CostObjectType.CHANGE_ORDER, Decimal("150"), policy, Decimal("4.20"), APPROVER)
    first = evaluate(*args)
    second = evaluate(*args)
    assert first == second
    assert first.as_dict() == second.as_dict()
    assert first.as_dict()["codes"] == [CODE_THRESHOLD_EXCEEDED, CODE_OVER_BUDGET]


def test_thresholds_from_model_defaults_blocking():
    class Row:
        co_dual_threshold_amount = 100
        certificate_dual_threshold_amount = None
        payment_dual_threshold_amount = "25.50"
        over_budget_threshold_percent = None
        over_budget_blocks_approval = None

    thresholds = PolicyThresholds.from_model(Row())
    assert thresholds.co_dual_threshold_amount == Decimal("100")
    assert thresholds.payment_dual_threshold_amount == Decimal("25.50")
    assert thresholds.over_budget_blocks_approval is True
    assert PolicyThresholds.from_model(None) == PolicyThresholds()
