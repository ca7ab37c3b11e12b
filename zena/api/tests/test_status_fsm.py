import pytest

from zena.api.core.errors import InvalidStatusTransition
from zena.api.models.cost_object import ChangeOrder, CostObjectStatus
from zena.api.services.status_fsm import transition_status, validate_transition


def test_valid_lifecycle():
    validate_transition(CostObjectStatus.DRAFT, CostObjectStatus.PENDING_APPROVAL)
    validate_transition(CostObjectStatus.PENDING_APPROVAL, CostObjectStatus.APPROVED)
    validate_transition(CostObjectStatus.PENDING_APPROVAL, CostObjectStatus.BLOCKED_BY_POLICY)
    validate_transition(CostObjectStatus.BLOCKED_BY_POLICY, CostObjectStatus.PENDING_APPROVAL)
    validate_transition(CostObjectStatus.BLOCKED_BY_POLICY, CostObjectStatus.REJECTED)


@pytest.mark.parametrize("current,new", [
    (CostObjectStatus.DRAFT, CostObjectStatus.APPROVED),
    (CostObjectStatus.APPROVED, CostObjectStatus.PENDING_APPROVAL),
    (CostObjectStatus.REJECTED, CostObjectStatus.APPROVED),
    (CostObjectStatus.BLOCKED_BY_POLICY, CostObjectStatus.APPROVED),
])
def test_invalid_transitions(current, new):
    with pytest.raises(InvalidStatusTransition) as exc_info:
        validate_transition(current, new, "obj-1")
    assert exc_info.value.status_code == 422
    assert exc_info.value.detail["code"] == "INVALID_STATUS_TRANSITION"


def test_transition_status_returns_previous_status():
    obj = ChangeOrder(status=CostObjectStatus.DRAFT)
    old = transition_status(obj, CostObjectStatus.PENDING_APPROVAL)
    assert old == CostObjectStatus.DRAFT
    assert obj.status == CostObjectStatus.PENDING_APPROVAL
