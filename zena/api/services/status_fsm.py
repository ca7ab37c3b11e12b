"""
Status Finite State Machine for cost objects.

Enforces valid state transitions for change orders, payment certificates
and contract payments. Invalid transitions raise InvalidStatusTransition (422).
"""
from typing import Dict, List
from zena.api.core.errors import InvalidStatusTransition
from zena.api.models.cost_object import CostObjectStatus


class StatusTransitions:
    """
    Defines allowed state transitions.

    APPROVED and REJECTED are terminal.
    """

    COST_OBJECT_ALLOWED: Dict[CostObjectStatus, List[CostObjectStatus]] = {
        CostObjectStatus.DRAFT: [CostObjectStatus.PENDING_APPROVAL],
        CostObjectStatus.PENDING_APPROVAL: [
            CostObjectStatus.APPROVED,
            CostObjectStatus.REJECTED,
            CostObjectStatus.BLOCKED_BY_POLICY,
        ],
        CostObjectStatus.BLOCKED_BY_POLICY: [CostObjectStatus.PENDING_APPROVAL, CostObjectStatus.REJECTED],
    }


def validate_transition(
    current: CostObjectStatus,
    new: CostObjectStatus,
    object_id: str = ""
) -> None:
    """
    Validate cost object status transition.

    Args:
        current: Current status
        new: Desired new status
        object_id: Object ID for error message

    Raises:
        InvalidStatusTransition: If transition is invalid
    """
    current = CostObjectStatus(current)
    new = CostObjectStatus(new)
    allowed = StatusTransitions.COST_OBJECT_ALLOWED.get(current, [])

    if new not in allowed:
        raise InvalidStatusTransition(
            f"Invalid state transition for {object_id}: "
            f"{current.value} -> {new.value} not allowed. "
            f"Allowed transitions from {current.value}: {[s.value for s in allowed]}"
        )


def transition_status(obj, new_status: CostObjectStatus) -> CostObjectStatus:
    """
    Transition a cost object's status after FSM validation.

    Does not commit: the caller owns the transaction so the status change,
    approval columns and audit entry land together.

    Returns:
        The previous status
    """
    validate_transition(obj.status, new_status, str(obj.id))
    old_status = CostObjectStatus(obj.status)
    obj.status = new_status
    return old_status
