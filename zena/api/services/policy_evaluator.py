"""
Policy Evaluator - cost approval policy decisions.

Pure and synchronous: no database access, no clock, no logging. The approval
gate loads the policy and the project's over-budget percentage, and this
module turns them into a decision. Nothing here is cached; thresholds can
change between two approvals and every decision must reflect the current
policy.

Checks:
1. Bypass (projects.cost.approve_unlimited short-circuits everything)
2. Amount gate: dual approval iff amount >= threshold for the object type
3. Over-budget gate: policy risk iff project percent reaches the tolerance
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from zena.api.models.cost_object import CostObjectType
from zena.api.services.permission_catalog import APPROVE_UNLIMITED, WILDCARD

CODE_THRESHOLD_EXCEEDED = "policy.threshold_exceeded"
CODE_OVER_BUDGET = "policy.over_budget"


def _to_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class PolicyThresholds:
    """Snapshot of a tenant's CostApprovalPolicy. All-None is the legacy unrestricted policy."""

    co_dual_threshold_amount: Optional[Decimal] = None
    certificate_dual_threshold_amount: Optional[Decimal] = None
    payment_dual_threshold_amount: Optional[Decimal] = None
    over_budget_threshold_percent: Optional[Decimal] = None
    over_budget_blocks_approval: bool = True

    @classmethod
    def from_model(cls, policy) -> "PolicyThresholds":
        """Build from a CostApprovalPolicy row; a missing row means no policy."""
        if policy is None:
            return cls()
        blocks = policy.over_budget_blocks_approval
        return cls(
            co_dual_threshold_amount=_to_decimal(policy.co_dual_threshold_amount),
            certificate_dual_threshold_amount=_to_decimal(policy.certificate_dual_threshold_amount),
            payment_dual_threshold_amount=_to_decimal(policy.payment_dual_threshold_amount),
            over_budget_threshold_percent=_to_decimal(policy.over_budget_threshold_percent),
            over_budget_blocks_approval=True if blocks is None else bool(blocks),
        )

    def threshold_for(self, object_type: CostObjectType) -> Optional[Decimal]:
        if object_type == CostObjectType.CHANGE_ORDER:
            return self.co_dual_threshold_amount
        if object_type == CostObjectType.CERTIFICATE:
            return self.certificate_dual_threshold_amount
        if object_type == CostObjectType.PAYMENT:
            return self.payment_dual_threshold_amount
        raise ValueError(f"Unknown cost object type: {object_type!r}")


@dataclass(frozen=True)
class PolicyDecision:
    """Result of policy evaluation. Never persisted."""

    requires_dual_approval: bool = False
    blocked: bool = False
    policy_risk: bool = False
    bypassed: bool = False
    threshold_compared: Optional[Decimal] = None
    over_budget_threshold_compared: Optional[Decimal] = None
    over_budget_percent: Optional[Decimal] = None
    codes: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def unrestricted(self) -> bool:
        return not self.requires_dual_approval and not self.blocked

    def as_dict(self) -> dict:
        def _num(value):
            return None if value is None else str(value)

        return {
            "requires_dual_approval": self.requires_dual_approval,
            "blocked": self.blocked,
            "policy_risk": self.policy_risk,
            "bypassed": self.bypassed,
            "threshold_compared": _num(self.threshold_compared),
            "over_budget_threshold_compared": _num(self.over_budget_threshold_compared),
            "over_budget_percent": _num(self.over_budget_percent),
            "codes": list(self.codes),
        }


def has_bypass(actor_permissions: Iterable[str]) -> bool:
    permissions = set(actor_permissions)
    return APPROVE_UNLIMITED in permissions or WILDCARD in permissions


def exceeds_over_budget(
    over_budget_percent: Optional[Decimal],
    threshold_percent: Optional[Decimal],
    inclusive: bool = True
) -> bool:
    """Over-budget comparison. Unknown percent or unset threshold never flags."""
    if over_budget_percent is None or threshold_percent is None:
        return False
    if inclusive:
        return over_budget_percent >= threshold_percent
    return over_budget_percent > threshold_percent


def evaluate(
    object_type: CostObjectType,
    amount,
    policy: Optional[PolicyThresholds],
    over_budget_percent,
    actor_permissions: Iterable[str],
    over_budget_inclusive: bool = True
) -> PolicyDecision:
    """
    Evaluate a cost object against the tenant's cost approval policy.

    Args:
        object_type: change_order, certificate or payment
        amount: Object amount (non-negative, validated upstream)
        policy: Tenant thresholds; None behaves as the all-null policy
        over_budget_percent: Project over-budget percentage, None if unknown
        actor_permissions: Effective permission keys of the acting user
        over_budget_inclusive: True compares percent >= threshold, False uses >

    Returns:
        PolicyDecision
    """
    policy = policy or PolicyThresholds()
    percent = _to_decimal(over_budget_percent)

    if has_bypass(actor_permissions):
        return PolicyDecision(bypassed=True, over_budget_percent=percent)

    codes = []

    threshold = policy.threshold_for(object_type)
    requires_dual = threshold is not None and _to_decimal(amount) >= threshold
    if requires_dual:
        codes.append(CODE_THRESHOLD_EXCEEDED)

    policy_risk = exceeds_over_budget(
        percent, policy.over_budget_threshold_percent, inclusive=over_budget_inclusive
    )
    if policy_risk:
        codes.append(CODE_OVER_BUDGET)

    return PolicyDecision(
        requires_dual_approval=requires_dual,
        blocked=policy_risk and policy.over_budget_blocks_approval,
        policy_risk=policy_risk,
        threshold_compared=threshold,
        over_budget_threshold_compared=policy.over_budget_threshold_percent,
        over_budget_percent=percent,
        codes=tuple(codes),
    )
