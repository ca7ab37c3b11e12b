"""
Cost approval policy persistence and project budget figures.

The policy is a tenant-scoped singleton: created on first save, replaced in
full (PUT) or in part (PATCH), never deleted. A tenant without a row is
evaluated as the all-null policy.
"""
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from zena.api.core.errors import PersistenceError, new_correlation_id
from zena.api.core.logging import get_logger
from zena.api.models.cost_object import ChangeOrder, CostObjectStatus
from zena.api.models.cost_policy import CostApprovalPolicy
from zena.api.models.project import Contract, Project
from zena.api.services.audit_service import audit_log
from zena.api.services.policy_evaluator import PolicyThresholds

logger = get_logger("policy")

POLICY_FIELDS = (
    "co_dual_threshold_amount",
    "certificate_dual_threshold_amount",
    "payment_dual_threshold_amount",
    "over_budget_threshold_percent",
    "over_budget_blocks_approval",
)

_CENT = Decimal("0.01")


def get_policy(db: Session, tenant_id: uuid.UUID) -> Optional[CostApprovalPolicy]:
    return db.query(CostApprovalPolicy).filter(CostApprovalPolicy.tenant_id == tenant_id).first()


def get_thresholds(db: Session, tenant_id: uuid.UUID) -> PolicyThresholds:
    """Current thresholds for a tenant; no row means no restriction."""
    return PolicyThresholds.from_model(get_policy(db, tenant_id))


def policy_to_dict(tenant_id: uuid.UUID, policy: Optional[CostApprovalPolicy]) -> Dict[str, Any]:
    thresholds = PolicyThresholds.from_model(policy)
    return {
        "tenant_id": tenant_id,
        "co_dual_threshold_amount": thresholds.co_dual_threshold_amount,
        "certificate_dual_threshold_amount": thresholds.certificate_dual_threshold_amount,
        "payment_dual_threshold_amount": thresholds.payment_dual_threshold_amount,
        "over_budget_threshold_percent": thresholds.over_budget_threshold_percent,
        "over_budget_blocks_approval": thresholds.over_budget_blocks_approval,
        "updated_at": policy.updated_at if policy else None,
    }


def save_policy(
    db: Session,
    tenant_id: uuid.UUID,
    values: Dict[str, Any],
    actor: str,
    partial: bool = False
) -> CostApprovalPolicy:
    """
    Create or update the tenant's policy.

    Args:
        db: Database session
        tenant_id: Owning tenant
        values: Validated field values
        actor: User performing the change
        partial: True updates only the given fields, False replaces all of them
            (absent thresholds become NULL)

    Raises:
        PersistenceError(500): The write failed; carries a correlation id
    """
    try:
        policy = (
            db.query(CostApprovalPolicy)
            .filter(CostApprovalPolicy.tenant_id == tenant_id)
            .with_for_update()
            .first()
        )
        created = policy is None
        if created:
            policy = CostApprovalPolicy(tenant_id=tenant_id, over_budget_blocks_approval=True)
            db.add(policy)

        before = policy_to_dict(tenant_id, None if created else policy)

        for name in POLICY_FIELDS:
            if name in values:
                setattr(policy, name, values[name])
            elif not partial:
                setattr(policy, name, True if name == "over_budget_blocks_approval" else None)
        policy.updated_by = actor

        db.flush()
        after = policy_to_dict(tenant_id, policy)
        audit_log(
            db=db,
            tenant_id=tenant_id,
            event_type="cost_policy.updated",
            actor=actor,
            entity_type="CostApprovalPolicy",
            entity_id=policy.id,
            details={
                "created": created,
                "before": _jsonable(before),
                "after": _jsonable(after),
            },
            commit=False
        )
        db.commit()
        db.refresh(policy)
    except SQLAlchemyError:
        db.rollback()
        correlation_id = new_correlation_id()
        logger.exception(
            "Failed to save cost approval policy for tenant %s (correlation_id=%s)",
            tenant_id, correlation_id
        )
        raise PersistenceError("Failed to save cost approval policy", correlation_id)

    logger.info("Cost approval policy saved for tenant %s by %s", tenant_id, actor)
    return policy


def _jsonable(data: Dict[str, Any]) -> Dict[str, Any]:
    result = {}
    for key, value in data.items():
        if isinstance(value, (Decimal, uuid.UUID)):
            value = str(value)
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        result[key] = value
    return result


def _decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def project_over_budget_percent(db: Session, tenant_id: uuid.UUID, project: Project) -> Optional[Decimal]:
    """
    Percentage by which committed contract value exceeds the project budget.

    Committed value = contract base amounts + signed amount_delta of approved
    change orders, so deductive orders lower it.

    Returns:
        None when the project has no positive budget, 0 when within budget,
        otherwise the overrun percentage rounded to 2 places
    """
    budget_total = _decimal(project.budget_total)
    if budget_total <= 0:
        return None

    base_total = _decimal(
        db.query(func.coalesce(func.sum(Contract.base_amount), 0))
        .filter(Contract.tenant_id == tenant_id, Contract.project_id == project.id)
        .scalar()
    )
    co_total = _decimal(
        db.query(func.coalesce(func.sum(ChangeOrder.amount_delta), 0))
        .filter(
            ChangeOrder.tenant_id == tenant_id,
            ChangeOrder.project_id == project.id,
            ChangeOrder.status == CostObjectStatus.APPROVED,
        )
        .scalar()
    )

    committed = base_total + co_total
    if committed <= budget_total:
        return Decimal("0.00")

    percent = (committed - budget_total) / budget_total * 100
    return percent.quantize(_CENT, rounding=ROUND_HALF_UP)
