"""
Cost approval policy endpoints (tenant-scoped singleton).
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from zena.api.core.security import CurrentUser, require_permission
from zena.api.db.session import get_db
from zena.api.schemas.cost_policy import (
    CostApprovalPolicyPatch,
    CostApprovalPolicyResponse,
    CostApprovalPolicyUpdate,
)
from zena.api.services import cost_policy_service
from zena.api.services.permission_catalog import COST_POLICY_MANAGE

router = APIRouter(prefix="/api/v1/admin/cost-approval-policy", tags=["cost-approval-policy"])


@router.get("", response_model=CostApprovalPolicyResponse)
def get_cost_approval_policy(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(COST_POLICY_MANAGE))
):
    """Current policy; a tenant without one gets the all-null (unrestricted) policy."""
    policy = cost_policy_service.get_policy(db, current_user.tenant_id)
    return cost_policy_service.policy_to_dict(current_user.tenant_id, policy)


@router.put("", response_model=CostApprovalPolicyResponse)
def replace_cost_approval_policy(
    data: CostApprovalPolicyUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(COST_POLICY_MANAGE))
):
    """Replace the whole policy. Omitted thresholds are cleared."""
    policy = cost_policy_service.save_policy(
        db, current_user.tenant_id, data.model_dump(), actor=current_user.actor
    )
    return cost_policy_service.policy_to_dict(current_user.tenant_id, policy)


@router.patch("", response_model=CostApprovalPolicyResponse)
def patch_cost_approval_policy(
    data: CostApprovalPolicyPatch,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(COST_POLICY_MANAGE))
):
    """Update only the fields present in the body."""
    values = data.model_dump(exclude_unset=True)
    if values.get("over_budget_blocks_approval", False) is None:
        del values["over_budget_blocks_approval"]
    policy = cost_policy_service.save_policy(
        db, current_user.tenant_id, values, actor=current_user.actor, partial=True
    )
    return cost_policy_service.policy_to_dict(current_user.tenant_id, policy)
