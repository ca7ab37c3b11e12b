"""
Cost governance overview endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from zena.api.core.security import CurrentUser, require_permission
from zena.api.db.session import get_db
from zena.api.schemas.governance import GovernanceOverviewResponse
from zena.api.services.governance_service import governance_overview
from zena.api.services.permission_catalog import COST_GOVERNANCE_VIEW

router = APIRouter(prefix="/api/v1/admin", tags=["cost-governance"])


@router.get("/cost-governance-overview", response_model=GovernanceOverviewResponse)
def get_cost_governance_overview(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(COST_GOVERNANCE_VIEW))
):
    """
    Tenant-wide approval risk.

    Summary per cost object kind, top 10 projects by risk and the 20 most
    recent policy rejections.
    """
    return governance_overview(db, current_user.tenant_id)
