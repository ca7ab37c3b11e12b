"""
Cost governance overview schemas (Pydantic).
"""
from pydantic import BaseModel, UUID4
from datetime import datetime
from decimal import Decimal
from typing import Optional, List


class KindSummary(BaseModel):
    total: int
    pending_approval: int
    awaiting_dual_approval: int
    blocked_by_policy: int
    dual_approval_rejections: int


class GovernanceSummary(BaseModel):
    change_orders: KindSummary
    certificates: KindSummary
    payments: KindSummary


class ProjectRisk(BaseModel):
    project_id: UUID4
    project_name: str
    pending_co: int
    pending_certificates: int
    pending_payments: int
    awaiting_dual_approval: int
    policy_blocked_items: int
    over_budget_percent: Optional[Decimal]


class PolicyEvent(BaseModel):
    type: str  # co, certificate, payment
    event_type: str
    entity_id: Optional[UUID4]
    project_id: Optional[UUID4]
    project_name: Optional[str]
    code: str
    amount: Optional[str]
    threshold: Optional[str]
    actor: str
    created_at: datetime


class GovernanceOverviewResponse(BaseModel):
    window_days: int
    summary: GovernanceSummary
    top_projects_by_risk: List[ProjectRisk]
    recent_policy_events: List[PolicyEvent]
