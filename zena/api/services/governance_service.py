"""
Cost governance overview - tenant-wide view of what the approval gate is holding up.

Counts per kind of cost object, the projects carrying the most approval risk
and the latest policy rejections recorded in the audit log.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from zena.api.core.config import settings
from zena.api.models.audit_log import AuditLog
from zena.api.models.cost_object import COST_OBJECT_MODELS, CostObjectStatus, CostObjectType
from zena.api.models.project import Project
from zena.api.services.cost_object_service import AUDIT_PREFIX
from zena.api.services.cost_policy_service import project_over_budget_percent

SUMMARY_KEYS = {
    CostObjectType.CHANGE_ORDER: "change_orders",
    CostObjectType.CERTIFICATE: "certificates",
    CostObjectType.PAYMENT: "payments",
}

PROJECT_PENDING_KEYS = {
    CostObjectType.CHANGE_ORDER: "pending_co",
    CostObjectType.CERTIFICATE: "pending_certificates",
    CostObjectType.PAYMENT: "pending_payments",
}

# Over-budget rejections at the gate
POLICY_BLOCK_EVENT_TYPES = tuple(f"{prefix}.policy_blocked" for prefix in AUDIT_PREFIX.values())
# Second sign-off attempted by the first approver
DUAL_REJECTION_EVENT_TYPES = tuple(f"{prefix}.approval_blocked" for prefix in AUDIT_PREFIX.values())
POLICY_EVENT_TYPES = POLICY_BLOCK_EVENT_TYPES + DUAL_REJECTION_EVENT_TYPES

TOP_PROJECTS_LIMIT = 10
RECENT_EVENTS_LIMIT = 20

_ENTITY_KIND = {model.__name__: AUDIT_PREFIX[kind] for kind, model in COST_OBJECT_MODELS.items()}


def _window_start(days: Optional[int] = None) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days or settings.GOVERNANCE_WINDOW_DAYS)


def _awaiting_dual(model):
    return (
        model.status == CostObjectStatus.PENDING_APPROVAL,
        model.requires_dual_approval.is_(True),
        model.first_approved_by.isnot(None),
        model.second_approved_by.is_(None),
    )


def _audited_ids(
    db: Session,
    tenant_id: uuid.UUID,
    model,
    event_types,
    since: datetime,
    project_id: Optional[uuid.UUID] = None
) -> Set[uuid.UUID]:
    """Distinct objects of one kind with any of the given audit events inside the window."""
    query = db.query(AuditLog.entity_id).filter(
        AuditLog.tenant_id == tenant_id,
        AuditLog.entity_type == model.__name__,
        AuditLog.event_type.in_(event_types),
        AuditLog.timestamp >= since,
        AuditLog.entity_id.isnot(None)
    )
    if project_id is not None:
        query = query.filter(AuditLog.project_id == project_id)
    return {row[0] for row in query.distinct().all()}


def _blocked_ids(
    db: Session,
    tenant_id: uuid.UUID,
    object_type: CostObjectType,
    since: datetime,
    project_id: Optional[uuid.UUID] = None
) -> Set[uuid.UUID]:
    """
    Distinct objects held by policy: currently blocked_by_policy, or rejected
    at the gate for over-budget inside the window. Same-approver rejections
    on dual approval are not policy blocks.
    """
    model = COST_OBJECT_MODELS[object_type]

    status_query = db.query(model.id).filter(
        model.tenant_id == tenant_id,
        model.status == CostObjectStatus.BLOCKED_BY_POLICY
    )
    if project_id is not None:
        status_query = status_query.filter(model.project_id == project_id)

    ids = {row[0] for row in status_query.all()}
    ids.update(_audited_ids(db, tenant_id, model, POLICY_BLOCK_EVENT_TYPES, since, project_id))
    return ids


def build_summary(db: Session, tenant_id: uuid.UUID, since: datetime) -> Dict[str, Dict[str, int]]:
    summary = {}
    for object_type, model in COST_OBJECT_MODELS.items():
        base = db.query(func.count(model.id)).filter(model.tenant_id == tenant_id)
        summary[SUMMARY_KEYS[object_type]] = {
            "total": base.scalar() or 0,
            "pending_approval": base.filter(
                model.status == CostObjectStatus.PENDING_APPROVAL
            ).scalar() or 0,
            "awaiting_dual_approval": base.filter(*_awaiting_dual(model)).scalar() or 0,
            "blocked_by_policy": len(_blocked_ids(db, tenant_id, object_type, since)),
            "dual_approval_rejections": len(
                _audited_ids(db, tenant_id, model, DUAL_REJECTION_EVENT_TYPES, since)
            ),
        }
    return summary


def _project_risk(db: Session, tenant_id: uuid.UUID, project: Project, since: datetime) -> Dict[str, Any]:
    risk: Dict[str, Any] = {
        "project_id": project.id,
        "project_name": project.name,
        "awaiting_dual_approval": 0,
        "policy_blocked_items": 0,
    }
    for object_type, model in COST_OBJECT_MODELS.items():
        base = db.query(func.count(model.id)).filter(
            model.tenant_id == tenant_id,
            model.project_id == project.id
        )
        risk[PROJECT_PENDING_KEYS[object_type]] = base.filter(
            model.status == CostObjectStatus.PENDING_APPROVAL
        ).scalar() or 0
        risk["awaiting_dual_approval"] += base.filter(*_awaiting_dual(model)).scalar() or 0
        risk["policy_blocked_items"] += len(
            _blocked_ids(db, tenant_id, object_type, since, project_id=project.id)
        )

    risk["over_budget_percent"] = project_over_budget_percent(db, tenant_id, project)
    return risk


def _pending_total(risk: Dict[str, Any]) -> int:
    return sum(risk[key] for key in PROJECT_PENDING_KEYS.values())


def _has_risk(risk: Dict[str, Any]) -> bool:
    over_budget = risk["over_budget_percent"]
    return bool(
        _pending_total(risk)
        or risk["awaiting_dual_approval"]
        or risk["policy_blocked_items"]
        or (over_budget is not None and over_budget > 0)
    )


def build_top_projects(db: Session, tenant_id: uuid.UUID, since: datetime) -> List[Dict[str, Any]]:
    """Projects with any risk indicator, riskiest first: blocked, then awaiting dual approval, then pending."""
    projects = db.query(Project).filter(Project.tenant_id == tenant_id).order_by(Project.name).all()
    risks = [_project_risk(db, tenant_id, project, since) for project in projects]
    risks = [risk for risk in risks if _has_risk(risk)]
    risks.sort(
        key=lambda r: (r["policy_blocked_items"], r["awaiting_dual_approval"], _pending_total(r)),
        reverse=True
    )
    return risks[:TOP_PROJECTS_LIMIT]


def build_recent_events(db: Session, tenant_id: uuid.UUID, since: datetime) -> List[Dict[str, Any]]:
    logs = (
        db.query(AuditLog)
        .filter(
            AuditLog.tenant_id == tenant_id,
            AuditLog.event_type.in_(POLICY_EVENT_TYPES),
            AuditLog.timestamp >= since
        )
        .order_by(AuditLog.timestamp.desc())
        .limit(RECENT_EVENTS_LIMIT)
        .all()
    )

    project_ids = {log.project_id for log in logs if log.project_id}
    names = {}
    if project_ids:
        names = dict(db.query(Project.id, Project.name).filter(Project.id.in_(project_ids)).all())

    events = []
    for log in logs:
        kind = _ENTITY_KIND.get(log.entity_type)
        if kind is None:
            continue
        details = log.details or {}
        events.append({
            "type": kind,
            "event_type": log.event_type,
            "entity_id": log.entity_id,
            "project_id": log.project_id,
            "project_name": names.get(log.project_id),
            "code": details.get("code", "policy.blocked"),
            "amount": details.get("amount"),
            "threshold": details.get("threshold", details.get("threshold_percent")),
            "actor": log.actor,
            "created_at": log.timestamp,
        })
    return events


def governance_overview(db: Session, tenant_id: uuid.UUID, window_days: Optional[int] = None) -> Dict[str, Any]:
    """
    Aggregate cost governance figures for a tenant.

    Args:
        db: Database session
        tenant_id: Tenant to report on
        window_days: Look-back window for policy audit events (default GOVERNANCE_WINDOW_DAYS)

    Returns:
        Dict with summary, top_projects_by_risk and recent_policy_events
    """
    since = _window_start(window_days)
    return {
        "window_days": window_days or settings.GOVERNANCE_WINDOW_DAYS,
        "summary": build_summary(db, tenant_id, since),
        "top_projects_by_risk": build_top_projects(db, tenant_id, since),
        "recent_policy_events": build_recent_events(db, tenant_id, since),
    }
