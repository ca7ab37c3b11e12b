"""
Cost object service - CRUD and non-approval transitions for change orders,
payment certificates and contract payments.

Approval itself goes through services/approval_gate.py.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type

from sqlalchemy.orm import Session

from zena.api.core.errors import InvalidStatusTransition, NotFound, ValidationFailed
from zena.api.core.logging import get_logger
from zena.api.core.security import CurrentUser, ensure_same_tenant
from zena.api.models.cost_object import COST_OBJECT_MODELS, CostObjectStatus, CostObjectType
from zena.api.models.project import Contract, Project
from zena.api.services.audit_service import audit_log
from zena.api.services.status_fsm import transition_status

logger = get_logger("cost_objects")

AUDIT_PREFIX = {
    CostObjectType.CHANGE_ORDER: "co",
    CostObjectType.CERTIFICATE: "certificate",
    CostObjectType.PAYMENT: "payment",
}

EDITABLE_FIELDS = ("code", "title", "description")


def model_for(object_type: CostObjectType) -> Type:
    return COST_OBJECT_MODELS[CostObjectType(object_type)]


def event_name(obj, action: str) -> str:
    return f"{AUDIT_PREFIX[obj.object_type]}.{action}"


def resolve_amounts(
    object_type: CostObjectType,
    amount: Optional[Decimal],
    amount_delta: Optional[Decimal]
) -> Dict[str, Decimal]:
    """
    Column values for the monetary fields.

    Change orders carry a signed amount_delta and amount is its magnitude, which
    is what the dual approval threshold is compared against. A change order
    given only amount is additive. Certificates and payments have no delta.

    Raises:
        ValidationFailed: Missing amount, delta on a non change order, or
            amount inconsistent with the delta
    """
    if CostObjectType(object_type) != CostObjectType.CHANGE_ORDER:
        if amount_delta is not None:
            raise ValidationFailed("amount_delta applies to change orders only")
        if amount is None:
            raise ValidationFailed("amount is required")
        return {"amount": amount}

    if amount_delta is None:
        if amount is None:
            raise ValidationFailed("amount or amount_delta is required")
        return {"amount": amount, "amount_delta": amount}
    if amount is not None and amount != abs(amount_delta):
        raise ValidationFailed("amount must equal the magnitude of amount_delta")
    return {"amount": abs(amount_delta), "amount_delta": amount_delta}


def get_project(db: Session, current_user: CurrentUser, project_id: uuid.UUID) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFound("Project not found")
    ensure_same_tenant(current_user, project.tenant_id)
    return project


def get_contract(db: Session, project: Project, contract_id: uuid.UUID) -> Contract:
    contract = db.query(Contract).filter(
        Contract.id == contract_id,
        Contract.project_id == project.id
    ).first()
    if not contract:
        raise NotFound("Contract not found")
    return contract


def get_object(
    db: Session,
    current_user: CurrentUser,
    object_type: CostObjectType,
    project_id: uuid.UUID,
    object_id: uuid.UUID,
    for_update: bool = False
):
    """
    Load a cost object, tenant check first.

    Args:
        for_update: Take a row lock (SELECT ... FOR UPDATE) for a status transition

    Raises:
        NotFound(404): No such object in this project
        TenantMismatch(403): Object belongs to another tenant
    """
    model = model_for(object_type)
    query = db.query(model).filter(model.id == object_id)
    if for_update:
        query = query.with_for_update()
    obj = query.first()

    if not obj:
        raise NotFound(f"{object_type.value.replace('_', ' ').capitalize()} not found")
    ensure_same_tenant(current_user, obj.tenant_id)
    if obj.project_id != project_id:
        raise NotFound(f"{object_type.value.replace('_', ' ').capitalize()} not found")
    return obj


def list_objects(
    db: Session,
    current_user: CurrentUser,
    object_type: CostObjectType,
    project: Project,
    status: Optional[CostObjectStatus] = None
) -> List:
    model = model_for(object_type)
    query = db.query(model).filter(
        model.tenant_id == current_user.tenant_id,
        model.project_id == project.id
    )
    if status is not None:
        query = query.filter(model.status == status)
    return query.order_by(model.created_at.desc()).all()


def create_object(
    db: Session,
    current_user: CurrentUser,
    object_type: CostObjectType,
    project: Project,
    data: Dict[str, Any],
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None
):
    contract = get_contract(db, project, data["contract_id"])
    amounts = resolve_amounts(object_type, data.get("amount"), data.get("amount_delta"))
    model = model_for(object_type)
    obj = model(
        tenant_id=current_user.tenant_id,
        project_id=project.id,
        contract_id=contract.id,
        code=data["code"],
        title=data["title"],
        description=data.get("description"),
        status=CostObjectStatus.DRAFT,
        created_by=current_user.actor,
        **amounts
    )
    db.add(obj)
    db.flush()

    audit_log(
        db=db,
        tenant_id=current_user.tenant_id,
        project_id=project.id,
        entity_type=model.__name__,
        entity_id=obj.id,
        event_type=event_name(obj, "created"),
        actor=current_user.actor,
        details={"code": obj.code, "amount": str(obj.amount)},
        ip_address=ip_address,
        user_agent=user_agent,
        commit=False
    )
    db.commit()
    db.refresh(obj)
    return obj


def _require_draft(obj, action: str) -> None:
    status = CostObjectStatus(obj.status)
    if status != CostObjectStatus.DRAFT:
        raise InvalidStatusTransition(f"Only draft objects can be {action} (current: {status.value})")


def update_object(db: Session, current_user: CurrentUser, obj, data: Dict[str, Any]):
    _require_draft(obj, "edited")
    changed = {}
    for name in EDITABLE_FIELDS:
        if name in data and data[name] is not None:
            setattr(obj, name, data[name])
            changed[name] = str(data[name])
    amount, amount_delta = data.get("amount"), data.get("amount_delta")
    if amount is not None or amount_delta is not None:
        # a new magnitude alone keeps the direction of a deductive order
        if amount_delta is None and getattr(obj, "amount_delta", None) is not None and obj.amount_delta < 0:
            amount_delta = -amount
        for name, value in resolve_amounts(obj.object_type, amount, amount_delta).items():
            setattr(obj, name, value)
            changed[name] = str(value)
    if not changed:
        raise ValidationFailed("No updatable fields provided")

    audit_log(
        db=db,
        tenant_id=obj.tenant_id,
        project_id=obj.project_id,
        entity_type=type(obj).__name__,
        entity_id=obj.id,
        event_type=event_name(obj, "updated"),
        actor=current_user.actor,
        details={"changed": changed},
        commit=False
    )
    db.commit()
    db.refresh(obj)
    return obj


def delete_object(db: Session, current_user: CurrentUser, obj) -> None:
    _require_draft(obj, "deleted")
    audit_log(
        db=db,
        tenant_id=obj.tenant_id,
        project_id=obj.project_id,
        entity_type=type(obj).__name__,
        entity_id=obj.id,
        event_type=event_name(obj, "deleted"),
        actor=current_user.actor,
        details={"code": obj.code},
        commit=False
    )
    db.delete(obj)
    db.commit()


def _transition(
    db: Session,
    current_user: CurrentUser,
    obj,
    new_status: CostObjectStatus,
    action: str,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None
):
    old_status = transition_status(obj, new_status)
    audit_log(
        db=db,
        tenant_id=obj.tenant_id,
        project_id=obj.project_id,
        entity_type=type(obj).__name__,
        entity_id=obj.id,
        event_type=event_name(obj, action),
        actor=current_user.actor,
        details={"old_status": old_status.value, "new_status": new_status.value, **(details or {})},
        ip_address=ip_address,
        user_agent=user_agent,
        commit=False
    )
    db.commit()
    db.refresh(obj)
    logger.info("%s %s: %s -> %s by %s", type(obj).__name__, obj.id, old_status.value, new_status.value, current_user.actor)
    return obj


def submit_object(db: Session, current_user: CurrentUser, obj, **request_meta):
    """draft -> pending_approval"""
    return _transition(db, current_user, obj, CostObjectStatus.PENDING_APPROVAL, "submitted", **request_meta)


def reject_object(db: Session, current_user: CurrentUser, obj, reason: Optional[str], **request_meta):
    """pending_approval | blocked_by_policy -> rejected"""
    obj.rejected_reason = reason
    return _transition(
        db, current_user, obj, CostObjectStatus.REJECTED, "rejected",
        details={"reason": reason}, **request_meta
    )


def hold_object(db: Session, current_user: CurrentUser, obj, reason: Optional[str], **request_meta):
    """pending_approval -> blocked_by_policy (manual policy hold)"""
    return _transition(
        db, current_user, obj, CostObjectStatus.BLOCKED_BY_POLICY, "held",
        details={"reason": reason}, **request_meta
    )


def resubmit_object(db: Session, current_user: CurrentUser, obj, **request_meta):
    """blocked_by_policy -> pending_approval; earlier sign-offs are discarded."""
    obj.first_approved_by = None
    obj.first_approved_at = None
    obj.second_approved_by = None
    obj.second_approved_at = None
    obj.requires_dual_approval = False
    return _transition(db, current_user, obj, CostObjectStatus.PENDING_APPROVAL, "resubmitted", **request_meta)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
