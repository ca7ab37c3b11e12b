"""
Audit logging service.

Every significant action must be logged for compliance.
"""
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from zena.api.models.audit_log import AuditLog
import uuid


def audit_log(
    db: Session,
    tenant_id: Optional[uuid.UUID],
    event_type: str,
    actor: str,
    details: Dict[str, Any],
    project_id: Optional[uuid.UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[uuid.UUID] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    commit: bool = True
) -> AuditLog:
    """
    Create an audit log entry.

    Args:
        db: Database session
        tenant_id: Owning tenant (nullable for system events)
        event_type: Event type (co.approved, cost_policy.updated, etc.)
        actor: Actor performing the action (user id or system)
        details: Event-specific details (JSON)
        project_id: Optional project the event belongs to
        entity_type: Optional entity type (ChangeOrder, Role, ...)
        entity_id: Optional entity id
        ip_address: Optional IP address
        user_agent: Optional user agent string
        commit: Commit immediately; False lets the caller fold the entry into its own transaction

    Returns:
        Created AuditLog instance

    Event Types:
        - <kind>.created / <kind>.updated / <kind>.deleted / <kind>.submitted
        - <kind>.first_approved / <kind>.approved / <kind>.rejected
        - <kind>.approval_blocked (dual approval gap)
        - <kind>.policy_blocked (over-budget gate)
        - <kind>.held / <kind>.resubmitted
        - cost_policy.updated
        - role.created / role.updated / role.deleted / role.permissions_synced
        - role_profile.created / role_profile.updated / role_profile.deleted
        - user.roles_synced / user.profile_assigned
        - project.created / project.updated / contract.created
    """
    log_entry = AuditLog(
        tenant_id=tenant_id,
        project_id=project_id,
        entity_type=entity_type,
        entity_id=entity_id,
        event_type=event_type,
        actor=actor,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent
    )

    db.add(log_entry)
    if commit:
        db.commit()
        db.refresh(log_entry)

    return log_entry
