"""
Audit log model - immutable record of all system events.
"""
from sqlalchemy import Column, String, DateTime, Text, Uuid
from sqlalchemy.sql import func
import uuid
from zena.api.db.base import Base, JSONDocument


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=True, index=True)
    project_id = Column(Uuid, nullable=True, index=True)

    entity_type = Column(String(100), nullable=True, index=True)
    entity_id = Column(Uuid, nullable=True, index=True)

    event_type = Column(String(100), nullable=False, index=True)
    # EVENT_TYPES: co.submitted, co.first_approved, co.approved, co.policy_blocked,
    #             certificate.*, payment.*, cost_policy.updated, role.*, user.roles_synced, ...

    actor = Column(String(255), nullable=False)  # user_id or system

    details = Column(JSONDocument, nullable=False)  # Event-specific data

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    ip_address = Column(String(45), nullable=True)  # IPv4 or IPv6
    user_agent = Column(Text, nullable=True)
