"""
Project and contract models.

Project budget and contract base amounts feed the over-budget percentage
used by the cost approval policy.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Text, Uuid
from sqlalchemy.sql import func
import uuid
from zena.api.db.base import Base


class Project(Base):
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    code = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default="active")
    budget_total = Column(Numeric(18, 2), nullable=False, default=0)

    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class Contract(Base):
    __tablename__ = "contracts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    code = Column(String(100), nullable=False)
    name = Column(String(255), nullable=False)
    base_amount = Column(Numeric(18, 2), nullable=False, default=0)

    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
