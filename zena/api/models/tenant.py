"""
Tenant model - the isolation boundary for every other record.
"""
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.sql import func
import uuid
from zena.api.db.base import Base


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
