"""
Cost approval policy - tenant-scoped singleton with dual-approval thresholds.

A NULL threshold disables that check entirely.
"""
from sqlalchemy import Column, DateTime, Boolean, ForeignKey, Numeric, String, Uuid
from sqlalchemy.sql import func
import uuid
from zena.api.db.base import Base


class CostApprovalPolicy(Base):
    __tablename__ = "cost_approval_policies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True)

    co_dual_threshold_amount = Column(Numeric(18, 2), nullable=True)
    certificate_dual_threshold_amount = Column(Numeric(18, 2), nullable=True)
    payment_dual_threshold_amount = Column(Numeric(18, 2), nullable=True)
    over_budget_threshold_percent = Column(Numeric(7, 2), nullable=True)  # 0 - 1000

    # False = over-budget risk is reported but does not block approvals
    over_budget_blocks_approval = Column(Boolean, nullable=False, default=True)

    updated_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
