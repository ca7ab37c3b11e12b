"""
Cost approval policy schemas (Pydantic).
"""
from pydantic import BaseModel, Field, UUID4
from datetime import datetime
from decimal import Decimal
from typing import Optional


class CostApprovalPolicyUpdate(BaseModel):
    """Full replace (PUT). Omitted thresholds are cleared."""
    co_dual_threshold_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    certificate_dual_threshold_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    payment_dual_threshold_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    over_budget_threshold_percent: Optional[Decimal] = Field(default=None, ge=0, le=1000, decimal_places=2)
    over_budget_blocks_approval: bool = True


class CostApprovalPolicyPatch(BaseModel):
    """Partial update (PATCH). Only fields present in the body change; null clears a threshold."""
    co_dual_threshold_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    certificate_dual_threshold_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    payment_dual_threshold_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    over_budget_threshold_percent: Optional[Decimal] = Field(default=None, ge=0, le=1000, decimal_places=2)
    over_budget_blocks_approval: Optional[bool] = None


class CostApprovalPolicyResponse(BaseModel):
    tenant_id: UUID4
    co_dual_threshold_amount: Optional[Decimal]
    certificate_dual_threshold_amount: Optional[Decimal]
    payment_dual_threshold_amount: Optional[Decimal]
    over_budget_threshold_percent: Optional[Decimal]
    over_budget_blocks_approval: bool
    updated_at: Optional[datetime]
