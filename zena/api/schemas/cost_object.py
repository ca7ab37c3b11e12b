"""
Cost object schemas (Pydantic) - change orders, payment certificates, contract payments.
"""
from pydantic import BaseModel, Field, UUID4
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any

from zena.api.models.cost_object import CostObjectStatus, CostObjectType


class CostObjectCreate(BaseModel):
    contract_id: UUID4
    code: str = Field(min_length=1, max_length=100)
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    # amount for certificates and payments, signed amount_delta for change orders
    amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    amount_delta: Optional[Decimal] = Field(default=None, decimal_places=2)


class CostObjectUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=100)
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    amount_delta: Optional[Decimal] = Field(default=None, decimal_places=2)


class StatusReason(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


class CostObjectResponse(BaseModel):
    id: UUID4
    object_type: CostObjectType
    tenant_id: UUID4
    project_id: UUID4
    contract_id: UUID4
    code: str
    title: str
    description: Optional[str]
    amount: Decimal
    amount_delta: Optional[Decimal] = None
    status: CostObjectStatus
    requires_dual_approval: bool
    first_approved_by: Optional[str]
    first_approved_at: Optional[datetime]
    second_approved_by: Optional[str]
    second_approved_at: Optional[datetime]
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    rejected_reason: Optional[str]
    created_by: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ApprovalResponse(BaseModel):
    stage: str  # first, second, single, bypass
    completed: bool
    decision: Dict[str, Any]
    cost_object: CostObjectResponse


class PolicyPreviewResponse(BaseModel):
    """Decision the gate would take for the caller right now."""
    object_id: UUID4
    decision: Dict[str, Any]
