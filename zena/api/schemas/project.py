"""
Project and contract schemas (Pydantic).
"""
from pydantic import BaseModel, Field, UUID4
from datetime import datetime
from decimal import Decimal
from typing import Optional


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    budget_total: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    code: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    status: Optional[str] = Field(default=None, pattern="^(active|on_hold|completed|archived)$")
    budget_total: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)


class ProjectResponse(BaseModel):
    id: UUID4
    tenant_id: UUID4
    name: str
    code: Optional[str]
    description: Optional[str]
    status: str
    budget_total: Decimal
    created_by: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContractCreate(BaseModel):
    code: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    base_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)


class ContractResponse(BaseModel):
    id: UUID4
    tenant_id: UUID4
    project_id: UUID4
    code: str
    name: str
    base_amount: Decimal
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class OverBudgetResponse(BaseModel):
    project_id: UUID4
    budget_total: Decimal
    over_budget_percent: Optional[Decimal]
    over_budget_threshold_percent: Optional[Decimal]
    policy_risk: bool
    blocks_approval: bool
