"""
ORM models. Importing this package registers every table on Base.metadata.
"""
from zena.api.models.tenant import Tenant
from zena.api.models.user import User, user_roles
from zena.api.models.role import Role, RolePermission, RoleProfile
from zena.api.models.cost_policy import CostApprovalPolicy
from zena.api.models.project import Project, Contract
from zena.api.models.cost_object import (
    ChangeOrder,
    PaymentCertificate,
    ContractPayment,
    CostObjectStatus,
    CostObjectType,
    COST_OBJECT_MODELS,
)
from zena.api.models.audit_log import AuditLog
from zena.api.models.user_settings import UserSettings

__all__ = [
    "Tenant",
    "User",
    "user_roles",
    "Role",
    "RolePermission",
    "RoleProfile",
    "CostApprovalPolicy",
    "Project",
    "Contract",
    "ChangeOrder",
    "PaymentCertificate",
    "ContractPayment",
    "CostObjectStatus",
    "CostObjectType",
    "COST_OBJECT_MODELS",
    "AuditLog",
    "UserSettings",
]
