"""
Approvable cost objects: change orders, payment certificates, contract payments.

All three share the approval columns; the status enum is enforced by
services/status_fsm.py.
"""
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Numeric, Text, Uuid, Enum as SQLEnum
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func
import uuid
import enum
from zena.api.db.base import Base


class CostObjectStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    BLOCKED_BY_POLICY = "blocked_by_policy"


class CostObjectType(str, enum.Enum):
    CHANGE_ORDER = "change_order"
    CERTIFICATE = "certificate"
    PAYMENT = "payment"


class ApprovableMixin:
    """Columns shared by every cost object that goes through the approval gate."""

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    @declared_attr
    def tenant_id(cls):
        return Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    @declared_attr
    def project_id(cls):
        return Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    @declared_attr
    def contract_id(cls):
        return Column(Uuid, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)

    code = Column(String(100), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(18, 2), nullable=False)

    @declared_attr
    def status(cls):
        return Column(
            SQLEnum(
                CostObjectStatus,
                name="costobjectstatus",
                values_callable=lambda members: [m.value for m in members],
            ),
            nullable=False,
            default=CostObjectStatus.DRAFT,
            index=True,
        )

    # Dual approval bookkeeping
    requires_dual_approval = Column(Boolean, nullable=False, default=False)
    first_approved_by = Column(String(255), nullable=True)
    first_approved_at = Column(DateTime(timezone=True), nullable=True)
    second_approved_by = Column(String(255), nullable=True)
    second_approved_at = Column(DateTime(timezone=True), nullable=True)

    approved_by = Column(String(255), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_reason = Column(Text, nullable=True)

    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


def _additive_delta(context):
    return context.get_current_parameters()["amount"]


class ChangeOrder(ApprovableMixin, Base):
    """
    Change to a contract's value. amount_delta is signed (negative for
    deductive orders); amount holds its magnitude.
    """
    __tablename__ = "change_orders"
    object_type = CostObjectType.CHANGE_ORDER

    amount_delta = Column(Numeric(18, 2), nullable=False, default=_additive_delta)


class PaymentCertificate(ApprovableMixin, Base):
    __tablename__ = "payment_certificates"
    object_type = CostObjectType.CERTIFICATE


class ContractPayment(ApprovableMixin, Base):
    __tablename__ = "contract_payments"
    object_type = CostObjectType.PAYMENT


COST_OBJECT_MODELS = {
    CostObjectType.CHANGE_ORDER: ChangeOrder,
    CostObjectType.CERTIFICATE: PaymentCertificate,
    CostObjectType.PAYMENT: ContractPayment,
}
