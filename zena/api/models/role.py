"""
Role, role permission pivot and role profile models.

System roles have tenant_id = NULL and are visible to every tenant;
they are seeded from the permission catalog and cannot be edited.
"""
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Text, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from zena.api.db.base import Base, JSONDocument


class Role(Base):
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("tenant_id", "slug", name="uq_roles_tenant_slug"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True)

    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    scope = Column(String(50), nullable=False, default="tenant")  # system, tenant, project

    is_system = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    permission_rows = relationship(
        "RolePermission",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="RolePermission.permission",
    )

    @property
    def permissions(self):
        return [row.permission for row in self.permission_rows]


class RolePermission(Base):
    __tablename__ = "role_permissions"

    role_id = Column(Uuid, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    permission = Column(String(150), primary_key=True)


class RoleProfile(Base):
    """Named bundle of roles that can be applied to a user in one step."""
    __tablename__ = "role_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    role_ids = Column(JSONDocument, nullable=False, default=list)  # list of role id strings
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
