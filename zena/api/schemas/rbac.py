"""
RBAC schemas (Pydantic) - roles, role profiles, user role assignment, permission inspection.
"""
from pydantic import BaseModel, Field, UUID4
from datetime import datetime
from typing import Optional, List


class PermissionItem(BaseModel):
    key: str
    label: str
    description: str = ""


class PermissionGroupResponse(BaseModel):
    key: str
    label: str
    permissions: List[PermissionItem]


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    scope: str = Field(default="tenant", pattern="^(tenant|project)$")
    permissions: List[str] = []


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class RoleResponse(BaseModel):
    id: UUID4
    tenant_id: Optional[UUID4]
    name: str
    slug: str
    description: Optional[str]
    scope: str
    is_system: bool
    is_active: bool
    permissions: List[str]
    created_at: datetime

    class Config:
        from_attributes = True


class RoleSummary(BaseModel):
    id: UUID4
    name: str
    slug: str

    class Config:
        from_attributes = True


class PermissionSync(BaseModel):
    permissions: List[str]


class UserRolesSync(BaseModel):
    role_ids: List[UUID4]


class SyncResult(BaseModel):
    added: List[str]
    removed: List[str]


class UserResponse(BaseModel):
    id: UUID4
    tenant_id: UUID4
    name: str
    email: str
    is_active: bool
    roles: List[RoleSummary]

    class Config:
        from_attributes = True


class MeResponse(BaseModel):
    id: UUID4
    tenant_id: UUID4
    name: str
    email: str
    permissions: List[str]


class RoleProfileCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    role_ids: List[UUID4] = []
    is_active: bool = True


class RoleProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    role_ids: Optional[List[UUID4]] = None
    is_active: Optional[bool] = None


class RoleProfileResponse(BaseModel):
    id: UUID4
    tenant_id: UUID4
    name: str
    description: Optional[str]
    role_ids: List[str]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AssignProfile(BaseModel):
    profile_id: UUID4


class InspectedRole(BaseModel):
    id: str
    name: str
    permissions: List[str]


class InspectedPermission(BaseModel):
    key: str
    granted: bool
    sources: List[str]
    source_ids: List[str]


class PermissionInspectionResponse(BaseModel):
    user_id: UUID4
    filter: Optional[str]
    roles: List[InspectedRole]
    permissions: List[InspectedPermission]
    missing_permissions: List[str]
