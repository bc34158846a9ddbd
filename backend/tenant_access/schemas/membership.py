from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from tenant_access.core.roles import Permission, Role


def _upper(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


class TenantMemberOut(BaseModel):
    tenant_id: UUID
    account_id: UUID
    email: str
    name: Optional[str] = None
    role: Role
    permissions: List[Permission] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MembershipOut(BaseModel):
    tenant_id: UUID
    account_id: UUID
    role: Role
    permissions: List[Permission] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class RoleUpdate(BaseModel):
    role: Role = Field(..., description="New role; permissions reset to the role defaults")

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v: Any) -> Any:
        return _upper(v)


class PermissionsUpdate(BaseModel):
    permissions: List[Permission] = Field(default_factory=list)

    @field_validator("permissions", mode="before")
    @classmethod
    def normalize_permissions(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [_upper(p) for p in v]
        return v
