from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from tenant_access.core.roles import Role
from tenant_access.schemas.membership import MembershipOut, _upper


class InviteCreate(BaseModel):
    email: EmailStr
    role: Role = Field(default=Role.EMPLOYEE)

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v: Any) -> Any:
        return _upper(v)


class InviteOut(BaseModel):
    id: UUID
    tenant_id: UUID
    email: EmailStr
    role: Role
    created_at: datetime

    model_config = {"from_attributes": True}


class InviteDeliveryOut(BaseModel):
    email: EmailStr
    token: str
    tenant_name: str
    invite_link: str

    model_config = {"from_attributes": True}


class InviteResultOut(BaseModel):
    success: bool = True
    message: str
    is_new_account: bool
    membership: Optional[MembershipOut] = None
    invite: Optional[InviteOut] = None
    delivery: Optional[InviteDeliveryOut] = None


class AcceptInvite(BaseModel):
    token: str = Field(..., min_length=1, description="Invitation token")
