# tenant_access/services/outcomes.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar
from urllib.parse import urlencode

from tenant_access.core.config import settings
from tenant_access.core.errors import MembershipError
from tenant_access.models.invite import Invite
from tenant_access.models.membership import Membership

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Discriminated result of every MembershipService operation.
    On failure `error` holds the specific MembershipError so callers can
    branch on its type or `error_code`.
    """

    success: bool
    message: str
    value: Optional[T] = None
    error: Optional[MembershipError] = None

    @classmethod
    def ok(cls, value: T, message: str = "ok") -> "OperationResult[T]":
        return cls(success=True, message=message, value=value)

    @classmethod
    def fail(cls, error: MembershipError) -> "OperationResult[T]":
        return cls(success=False, message=error.message, error=error)

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error is not None:
            data["code"] = self.error.code
        return data


@dataclass(frozen=True)
class InviteDelivery:
    """
    What the delivery collaborator needs to get a token to the invitee.
    """

    email: str
    token: str
    tenant_name: str

    @property
    def invite_link(self) -> str:
        base = settings.APP_BASE_URL.rstrip("/")
        return f"{base}/signup?{urlencode({'invite': self.token, 'email': self.email})}"


@dataclass(frozen=True)
class InviteOutcome:
    # False: an existing account was linked directly and `membership` is set.
    # True: an invite was created and `invite`/`delivery` are set.
    is_new_account: bool
    membership: Optional[Membership] = None
    invite: Optional[Invite] = None
    delivery: Optional[InviteDelivery] = None


@dataclass(frozen=True)
class TenantMember:
    account_id: uuid.UUID
    tenant_id: uuid.UUID
    email: str
    name: str
    role: str
    permissions: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
