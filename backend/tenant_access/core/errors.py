# tenant_access/core/errors.py
from __future__ import annotations

from typing import Any


class MembershipError(Exception):
    """
    Base for every recoverable membership/invite failure.

    `code` is stable and meant for callers to branch on;
    `message` is meant for humans.
    """

    code: str = "membership_error"
    default_message: str = "Membership operation failed."

    def __init__(self, message: str | None = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.context:
            data.update({k: str(v) for k, v in self.context.items()})
        return data


class ForbiddenError(MembershipError):
    code = "forbidden"
    default_message = "You do not have permission to manage users in this tenant."


class DuplicateMembershipError(MembershipError):
    code = "duplicate_membership"
    default_message = "This account already has a membership in this tenant."


class DuplicateInviteError(MembershipError):
    code = "duplicate_invite"
    default_message = "A pending invitation already exists for this email."


class AlreadyMemberError(MembershipError):
    code = "already_member"
    default_message = "User is already a member of this tenant."


class NotFoundError(MembershipError):
    code = "not_found"
    default_message = "Not found."


class InvalidTokenError(MembershipError):
    code = "invalid_token"
    default_message = "Invalid invitation token."


class PermissionLockedError(MembershipError):
    code = "permission_locked"

    def __init__(self, role: Any, permission: Any) -> None:
        role_value = getattr(role, "value", role)
        permission_value = getattr(permission, "value", permission)
        super().__init__(
            f"Role {role_value} requires permission {permission_value}; it cannot be removed.",
            role=role_value,
            permission=permission_value,
        )
        self.role = role
        self.permission = permission


class SelfRemovalError(MembershipError):
    code = "self_removal"
    default_message = "You cannot remove your own access to this tenant."


class SelfDemotionError(MembershipError):
    code = "self_demotion"
    default_message = (
        "You are the last administrator of this tenant; assign another administrator first."
    )


class LastAdminError(MembershipError):
    code = "last_admin"
    default_message = "A tenant must keep at least one administrator."


class UnknownRoleError(MembershipError):
    code = "unknown_role"
    default_message = "Unknown role."


class UnknownPermissionError(MembershipError):
    code = "unknown_permission"
    default_message = "Unknown permission."
