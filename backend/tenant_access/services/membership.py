# tenant_access/services/membership.py
from __future__ import annotations

import logging
import uuid
from typing import Awaitable, Callable, Iterable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_access.auth.permissions import can_grant_role, can_manage_users, default_permissions
from tenant_access.core.errors import (
    AlreadyMemberError,
    DuplicateInviteError,
    DuplicateMembershipError,
    ForbiddenError,
    MembershipError,
    NotFoundError,
    UnknownPermissionError,
    UnknownRoleError,
)
from tenant_access.core.roles import Permission, Role, normalize_permission, normalize_role
from tenant_access.crud import account as account_crud
from tenant_access.crud import invite as invite_crud
from tenant_access.crud import membership as membership_crud
from tenant_access.models.account import Account
from tenant_access.models.invite import Invite
from tenant_access.models.membership import Membership
from tenant_access.models.tenant import Tenant
from tenant_access.services.outcomes import (
    InviteDelivery,
    InviteOutcome,
    OperationResult,
    TenantMember,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNNAMED_ACCOUNT = "Unnamed user"


class MembershipService:
    """
    Invite, link, edit and remove tenant members.

    Each public method is one transaction: authorization, reads and writes
    are committed together or rolled back together. Domain failures come
    back as OperationResult.fail(...); nothing in the MembershipError
    family escapes this class.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ---------------------------------------------------------
    # Transaction boundary
    # ---------------------------------------------------------
    async def _execute(
        self,
        action: str,
        work: Callable[[], Awaitable[tuple[T, str]]],
    ) -> OperationResult[T]:
        try:
            value, message = await work()
            await self.db.commit()
        except MembershipError as exc:
            await self.db.rollback()
            logger.info("%s rejected: %s", action, exc.code)
            return OperationResult.fail(exc)
        except Exception:
            await self.db.rollback()
            raise
        logger.info("%s succeeded", action)
        return OperationResult.ok(value, message)

    # ---------------------------------------------------------
    # Authorization helpers
    # ---------------------------------------------------------
    async def _require_member(self, account_id: uuid.UUID, tenant_id: uuid.UUID) -> Membership:
        membership = await membership_crud.find_membership(self.db, account_id, tenant_id)
        if membership is None:
            raise ForbiddenError("You are not a member of this tenant.")
        return membership

    async def _require_manage_users(self, account_id: uuid.UUID, tenant_id: uuid.UUID) -> Membership:
        membership = await self._require_member(account_id, tenant_id)
        if not can_manage_users(role=membership.role, permissions=membership.permissions):
            raise ForbiddenError()
        return membership

    @staticmethod
    def _require_can_grant(actor: Membership, role: Role) -> None:
        if not can_grant_role(actor_role=actor.role, target_role=role):
            raise ForbiddenError(f"Your role cannot grant the {role.value} role.")

    async def _require_outranks(
        self,
        actor: Membership,
        target_account_id: uuid.UUID,
        tenant_id: uuid.UUID,
    ) -> None:
        # a role you cannot grant is a role you cannot edit or remove
        target = await membership_crud.find_membership(self.db, target_account_id, tenant_id)
        if target is not None and not can_grant_role(actor_role=actor.role, target_role=target.role):
            raise ForbiddenError(f"Your role cannot manage a {target.role} member.")

    @staticmethod
    def _parse_role(role: Role | str) -> Role:
        try:
            return normalize_role(role)
        except ValueError as exc:
            raise UnknownRoleError(f"Unknown role: {role}", role=role) from exc

    @staticmethod
    def _parse_permissions(permissions: Iterable[Permission | str]) -> list[Permission]:
        parsed = []
        for p in permissions:
            try:
                parsed.append(normalize_permission(p))
            except ValueError as exc:
                raise UnknownPermissionError(f"Unknown permission: {p}", permission=p) from exc
        return parsed

    async def _get_tenant(self, tenant_id: uuid.UUID) -> Tenant:
        tenant = await self.db.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found", tenant_id=tenant_id)
        return tenant

    # ---------------------------------------------------------
    # Invitations
    # ---------------------------------------------------------
    async def invite(
        self,
        acting_account_id: uuid.UUID,
        tenant_id: uuid.UUID,
        email: str,
        role: Role | str,
    ) -> OperationResult[InviteOutcome]:
        """
        Link an existing account directly, or create a pending invite for an
        email nobody has registered yet. `is_new_account` tells which.
        """

        async def work() -> tuple[InviteOutcome, str]:
            actor = await self._require_manage_users(acting_account_id, tenant_id)
            r = self._parse_role(role)
            self._require_can_grant(actor, r)
            tenant = await self._get_tenant(tenant_id)
            normalized = account_crud.normalize_email(email)

            account = await account_crud.find_account_by_email(self.db, normalized)
            if account is not None:
                if await membership_crud.find_membership(self.db, account.id, tenant_id) is not None:
                    raise AlreadyMemberError(email=normalized)

            if await invite_crud.find_outstanding(self.db, tenant_id, normalized) is not None:
                raise DuplicateInviteError(email=normalized)

            if account is not None:
                try:
                    membership = await membership_crud.create_membership(
                        self.db, account.id, tenant_id, r, default_permissions(r)
                    )
                except DuplicateMembershipError as exc:
                    raise AlreadyMemberError(email=normalized) from exc
                return InviteOutcome(is_new_account=False, membership=membership), (
                    "Existing user linked successfully."
                )

            inv = await invite_crud.create_invite(self.db, tenant_id, normalized, r)
            delivery = InviteDelivery(email=inv.email, token=inv.token, tenant_name=tenant.name)
            return InviteOutcome(is_new_account=True, invite=inv, delivery=delivery), "Invitation created."

        return await self._execute("invite", work)

    async def cancel_invite(
        self,
        acting_account_id: uuid.UUID,
        tenant_id: uuid.UUID,
        invite_id: uuid.UUID,
    ) -> OperationResult[Invite]:
        async def work() -> tuple[Invite, str]:
            await self._require_manage_users(acting_account_id, tenant_id)
            inv = await invite_crud.cancel(self.db, invite_id, tenant_id)
            return inv, "Invitation cancelled."

        return await self._execute("cancel_invite", work)

    async def resend_invite(
        self,
        acting_account_id: uuid.UUID,
        tenant_id: uuid.UUID,
        invite_id: uuid.UUID,
    ) -> OperationResult[InviteDelivery]:
        async def work() -> tuple[InviteDelivery, str]:
            await self._require_manage_users(acting_account_id, tenant_id)
            tenant = await self._get_tenant(tenant_id)
            inv = await invite_crud.get_pending(self.db, invite_id, tenant_id)
            return InviteDelivery(email=inv.email, token=inv.token, tenant_name=tenant.name), (
                "Invitation ready to resend."
            )

        return await self._execute("resend_invite", work)

    async def accept_invite(self, token: str, account_id: uuid.UUID) -> OperationResult[Membership]:
        """
        Redeem `token` for `account_id`. The invite is consumed even when the
        account turns out to be a member already, but not when the account
        does not exist.
        """

        async def work() -> tuple[Membership, str]:
            redeemed = await invite_crud.redeem(self.db, token)

            # rolled back with the redeem, so the token stays usable
            if await self.db.get(Account, account_id) is None:
                raise NotFoundError("Account not found", account_id=account_id)

            if await membership_crud.find_membership(self.db, account_id, redeemed.tenant_id) is not None:
                await self.db.commit()
                raise AlreadyMemberError(tenant_id=redeemed.tenant_id)

            try:
                membership = await membership_crud.create_membership(
                    self.db,
                    account_id,
                    redeemed.tenant_id,
                    redeemed.role,
                    default_permissions(redeemed.role),
                )
            except DuplicateMembershipError as exc:
                # Concurrent link won; the insert is gone but the token must still burn.
                await self.db.rollback()
                await invite_crud.discard_token(self.db, token)
                await self.db.commit()
                raise AlreadyMemberError(tenant_id=redeemed.tenant_id) from exc
            return membership, "Invitation accepted."

        return await self._execute("accept_invite", work)

    async def list_pending_invites(
        self,
        acting_account_id: uuid.UUID,
        tenant_id: uuid.UUID,
    ) -> OperationResult[list[Invite]]:
        async def work() -> tuple[list[Invite], str]:
            await self._require_manage_users(acting_account_id, tenant_id)
            return await invite_crud.list_pending(self.db, tenant_id), "ok"

        return await self._execute("list_pending_invites", work)

    # ---------------------------------------------------------
    # Members
    # ---------------------------------------------------------
    async def list_members(
        self,
        acting_account_id: uuid.UUID,
        tenant_id: uuid.UUID,
    ) -> OperationResult[list[TenantMember]]:
        async def work() -> tuple[list[TenantMember], str]:
            await self._require_member(acting_account_id, tenant_id)
            memberships = await membership_crud.list_by_tenant(self.db, tenant_id)
            accounts = await account_crud.get_accounts_by_id(self.db, (m.account_id for m in memberships))
            members = []
            for m in memberships:
                acc = accounts.get(m.account_id)
                members.append(
                    TenantMember(
                        account_id=m.account_id,
                        tenant_id=m.tenant_id,
                        email=acc.email if acc else "",
                        name=(acc.full_name if acc and acc.full_name else UNNAMED_ACCOUNT),
                        role=m.role,
                        permissions=list(m.permissions or []),
                        created_at=m.created_at,
                    )
                )
            return members, "ok"

        return await self._execute("list_members", work)

    async def change_role(
        self,
        acting_account_id: uuid.UUID,
        tenant_id: uuid.UUID,
        target_account_id: uuid.UUID,
        new_role: Role | str,
    ) -> OperationResult[Membership]:
        async def work() -> tuple[Membership, str]:
            actor = await self._require_manage_users(acting_account_id, tenant_id)
            r = self._parse_role(new_role)
            self._require_can_grant(actor, r)
            await self._require_outranks(actor, target_account_id, tenant_id)
            membership = await membership_crud.set_role(
                self.db, target_account_id, tenant_id, r, acting_account_id=acting_account_id
            )
            return membership, "Role updated."

        return await self._execute("change_role", work)

    async def update_permissions(
        self,
        acting_account_id: uuid.UUID,
        tenant_id: uuid.UUID,
        target_account_id: uuid.UUID,
        permissions: Iterable[Permission | str],
    ) -> OperationResult[Membership]:
        async def work() -> tuple[Membership, str]:
            actor = await self._require_manage_users(acting_account_id, tenant_id)
            desired = self._parse_permissions(permissions)
            await self._require_outranks(actor, target_account_id, tenant_id)
            membership = await membership_crud.set_permissions(
                self.db, target_account_id, tenant_id, desired
            )
            return membership, "Permissions updated."

        return await self._execute("update_permissions", work)

    async def remove_member(
        self,
        acting_account_id: uuid.UUID,
        tenant_id: uuid.UUID,
        target_account_id: uuid.UUID,
    ) -> OperationResult[None]:
        async def work() -> tuple[None, str]:
            actor = await self._require_manage_users(acting_account_id, tenant_id)
            await self._require_outranks(actor, target_account_id, tenant_id)
            await membership_crud.delete_membership(
                self.db, target_account_id, tenant_id, acting_account_id=acting_account_id
            )
            return None, "Member removed."

        return await self._execute("remove_member", work)
