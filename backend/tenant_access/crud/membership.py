# tenant_access/crud/membership.py
from __future__ import annotations

import uuid
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_access.auth.permissions import (
    ADMIN_ROLES,
    PermissionSet,
    default_permissions,
    is_admin_role,
)
from tenant_access.core.errors import (
    DuplicateMembershipError,
    LastAdminError,
    NotFoundError,
    SelfDemotionError,
    SelfRemovalError,
)
from tenant_access.core.roles import Permission, Role, normalize_role
from tenant_access.db.integrity import is_unique_violation
from tenant_access.models.membership import Membership


async def find_membership(
    db: AsyncSession,
    account_id: uuid.UUID,
    tenant_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Membership | None:
    stmt = select(Membership).where(
        Membership.tenant_id == tenant_id,
        Membership.account_id == account_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalar_one_or_none()


async def _get_membership_or_404(db: AsyncSession, account_id: uuid.UUID, tenant_id: uuid.UUID) -> Membership:
    membership = await find_membership(db, account_id, tenant_id, for_update=True)
    if membership is None:
        raise NotFoundError("Membership not found", account_id=account_id, tenant_id=tenant_id)
    return membership


async def create_membership(
    db: AsyncSession,
    account_id: uuid.UUID,
    tenant_id: uuid.UUID,
    role: Role | str,
    permissions: Iterable[Permission | str],
) -> Membership:
    """
    Insert the (account, tenant) membership. The unique constraint is the
    authority; the pre-check only gives a clean error on the common path.
    Locked grants for `role` are always included.
    """
    r = normalize_role(role)
    if await find_membership(db, account_id, tenant_id) is not None:
        raise DuplicateMembershipError(account_id=account_id, tenant_id=tenant_id)

    membership = Membership(
        account_id=account_id,
        tenant_id=tenant_id,
        role=r.value,
        permissions=PermissionSet.for_role(r, permissions).to_list(),
    )
    db.add(membership)
    try:
        await db.flush()
    except IntegrityError as exc:
        # only the (tenant, account) pair constraint means "lost a race"
        if not is_unique_violation(exc):
            raise
        raise DuplicateMembershipError(account_id=account_id, tenant_id=tenant_id) from exc
    return membership


async def list_by_tenant(db: AsyncSession, tenant_id: uuid.UUID) -> list[Membership]:
    stmt = (
        select(Membership)
        .where(Membership.tenant_id == tenant_id)
        .order_by(Membership.created_at.asc(), Membership.id.asc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def count_admins(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    *,
    exclude_account_id: uuid.UUID | None = None,
) -> int:
    """
    Counts OWNER/ADMIN/SUPER_ADMIN memberships of a tenant.
    Rows are locked so concurrent demotions/removals serialize on them.
    """
    stmt = select(Membership).where(
        Membership.tenant_id == tenant_id,
        Membership.role.in_([r.value for r in ADMIN_ROLES]),
    )
    if exclude_account_id is not None:
        stmt = stmt.where(Membership.account_id != exclude_account_id)
    stmt = stmt.with_for_update()
    return len((await db.execute(stmt)).scalars().all())


async def set_role(
    db: AsyncSession,
    account_id: uuid.UUID,
    tenant_id: uuid.UUID,
    new_role: Role | str,
    *,
    acting_account_id: uuid.UUID,
) -> Membership:
    """
    Replace the role and reset permissions to the new role's defaults.
    Switching roles is a reset; earlier customizations are discarded.
    """
    r = normalize_role(new_role)
    membership = await _get_membership_or_404(db, account_id, tenant_id)

    if is_admin_role(membership.role) and not is_admin_role(r):
        remaining = await count_admins(db, tenant_id, exclude_account_id=account_id)
        if remaining == 0:
            if account_id == acting_account_id:
                raise SelfDemotionError(tenant_id=tenant_id)
            raise LastAdminError(tenant_id=tenant_id)

    membership.role = r.value
    membership.permissions = default_permissions(r).to_list()
    await db.flush()
    return membership


async def set_permissions(
    db: AsyncSession,
    account_id: uuid.UUID,
    tenant_id: uuid.UUID,
    permissions: Iterable[Permission | str],
) -> Membership:
    """
    Customize the permission set of a membership, keeping its role.
    Dropping a permission the role locks raises PermissionLockedError.
    """
    membership = await _get_membership_or_404(db, account_id, tenant_id)

    current = PermissionSet(membership.permissions, role=membership.role)
    desired = PermissionSet(permissions)
    for perm in list(current):
        if perm not in desired:
            current.remove(perm)
    for perm in desired:
        current.add(perm)

    membership.permissions = current.to_list()
    await db.flush()
    return membership


async def delete_membership(
    db: AsyncSession,
    account_id: uuid.UUID,
    tenant_id: uuid.UUID,
    *,
    acting_account_id: uuid.UUID,
) -> None:
    # Leaving a tenant is a separate, explicit path.
    if account_id == acting_account_id:
        raise SelfRemovalError(tenant_id=tenant_id)

    membership = await _get_membership_or_404(db, account_id, tenant_id)

    if is_admin_role(membership.role):
        remaining = await count_admins(db, tenant_id, exclude_account_id=account_id)
        if remaining == 0:
            raise LastAdminError(tenant_id=tenant_id)

    await db.delete(membership)
    await db.flush()
