# tenant_access/crud/invite.py
from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_access.core.config import settings
from tenant_access.core.errors import DuplicateInviteError, InvalidTokenError, NotFoundError
from tenant_access.core.roles import Role, normalize_role
from tenant_access.crud.account import normalize_email
from tenant_access.db.integrity import is_unique_violation
from tenant_access.models.invite import Invite


@dataclass(frozen=True)
class RedeemedInvite:
    tenant_id: uuid.UUID
    email: str
    role: Role


def generate_token() -> str:
    return secrets.token_urlsafe(settings.INVITE_TOKEN_BYTES)


async def find_outstanding(db: AsyncSession, tenant_id: uuid.UUID, email: str) -> Invite | None:
    stmt = (
        select(Invite)
        .where(Invite.tenant_id == tenant_id)
        .where(Invite.email == normalize_email(email))
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_pending(db: AsyncSession, invite_id: uuid.UUID, tenant_id: uuid.UUID) -> Invite:
    """
    Pending invite `invite_id` scoped to `tenant_id`; another tenant's
    invite is indistinguishable from a missing one.
    """
    inv = (
        await db.execute(
            select(Invite)
            .where(Invite.id == invite_id, Invite.tenant_id == tenant_id)
            .with_for_update()
        )
    ).scalar_one_or_none()
    if inv is None:
        raise NotFoundError("Invitation not found", invite_id=invite_id)
    return inv


async def create_invite(db: AsyncSession, tenant_id: uuid.UUID, email: str, role: Role | str) -> Invite:
    email = normalize_email(email)
    if await find_outstanding(db, tenant_id, email) is not None:
        raise DuplicateInviteError(email=email)

    inv = Invite(
        tenant_id=tenant_id,
        email=email,
        role=normalize_role(role).value,
        token=generate_token(),
    )
    db.add(inv)
    try:
        await db.flush()
    except IntegrityError as exc:
        # concurrent invite for the same (tenant, email) got there first
        if not is_unique_violation(exc):
            raise
        raise DuplicateInviteError(email=email) from exc
    return inv


async def list_pending(db: AsyncSession, tenant_id: uuid.UUID) -> list[Invite]:
    stmt = (
        select(Invite)
        .where(Invite.tenant_id == tenant_id)
        .order_by(Invite.created_at.asc(), Invite.id.asc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def redeem(db: AsyncSession, token: str) -> RedeemedInvite:
    """
    Consume the invite bound to `token`. Single use: the row is deleted.
    The row lock makes a concurrent second redeem see no invite.
    """
    token = (token or "").strip()
    if not token:
        raise InvalidTokenError()

    inv = (
        await db.execute(select(Invite).where(Invite.token == token).with_for_update())
    ).scalar_one_or_none()
    if inv is None:
        raise InvalidTokenError()

    redeemed = RedeemedInvite(tenant_id=inv.tenant_id, email=inv.email, role=normalize_role(inv.role))
    await db.delete(inv)
    await db.flush()
    return redeemed


async def discard_token(db: AsyncSession, token: str) -> None:
    await db.execute(delete(Invite).where(Invite.token == (token or "").strip()))


async def cancel(db: AsyncSession, invite_id: uuid.UUID, tenant_id: uuid.UUID) -> Invite:
    inv = await get_pending(db, invite_id, tenant_id)
    await db.delete(inv)
    await db.flush()
    return inv
