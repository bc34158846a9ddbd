# tenant_access/crud/account.py
from __future__ import annotations

import uuid
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_access.models.account import Account


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def find_account_by_email(db: AsyncSession, email: str) -> Account | None:
    """
    Identity lookup: the account registered under `email`, if any.
    """
    stmt = select(Account).where(Account.email == normalize_email(email)).limit(1)
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_accounts_by_id(db: AsyncSession, account_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Account]:
    ids = list(set(account_ids))
    if not ids:
        return {}
    res = await db.execute(select(Account).where(Account.id.in_(ids)))
    return {a.id: a for a in res.scalars().all()}
