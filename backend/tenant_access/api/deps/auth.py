from __future__ import annotations

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_access.core.security import bearer_scheme, decode_access_token
from tenant_access.db.session import get_db
from tenant_access.models.account import Account


async def get_current_account(
    credentials=Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Account:
    """
    Dependency for protected endpoints. `sub` of the bearer JWT is the account id.
    """
    account_id = decode_access_token(credentials.credentials)

    account = await db.get(Account, account_id)
    if not account:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account not found")

    if not account.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account inactive")

    return account
