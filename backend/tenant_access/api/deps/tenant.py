from __future__ import annotations

import uuid
from typing import NoReturn, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_access.core.errors import (
    AlreadyMemberError,
    DuplicateInviteError,
    DuplicateMembershipError,
    ForbiddenError,
    InvalidTokenError,
    LastAdminError,
    MembershipError,
    NotFoundError,
    PermissionLockedError,
    SelfDemotionError,
    SelfRemovalError,
    UnknownPermissionError,
    UnknownRoleError,
)
from tenant_access.db.session import get_db
from tenant_access.services.membership import MembershipService
from tenant_access.services.outcomes import OperationResult

ERROR_STATUS: dict[type[MembershipError], int] = {
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTokenError: status.HTTP_404_NOT_FOUND,
    DuplicateMembershipError: status.HTTP_409_CONFLICT,
    DuplicateInviteError: status.HTTP_409_CONFLICT,
    AlreadyMemberError: status.HTTP_409_CONFLICT,
    LastAdminError: status.HTTP_409_CONFLICT,
    SelfDemotionError: status.HTTP_409_CONFLICT,
    SelfRemovalError: status.HTTP_400_BAD_REQUEST,
    PermissionLockedError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UnknownRoleError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UnknownPermissionError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


async def get_tenant_id(x_tenant_id: Optional[str] = Header(default=None, alias="X-Tenant-Id")) -> uuid.UUID:
    if not x_tenant_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-Tenant-Id header is required")
    try:
        return uuid.UUID(x_tenant_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="X-Tenant-Id must be a valid UUID",
        )


async def get_membership_service(db: AsyncSession = Depends(get_db)) -> MembershipService:
    return MembershipService(db)


def raise_for_failure(result: OperationResult) -> None:
    """
    Turn a failed OperationResult into the HTTP error for its kind.
    """
    if result.success:
        return
    _raise(result.error)


def _raise(error: MembershipError | None) -> NoReturn:
    if error is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Operation failed")
    status_code = status.HTTP_400_BAD_REQUEST
    for cls in type(error).__mro__:
        if cls in ERROR_STATUS:
            status_code = ERROR_STATUS[cls]
            break
    raise HTTPException(status_code=status_code, detail=error.to_dict())
