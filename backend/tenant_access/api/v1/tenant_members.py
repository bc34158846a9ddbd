from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, status

from tenant_access.api.deps.auth import get_current_account
from tenant_access.api.deps.tenant import get_membership_service, get_tenant_id, raise_for_failure
from tenant_access.models.account import Account
from tenant_access.schemas.membership import (
    MembershipOut,
    PermissionsUpdate,
    RoleUpdate,
    TenantMemberOut,
)
from tenant_access.services.membership import MembershipService

router = APIRouter(prefix="/tenant-members", tags=["tenant-members"])


@router.get("", response_model=List[TenantMemberOut])
async def list_tenant_members(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor: Account = Depends(get_current_account),
    service: MembershipService = Depends(get_membership_service),
):
    result = await service.list_members(actor.id, tenant_id)
    raise_for_failure(result)
    return result.value


@router.patch("/{account_id}/role", response_model=MembershipOut)
async def change_member_role(
    account_id: uuid.UUID,
    payload: RoleUpdate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor: Account = Depends(get_current_account),
    service: MembershipService = Depends(get_membership_service),
):
    """
    Switch the member's role. Permissions are reset to the new role's defaults.
    """
    result = await service.change_role(actor.id, tenant_id, account_id, payload.role)
    raise_for_failure(result)
    return result.value


@router.put("/{account_id}/permissions", response_model=MembershipOut)
async def update_member_permissions(
    account_id: uuid.UUID,
    payload: PermissionsUpdate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor: Account = Depends(get_current_account),
    service: MembershipService = Depends(get_membership_service),
):
    result = await service.update_permissions(actor.id, tenant_id, account_id, payload.permissions)
    raise_for_failure(result)
    return result.value


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    account_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor: Account = Depends(get_current_account),
    service: MembershipService = Depends(get_membership_service),
):
    result = await service.remove_member(actor.id, tenant_id, account_id)
    raise_for_failure(result)
    return None
