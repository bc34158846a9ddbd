from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, status

from tenant_access.api.deps.auth import get_current_account
from tenant_access.api.deps.tenant import get_membership_service, get_tenant_id, raise_for_failure
from tenant_access.models.account import Account
from tenant_access.schemas.invite import (
    AcceptInvite,
    InviteCreate,
    InviteDeliveryOut,
    InviteOut,
    InviteResultOut,
)
from tenant_access.schemas.membership import MembershipOut
from tenant_access.services.membership import MembershipService

router = APIRouter(prefix="/tenant-invitations", tags=["tenant-invitations"])


# =========================================================
# CREATE + LIST (tenant-scoped; MANAGE_USERS only)
# =========================================================
@router.post("", response_model=InviteResultOut, status_code=status.HTTP_201_CREATED)
async def create_tenant_invitation(
    payload: InviteCreate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor: Account = Depends(get_current_account),
    service: MembershipService = Depends(get_membership_service),
):
    """
    Invite an email into the tenant identified by X-Tenant-Id.

    Known accounts are linked immediately (is_new_account=false). Otherwise a
    pending invitation is created and `delivery` carries the token and link
    for whoever sends it on.
    """
    result = await service.invite(actor.id, tenant_id, str(payload.email), payload.role)
    raise_for_failure(result)
    outcome = result.value
    return InviteResultOut(
        message=result.message,
        is_new_account=outcome.is_new_account,
        membership=(MembershipOut.model_validate(outcome.membership) if outcome.membership else None),
        invite=(InviteOut.model_validate(outcome.invite) if outcome.invite else None),
        delivery=(InviteDeliveryOut.model_validate(outcome.delivery) if outcome.delivery else None),
    )


@router.get("", response_model=List[InviteOut])
async def list_tenant_invitations(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor: Account = Depends(get_current_account),
    service: MembershipService = Depends(get_membership_service),
):
    result = await service.list_pending_invites(actor.id, tenant_id)
    raise_for_failure(result)
    return result.value


@router.delete("/{invite_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_tenant_invitation(
    invite_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor: Account = Depends(get_current_account),
    service: MembershipService = Depends(get_membership_service),
):
    result = await service.cancel_invite(actor.id, tenant_id, invite_id)
    raise_for_failure(result)
    return None


@router.post("/{invite_id}/resend", response_model=InviteDeliveryOut)
async def resend_tenant_invitation(
    invite_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor: Account = Depends(get_current_account),
    service: MembershipService = Depends(get_membership_service),
):
    result = await service.resend_invite(actor.id, tenant_id, invite_id)
    raise_for_failure(result)
    return InviteDeliveryOut.model_validate(result.value)


# =========================================================
# ACCEPT (authenticated; no tenant header)
# =========================================================
@router.post("/accept", response_model=MembershipOut)
async def accept_tenant_invitation(
    payload: AcceptInvite,
    account: Account = Depends(get_current_account),
    service: MembershipService = Depends(get_membership_service),
):
    result = await service.accept_invite(payload.token, account.id)
    raise_for_failure(result)
    return result.value
