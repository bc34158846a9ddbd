# tests/test_membership_store.py
from __future__ import annotations

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from tenant_access.auth.permissions import PermissionSet, default_permissions
from tenant_access.core.errors import (
    DuplicateMembershipError,
    LastAdminError,
    NotFoundError,
    PermissionLockedError,
    SelfDemotionError,
    SelfRemovalError,
)
from tenant_access.core.roles import Permission, Role
from tenant_access.crud import membership as store

from factories import add_member, create_account, create_tenant


@pytest.mark.asyncio
async def test_create_and_find(db):
    tenant_id = await create_tenant(db)
    account_id = await create_account(db, "member@example.com")

    created = await store.create_membership(db, account_id, tenant_id, Role.MANAGER, default_permissions(Role.MANAGER))
    found = await store.find_membership(db, account_id, tenant_id)

    assert found is created
    assert found.role == "MANAGER"
    assert PermissionSet(found.permissions) == default_permissions(Role.MANAGER)


@pytest.mark.asyncio
async def test_find_missing_returns_none(db):
    tenant_id = await create_tenant(db)
    account_id = await create_account(db, "nobody@example.com")
    assert await store.find_membership(db, account_id, tenant_id) is None


@pytest.mark.asyncio
async def test_create_duplicate_pair_fails(db):
    tenant_id = await create_tenant(db)
    account_id = await create_account(db, "dup@example.com")
    await store.create_membership(db, account_id, tenant_id, Role.EMPLOYEE, [])

    with pytest.raises(DuplicateMembershipError):
        await store.create_membership(db, account_id, tenant_id, Role.VIEWER, [])


@pytest.mark.asyncio
async def test_create_for_unknown_account_is_not_a_duplicate(db):
    tenant_id = await create_tenant(db)

    # FK failure surfaces as-is; only the pair constraint maps to DuplicateMembershipError
    with pytest.raises(IntegrityError):
        await store.create_membership(db, uuid.uuid4(), tenant_id, Role.EMPLOYEE, [])
    await db.rollback()


@pytest.mark.asyncio
async def test_same_account_can_join_several_tenants(db):
    t1 = await create_tenant(db, "One")
    t2 = await create_tenant(db, "Two")
    account_id = await create_account(db, "multi@example.com")

    await store.create_membership(db, account_id, t1, Role.EMPLOYEE, [])
    await store.create_membership(db, account_id, t2, Role.ADMIN, [])

    assert (await store.find_membership(db, account_id, t1)).role == "EMPLOYEE"
    assert (await store.find_membership(db, account_id, t2)).role == "ADMIN"


@pytest.mark.asyncio
async def test_admin_membership_always_carries_manage_users(db):
    tenant_id = await create_tenant(db)
    account_id = await create_account(db, "admin@example.com")

    m = await store.create_membership(db, account_id, tenant_id, Role.ADMIN, [Permission.VIEW_DASHBOARD])

    assert Permission.MANAGE_USERS.value in m.permissions


@pytest.mark.asyncio
async def test_list_by_tenant_is_scoped_and_creation_ordered(db):
    tenant_id = await create_tenant(db, "Mine")
    other_tenant_id = await create_tenant(db, "Other")
    ids = [await create_account(db, f"user{i}@example.com") for i in range(3)]
    for account_id in ids:
        await add_member(db, tenant_id, account_id, Role.EMPLOYEE)
    await add_member(db, other_tenant_id, ids[0], Role.EMPLOYEE)

    members = await store.list_by_tenant(db, tenant_id)

    assert [m.account_id for m in members] == ids
    assert all(m.tenant_id == tenant_id for m in members)


@pytest.mark.asyncio
async def test_set_role_resets_permissions(db):
    tenant_id = await create_tenant(db)
    admin_id = await create_account(db, "admin@example.com")
    member_id = await create_account(db, "member@example.com")
    await add_member(db, tenant_id, admin_id, Role.ADMIN)
    await add_member(db, tenant_id, member_id, Role.EMPLOYEE)
    await store.set_permissions(db, member_id, tenant_id, [Permission.VIEW_DASHBOARD, Permission.USE_AI, Permission.VIEW_CRM])

    updated = await store.set_role(db, member_id, tenant_id, Role.MANAGER, acting_account_id=admin_id)

    assert updated.role == "MANAGER"
    assert PermissionSet(updated.permissions) == default_permissions(Role.MANAGER)
    assert Permission.VIEW_CRM.value not in updated.permissions


@pytest.mark.asyncio
async def test_set_role_missing_membership(db):
    tenant_id = await create_tenant(db)
    admin_id = await create_account(db, "admin@example.com")
    stranger_id = await create_account(db, "stranger@example.com")
    await add_member(db, tenant_id, admin_id, Role.ADMIN)

    with pytest.raises(NotFoundError):
        await store.set_role(db, stranger_id, tenant_id, Role.VIEWER, acting_account_id=admin_id)


@pytest.mark.asyncio
async def test_sole_admin_cannot_demote_self(db):
    tenant_id = await create_tenant(db)
    admin_id = await create_account(db, "admin@example.com")
    await add_member(db, tenant_id, admin_id, Role.ADMIN)

    with pytest.raises(SelfDemotionError):
        await store.set_role(db, admin_id, tenant_id, Role.MANAGER, acting_account_id=admin_id)

    assert (await store.find_membership(db, admin_id, tenant_id)).role == "ADMIN"


@pytest.mark.asyncio
async def test_demoting_last_admin_by_someone_else_fails(db):
    tenant_id = await create_tenant(db)
    admin_id = await create_account(db, "admin@example.com")
    bpo_id = await create_account(db, "bpo@example.com")
    await add_member(db, tenant_id, admin_id, Role.ADMIN)
    await add_member(db, tenant_id, bpo_id, Role.BPO)

    with pytest.raises(LastAdminError):
        await store.set_role(db, admin_id, tenant_id, Role.VIEWER, acting_account_id=bpo_id)


@pytest.mark.asyncio
async def test_admin_can_step_down_when_owner_remains(db):
    tenant_id = await create_tenant(db)
    owner_id = await create_account(db, "owner@example.com")
    admin_id = await create_account(db, "admin@example.com")
    await add_member(db, tenant_id, owner_id, Role.OWNER)
    await add_member(db, tenant_id, admin_id, Role.ADMIN)

    updated = await store.set_role(db, admin_id, tenant_id, Role.EMPLOYEE, acting_account_id=admin_id)

    assert updated.role == "EMPLOYEE"


@pytest.mark.asyncio
async def test_delete_rejects_self_removal(db):
    tenant_id = await create_tenant(db)
    owner_id = await create_account(db, "owner@example.com")
    admin_id = await create_account(db, "admin@example.com")
    await add_member(db, tenant_id, owner_id, Role.OWNER)
    await add_member(db, tenant_id, admin_id, Role.ADMIN)

    with pytest.raises(SelfRemovalError):
        await store.delete_membership(db, admin_id, tenant_id, acting_account_id=admin_id)

    assert len(await store.list_by_tenant(db, tenant_id)) == 2


@pytest.mark.asyncio
async def test_delete_rejects_last_admin(db):
    tenant_id = await create_tenant(db)
    admin_id = await create_account(db, "admin@example.com")
    bpo_id = await create_account(db, "bpo@example.com")
    await add_member(db, tenant_id, admin_id, Role.ADMIN)
    await add_member(db, tenant_id, bpo_id, Role.BPO)

    with pytest.raises(LastAdminError):
        await store.delete_membership(db, admin_id, tenant_id, acting_account_id=bpo_id)

    assert len(await store.list_by_tenant(db, tenant_id)) == 2


@pytest.mark.asyncio
async def test_delete_member(db):
    tenant_id = await create_tenant(db)
    admin_id = await create_account(db, "admin@example.com")
    member_id = await create_account(db, "member@example.com")
    await add_member(db, tenant_id, admin_id, Role.ADMIN)
    await add_member(db, tenant_id, member_id, Role.EMPLOYEE)

    await store.delete_membership(db, member_id, tenant_id, acting_account_id=admin_id)

    assert await store.find_membership(db, member_id, tenant_id) is None


@pytest.mark.asyncio
async def test_delete_missing_membership(db):
    tenant_id = await create_tenant(db)
    admin_id = await create_account(db, "admin@example.com")
    stranger_id = await create_account(db, "stranger@example.com")
    await add_member(db, tenant_id, admin_id, Role.ADMIN)

    with pytest.raises(NotFoundError):
        await store.delete_membership(db, stranger_id, tenant_id, acting_account_id=admin_id)


@pytest.mark.asyncio
async def test_set_permissions_customizes_without_changing_role(db):
    tenant_id = await create_tenant(db)
    member_id = await create_account(db, "member@example.com")
    await add_member(db, tenant_id, member_id, Role.EMPLOYEE)

    updated = await store.set_permissions(db, member_id, tenant_id, ["VIEW_DASHBOARD", "USE_AI"])

    assert updated.role == "EMPLOYEE"
    assert updated.permissions == ["VIEW_DASHBOARD", "USE_AI"]


@pytest.mark.asyncio
async def test_set_permissions_cannot_drop_locked_grant(db):
    tenant_id = await create_tenant(db)
    admin_id = await create_account(db, "admin@example.com")
    await add_member(db, tenant_id, admin_id, Role.ADMIN)

    with pytest.raises(PermissionLockedError):
        await store.set_permissions(db, admin_id, tenant_id, [Permission.VIEW_DASHBOARD])
