# tests/test_api_tenant_access.py
from __future__ import annotations

import uuid

import pytest

from tenant_access.core.roles import Role

from factories import add_member, auth_headers, create_account, create_tenant, seed_team


@pytest.mark.asyncio
async def test_invite_accept_flow(client, db):
    team = await seed_team(db)

    r = await client.post(
        "/api/v1/tenant-invitations",
        json={"email": "c@x.com", "role": "manager"},
        headers=auth_headers(team.admin_id, team.tenant_id),
    )

    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["is_new_account"] is True
    assert body["membership"] is None
    assert body["invite"]["email"] == "c@x.com"
    assert body["invite"]["role"] == "MANAGER"
    assert "token" not in body["invite"]
    token = body["delivery"]["token"]
    assert body["delivery"]["tenant_name"] == "Acme Ltda"
    assert f"invite={token}" in body["delivery"]["invite_link"]

    r = await client.get("/api/v1/tenant-invitations", headers=auth_headers(team.admin_id, team.tenant_id))
    assert r.status_code == 200
    assert [i["email"] for i in r.json()] == ["c@x.com"]

    c_id = await create_account(db, "c@x.com", "Carla")
    await db.commit()

    r = await client.post("/api/v1/tenant-invitations/accept", json={"token": token}, headers=auth_headers(c_id))
    assert r.status_code == 200
    assert r.json()["role"] == "MANAGER"
    assert r.json()["tenant_id"] == str(team.tenant_id)

    r = await client.post("/api/v1/tenant-invitations/accept", json={"token": token}, headers=auth_headers(c_id))
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "invalid_token"

    r = await client.get("/api/v1/tenant-invitations", headers=auth_headers(team.admin_id, team.tenant_id))
    assert r.json() == []


@pytest.mark.asyncio
async def test_invite_existing_account_links_directly(client, db):
    team = await seed_team(db)
    await create_account(db, "known@x.com")
    await db.commit()

    r = await client.post(
        "/api/v1/tenant-invitations",
        json={"email": "known@x.com", "role": "VIEWER"},
        headers=auth_headers(team.admin_id, team.tenant_id),
    )

    assert r.status_code == 201
    body = r.json()
    assert body["is_new_account"] is False
    assert body["membership"]["role"] == "VIEWER"
    assert body["membership"]["permissions"] == ["VIEW_DASHBOARD", "VIEW_TRANSACTIONS"]
    assert body["delivery"] is None


@pytest.mark.asyncio
async def test_duplicate_invite_and_existing_member_conflicts(client, db):
    team = await seed_team(db)
    headers = auth_headers(team.admin_id, team.tenant_id)

    r1 = await client.post("/api/v1/tenant-invitations", json={"email": "c@x.com"}, headers=headers)
    r2 = await client.post("/api/v1/tenant-invitations", json={"email": "c@x.com"}, headers=headers)
    r3 = await client.post("/api/v1/tenant-invitations", json={"email": "b@x.com"}, headers=headers)

    assert r1.status_code == 201
    assert r2.status_code == 409
    assert r2.json()["detail"]["code"] == "duplicate_invite"
    assert r3.status_code == 409
    assert r3.json()["detail"]["code"] == "already_member"


@pytest.mark.asyncio
async def test_employee_is_forbidden(client, db):
    team = await seed_team(db)

    r = await client.post(
        "/api/v1/tenant-invitations",
        json={"email": "c@x.com"},
        headers=auth_headers(team.employee_id, team.tenant_id),
    )

    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "forbidden"


@pytest.mark.asyncio
async def test_cancel_and_resend(client, db):
    team = await seed_team(db)
    headers = auth_headers(team.admin_id, team.tenant_id)
    created = (await client.post("/api/v1/tenant-invitations", json={"email": "c@x.com"}, headers=headers)).json()
    invite_id = created["invite"]["id"]

    r = await client.post(f"/api/v1/tenant-invitations/{invite_id}/resend", headers=headers)
    assert r.status_code == 200
    assert r.json()["token"] == created["delivery"]["token"]
    assert r.json()["invite_link"] == created["delivery"]["invite_link"]

    r = await client.delete(f"/api/v1/tenant-invitations/{invite_id}", headers=headers)
    assert r.status_code == 204

    r = await client.delete(f"/api/v1/tenant-invitations/{invite_id}", headers=headers)
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "not_found"


@pytest.mark.asyncio
async def test_members_list_role_change_and_removal(client, db):
    team = await seed_team(db)
    headers = auth_headers(team.admin_id, team.tenant_id)

    r = await client.get("/api/v1/tenant-members", headers=headers)
    assert r.status_code == 200
    assert {m["email"] for m in r.json()} == {"a@x.com", "b@x.com"}

    r = await client.patch(f"/api/v1/tenant-members/{team.employee_id}/role", json={"role": "consultant"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["role"] == "CONSULTANT"
    assert "MANAGE_USERS" not in r.json()["permissions"]

    r = await client.put(
        f"/api/v1/tenant-members/{team.employee_id}/permissions",
        json={"permissions": ["view_dashboard", "USE_AI"]},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["permissions"] == ["VIEW_DASHBOARD", "USE_AI"]

    r = await client.delete(f"/api/v1/tenant-members/{team.employee_id}", headers=headers)
    assert r.status_code == 204

    r = await client.get("/api/v1/tenant-members", headers=headers)
    assert [m["email"] for m in r.json()] == ["a@x.com"]


@pytest.mark.asyncio
async def test_guard_rails_over_http(client, db):
    team = await seed_team(db)
    headers = auth_headers(team.admin_id, team.tenant_id)

    r = await client.delete(f"/api/v1/tenant-members/{team.admin_id}", headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "self_removal"

    r = await client.patch(f"/api/v1/tenant-members/{team.admin_id}/role", json={"role": "VIEWER"}, headers=headers)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "self_demotion"

    r = await client.put(
        f"/api/v1/tenant-members/{team.admin_id}/permissions",
        json={"permissions": ["VIEW_DASHBOARD"]},
        headers=headers,
    )
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "permission_locked"
    assert r.json()["detail"]["permission"] == "MANAGE_USERS"


@pytest.mark.asyncio
async def test_last_admin_removal_over_http(client, db):
    team = await seed_team(db)
    bpo_id = await create_account(db, "bpo@x.com")
    await add_member(db, team.tenant_id, bpo_id, Role.BPO)
    await db.commit()

    r = await client.delete(f"/api/v1/tenant-members/{team.admin_id}", headers=auth_headers(bpo_id, team.tenant_id))

    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "last_admin"


@pytest.mark.asyncio
async def test_tenant_header_is_required_and_scoped(client, db):
    team = await seed_team(db)
    other_tenant_id = await create_tenant(db, "Elsewhere")
    await db.commit()

    r = await client.get("/api/v1/tenant-members", headers=auth_headers(team.admin_id))
    assert r.status_code == 400

    r = await client.get("/api/v1/tenant-members", headers={**auth_headers(team.admin_id), "X-Tenant-Id": "not-a-uuid"})
    assert r.status_code == 422

    r = await client.get("/api/v1/tenant-members", headers=auth_headers(team.admin_id, other_tenant_id))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_requires_valid_bearer_token(client, db):
    team = await seed_team(db)

    r = await client.get(
        "/api/v1/tenant-members",
        headers={"Authorization": "Bearer garbage", "X-Tenant-Id": str(team.tenant_id)},
    )
    assert r.status_code == 401

    r = await client.get("/api/v1/tenant-members", headers=auth_headers(uuid.uuid4(), team.tenant_id))
    assert r.status_code == 401
