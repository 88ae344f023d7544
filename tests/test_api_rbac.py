# tests/test_api_rbac.py

"""
Tests for the RBAC API routes.
"""

from cmms.rbac.catalog import PermissionName


async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_me_requires_session(client):
    response = await client.get("/api/rbac/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


async def test_me_lists_roles_and_permissions(client, seeded_db, make_user, auth_headers):
    user = await make_user("tech@example.com", "TECHNICIAN")

    response = await client.get("/api/rbac/me", headers=auth_headers(user.id))

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == user.id
    assert data["roles"] == ["TECHNICIAN"]
    assert "assets:write" in data["permissions"]
    assert data["permissions"] == sorted(data["permissions"])
    assert data["is_admin"] is False


async def test_me_for_admin(client, seeded_db, make_user, auth_headers):
    admin = await make_user("admin@example.com", "ADMIN")

    data = (await client.get("/api/rbac/me", headers=auth_headers(admin.id))).json()

    assert data["is_admin"] is True
    assert len(data["permissions"]) == len(PermissionName)


async def test_permissions_listing_is_admin_only(client, seeded_db, make_user, auth_headers):
    admin = await make_user("admin@example.com", "ADMIN")
    tech = await make_user("tech@example.com", "TECHNICIAN")

    forbidden = await client.get("/api/rbac/permissions", headers=auth_headers(tech.id))
    assert forbidden.status_code == 403

    response = await client.get("/api/rbac/permissions", headers=auth_headers(admin.id))
    assert response.status_code == 200
    permissions = response.json()
    assert len(permissions) == len(PermissionName)
    keys = [(p["resource"], p["action"]) for p in permissions]
    assert keys == sorted(keys)


async def test_roles_listing_counts(client, seeded_db, make_user, auth_headers):
    admin = await make_user("admin@example.com", "ADMIN")
    await make_user("t1@example.com", "TECHNICIAN")
    await make_user("t2@example.com", "TECHNICIAN")

    response = await client.get("/api/rbac/roles", headers=auth_headers(admin.id))

    assert response.status_code == 200
    roles = {r["name"]: r for r in response.json()}
    assert list(roles) == ["ADMIN", "TECHNICIAN", "USER"]
    assert roles["TECHNICIAN"]["user_count"] == 2
    assert roles["TECHNICIAN"]["permission_count"] == 8
    assert roles["USER"]["user_count"] == 0
    assert roles["USER"]["is_default"] is True
    assert roles["ADMIN"]["permission_count"] == len(PermissionName)


async def test_role_detail(client, seeded_db, make_user, auth_headers):
    admin = await make_user("admin@example.com", "ADMIN")
    roles = (await client.get("/api/rbac/roles", headers=auth_headers(admin.id))).json()
    user_role = next(r for r in roles if r["name"] == "USER")

    response = await client.get(f"/api/rbac/roles/{user_role['id']}", headers=auth_headers(admin.id))

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "USER"
    assert {p["name"] for p in data["permissions"]} == {
        "sites:read", "buildings:read", "rooms:read",
        "assets:read", "work_orders:read", "tenants:read",
    }

    missing = await client.get("/api/rbac/roles/9999", headers=auth_headers(admin.id))
    assert missing.status_code == 404


async def test_grant_and_revoke_role(client, seeded_db, make_user, auth_headers):
    admin = await make_user("admin@example.com", "ADMIN")
    user = await make_user("user@example.com", "USER")
    headers = auth_headers(admin.id)

    granted = await client.post(
        f"/api/rbac/users/{user.id}/roles", json={"role_name": "TECHNICIAN"}, headers=headers
    )
    assert granted.status_code == 200
    assert granted.json()["is_active"] is True
    assert granted.json()["assigned_by"] == admin.id

    roles = await client.get(f"/api/rbac/users/{user.id}/roles", headers=headers)
    assert roles.json()["roles"] == ["TECHNICIAN", "USER"]

    revoked = await client.delete(f"/api/rbac/users/{user.id}/roles/TECHNICIAN", headers=headers)
    assert revoked.status_code == 200
    assert revoked.json()["is_active"] is False

    roles = await client.get(f"/api/rbac/users/{user.id}/roles", headers=headers)
    assert roles.json()["roles"] == ["USER"]


async def test_grant_requires_users_manage(client, seeded_db, make_user, auth_headers):
    tech = await make_user("tech@example.com", "TECHNICIAN")

    response = await client.post(
        f"/api/rbac/users/{tech.id}/roles", json={"role_name": "ADMIN"}, headers=auth_headers(tech.id)
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden: Insufficient permissions"}


async def test_grant_unknown_role(client, seeded_db, make_user, auth_headers):
    admin = await make_user("admin@example.com", "ADMIN")

    response = await client.post(
        f"/api/rbac/users/{admin.id}/roles", json={"role_name": "JANITOR"}, headers=auth_headers(admin.id)
    )

    assert response.status_code == 404
