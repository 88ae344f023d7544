# tests/test_catalog.py

"""
Tests for the static permission and role catalogs.
"""

import pytest

from cmms.rbac.catalog import (
    DEFAULT_CATALOG,
    DEFAULT_ROLES,
    PERMISSIONS,
    PERMISSION_PATTERN,
    PermissionName,
    RBACCatalog,
    RoleDefinition,
    RoleName,
    describe_permission,
    split_permission,
)


def test_every_permission_is_resource_action():
    for permission in PermissionName:
        assert PERMISSION_PATTERN.fullmatch(permission.value), permission


def test_split_permission_uses_first_colon():
    assert split_permission("work_orders:assign") == ("work_orders", "assign")
    assert split_permission("a:b:c") == ("a", "b:c")
    assert PERMISSIONS.ASSETS_WRITE.resource == "assets"
    assert PERMISSIONS.ASSETS_WRITE.action == "write"


def test_describe_permission():
    assert describe_permission("work_orders:read") == "work orders:read permission"


def test_admin_role_holds_whole_catalog():
    admin = DEFAULT_CATALOG.role(RoleName.ADMIN)
    assert set(admin.permissions) == {p.value for p in PermissionName}
    assert set(DEFAULT_ROLES["ADMIN"]) == set(PermissionName)


def test_user_role_is_read_only_default():
    user = DEFAULT_CATALOG.role("USER")
    assert user.is_default
    assert all(p.endswith(":read") for p in user.permissions)
    assert "assets:write" not in user.permissions
    assert DEFAULT_CATALOG.default_role.name == "USER"


def test_technician_can_write_assets_and_work_orders():
    technician = DEFAULT_CATALOG.role("TECHNICIAN")
    assert "assets:write" in technician.permissions
    assert "work_orders:write" in technician.permissions
    assert "system:admin" not in technician.permissions
    assert not technician.is_default


def test_role_descriptions_are_generated():
    assert DEFAULT_CATALOG.role("TECHNICIAN").description == "Default technician role"


def test_default_roles_are_read_only():
    with pytest.raises(TypeError):
        DEFAULT_ROLES["GUEST"] = ()


def test_catalog_rejects_malformed_permission():
    with pytest.raises(ValueError):
        RBACCatalog(permissions=("Assets:Read",))


def test_catalog_rejects_unknown_role_permission():
    with pytest.raises(ValueError):
        RBACCatalog(
            permissions=("assets:read",),
            roles=(RoleDefinition("USER", ("assets:write",), is_default=True),),
        )


def test_catalog_requires_single_default_role():
    with pytest.raises(ValueError):
        RBACCatalog(
            permissions=("assets:read",),
            roles=(
                RoleDefinition("USER", ("assets:read",), is_default=True),
                RoleDefinition("GUEST", ("assets:read",), is_default=True),
            ),
        )


def test_build_grants_superuser_everything():
    catalog = RBACCatalog.build(
        ["assets:read", "reports:read"],
        {"ADMIN": [], "USER": ["assets:read"]},
    )
    assert catalog.role("ADMIN").permissions == ("assets:read", "reports:read")
    assert catalog.default_role.name == "USER"


def test_catalog_rejects_trailing_newline():
    with pytest.raises(ValueError):
        RBACCatalog.build(["assets:read\n"], {"ADMIN": [], "USER": []})
