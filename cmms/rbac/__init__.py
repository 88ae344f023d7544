"""Permission and role catalogs, permission gate and client guard."""

from cmms.rbac.catalog import (
    DEFAULT_CATALOG,
    DEFAULT_ROLES,
    PERMISSIONS,
    PermissionName,
    RBACCatalog,
    RoleDefinition,
    RoleName,
)

__all__ = [
    "DEFAULT_CATALOG", "DEFAULT_ROLES", "PERMISSIONS", "PermissionName",
    "RBACCatalog", "RoleDefinition", "RoleName",
]
