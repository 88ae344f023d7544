"""Static permission and role catalogs.

Permissions are a closed enum; they become plain strings only when they are
written to or compared against storage. ``ADMIN`` is always granted the
complete catalog, so a permission added here reaches administrators on the
next ``initialize_rbac`` run.
"""

import enum
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Tuple

PERMISSION_PATTERN = re.compile(r"[a-z_]+:[a-z_]+")


class PermissionName(str, enum.Enum):
    # User management
    USERS_READ = "users:read"
    USERS_WRITE = "users:write"
    USERS_DELETE = "users:delete"
    USERS_MANAGE = "users:manage"

    # Site management
    SITES_READ = "sites:read"
    SITES_WRITE = "sites:write"
    SITES_DELETE = "sites:delete"
    SITES_MANAGE = "sites:manage"

    # Building management
    BUILDINGS_READ = "buildings:read"
    BUILDINGS_WRITE = "buildings:write"
    BUILDINGS_DELETE = "buildings:delete"
    BUILDINGS_MANAGE = "buildings:manage"

    # Room management
    ROOMS_READ = "rooms:read"
    ROOMS_WRITE = "rooms:write"
    ROOMS_DELETE = "rooms:delete"
    ROOMS_MANAGE = "rooms:manage"

    # Asset management
    ASSETS_READ = "assets:read"
    ASSETS_WRITE = "assets:write"
    ASSETS_DELETE = "assets:delete"
    ASSETS_MANAGE = "assets:manage"

    # Work order management
    WORK_ORDERS_READ = "work_orders:read"
    WORK_ORDERS_WRITE = "work_orders:write"
    WORK_ORDERS_DELETE = "work_orders:delete"
    WORK_ORDERS_MANAGE = "work_orders:manage"
    WORK_ORDERS_ASSIGN = "work_orders:assign"

    # Tenant management
    TENANTS_READ = "tenants:read"
    TENANTS_WRITE = "tenants:write"
    TENANTS_DELETE = "tenants:delete"
    TENANTS_MANAGE = "tenants:manage"

    # System administration
    SYSTEM_ADMIN = "system:admin"
    SYSTEM_READ = "system:read"

    def __str__(self) -> str:
        return self.value

    @property
    def resource(self) -> str:
        return split_permission(self.value)[0]

    @property
    def action(self) -> str:
        return split_permission(self.value)[1]


PERMISSIONS = PermissionName


class RoleName(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"
    TECHNICIAN = "TECHNICIAN"

    def __str__(self) -> str:
        return self.value


def split_permission(name: str) -> Tuple[str, str]:
    """Split ``resource:action`` on the first colon."""
    resource, _, action = str(name).partition(":")
    return resource, action


def describe_permission(name: str) -> str:
    return f"{str(name).replace('_', ' ')} permission"


_READ_ONLY = (
    PermissionName.SITES_READ,
    PermissionName.BUILDINGS_READ,
    PermissionName.ROOMS_READ,
    PermissionName.ASSETS_READ,
    PermissionName.WORK_ORDERS_READ,
    PermissionName.TENANTS_READ,
)

DEFAULT_ROLES: Mapping[str, Tuple[PermissionName, ...]] = MappingProxyType({
    RoleName.ADMIN.value: tuple(PermissionName),
    RoleName.USER.value: _READ_ONLY,
    RoleName.TECHNICIAN.value: (
        PermissionName.SITES_READ,
        PermissionName.BUILDINGS_READ,
        PermissionName.ROOMS_READ,
        PermissionName.ASSETS_READ,
        PermissionName.ASSETS_WRITE,
        PermissionName.WORK_ORDERS_READ,
        PermissionName.WORK_ORDERS_WRITE,
        PermissionName.TENANTS_READ,
    ),
})


@dataclass(frozen=True)
class RoleDefinition:
    name: str
    permissions: Tuple[str, ...]
    description: str = ""
    is_default: bool = False

    def __post_init__(self):
        # Normalize enum members to their storage strings.
        object.__setattr__(self, "name", str(self.name))
        object.__setattr__(self, "permissions", tuple(str(p) for p in self.permissions))
        if not self.description:
            object.__setattr__(self, "description", f"Default {self.name.lower()} role")


@dataclass(frozen=True)
class RBACCatalog:
    """Permission names plus the roles that bundle them.

    Raises ValueError when a name is malformed, a role references a
    permission outside the catalog, or the default role is not unique.
    """

    permissions: Tuple[str, ...]
    roles: Tuple[RoleDefinition, ...] = field(default_factory=tuple)

    def __post_init__(self):
        names = tuple(dict.fromkeys(str(p) for p in self.permissions))
        object.__setattr__(self, "permissions", names)
        object.__setattr__(self, "roles", tuple(self.roles))

        for name in names:
            if not PERMISSION_PATTERN.fullmatch(name):
                raise ValueError(f"Invalid permission name '{name}', expected resource:action")

        known = set(names)
        role_names = set()
        for role in self.roles:
            if role.name in role_names:
                raise ValueError(f"Duplicate role '{role.name}'")
            role_names.add(role.name)
            unknown = [p for p in role.permissions if p not in known]
            if unknown:
                raise ValueError(f"Role '{role.name}' references unknown permissions: {unknown}")

        defaults = [r.name for r in self.roles if r.is_default]
        if self.roles and len(defaults) != 1:
            raise ValueError(f"Exactly one default role required, found {defaults}")

    @property
    def default_role(self) -> RoleDefinition:
        return next(r for r in self.roles if r.is_default)

    def role(self, name: str) -> RoleDefinition:
        for role in self.roles:
            if role.name == str(name):
                return role
        raise KeyError(name)

    @classmethod
    def build(
        cls,
        permissions: Iterable[str],
        roles: Mapping[str, Iterable[str]],
        default_role: str = RoleName.USER.value,
        superuser_role: str = RoleName.ADMIN.value,
    ) -> "RBACCatalog":
        """Build a catalog where ``superuser_role`` always holds every permission."""
        permissions = tuple(str(p) for p in permissions)
        definitions = []
        for name, granted in roles.items():
            granted = permissions if name == superuser_role else tuple(granted)
            definitions.append(
                RoleDefinition(name=name, permissions=granted, is_default=(name == default_role))
            )
        return cls(permissions=permissions, roles=tuple(definitions))


DEFAULT_CATALOG = RBACCatalog.build(PermissionName, DEFAULT_ROLES)
