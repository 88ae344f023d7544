"""RBAC service — permission resolution, access decisions, role assignment.

Resolution and decisions fail closed: any storage error is logged and
treated as "no roles, no permissions". ``resolve_*`` keep the error around
so callers and tests can tell an outage apart from an empty grant.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cmms.core.exceptions import PermissionResolutionError, ResourceNotFoundError
from cmms.db.upsert import insert_ignore
from cmms.models.permission import Permission
from cmms.models.role import Role
from cmms.models.role_permission import RolePermission
from cmms.models.user import User
from cmms.models.user_role import UserRole
from cmms.rbac.catalog import PermissionName

logger = logging.getLogger("cmms.rbac")


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a user's roles or permissions."""

    names: FrozenSet[str] = frozenset()
    error: Optional[PermissionResolutionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __contains__(self, name) -> bool:
        return self.ok and str(name) in self.names


class RBACService:
    """Reads effective roles and permissions and manages user grants."""

    # ---- Resolver ----

    @staticmethod
    async def resolve_permissions(db: AsyncSession, user_id: Optional[str]) -> Resolution:
        """Permission names reachable through the user's active roles."""
        if not user_id:
            return Resolution()
        stmt = (
            select(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(Role, Role.id == RolePermission.role_id)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(
                UserRole.user_id == str(user_id),
                UserRole.is_active.is_(True),
                Role.is_active.is_(True),
            )
            .distinct()
        )
        try:
            result = await db.execute(stmt)
            return Resolution(names=frozenset(result.scalars().all()))
        except Exception as e:
            logger.error("Error fetching permissions for user %s: %s", user_id, e, exc_info=True)
            return Resolution(error=PermissionResolutionError(str(e)))

    @staticmethod
    async def resolve_roles(db: AsyncSession, user_id: Optional[str]) -> Resolution:
        """Names of the user's active roles."""
        if not user_id:
            return Resolution()
        stmt = (
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(
                UserRole.user_id == str(user_id),
                UserRole.is_active.is_(True),
                Role.is_active.is_(True),
            )
        )
        try:
            result = await db.execute(stmt)
            return Resolution(names=frozenset(result.scalars().all()))
        except Exception as e:
            logger.error("Error fetching roles for user %s: %s", user_id, e, exc_info=True)
            return Resolution(error=PermissionResolutionError(str(e)))

    @staticmethod
    async def get_user_permissions(db: AsyncSession, user_id: Optional[str]) -> Set[str]:
        """De-duplicated permission names; empty on unknown user or failure."""
        return set((await RBACService.resolve_permissions(db, user_id)).names)

    @staticmethod
    async def get_user_roles(db: AsyncSession, user_id: Optional[str]) -> List[str]:
        """Active role names, sorted; empty on unknown user or failure."""
        return sorted((await RBACService.resolve_roles(db, user_id)).names)

    # ---- Decisions ----

    @staticmethod
    async def has_permission(db: AsyncSession, user_id: Optional[str], permission) -> bool:
        return permission in await RBACService.resolve_permissions(db, user_id)

    @staticmethod
    async def has_any_permission(
        db: AsyncSession, user_id: Optional[str], permissions: Iterable
    ) -> bool:
        held = await RBACService.resolve_permissions(db, user_id)
        return any(p in held for p in permissions)

    @staticmethod
    async def has_all_permissions(
        db: AsyncSession, user_id: Optional[str], permissions: Iterable
    ) -> bool:
        held = await RBACService.resolve_permissions(db, user_id)
        if not held.ok:
            return False
        return all(p in held for p in permissions)

    @staticmethod
    async def has_role(db: AsyncSession, user_id: Optional[str], role_name) -> bool:
        return role_name in await RBACService.resolve_roles(db, user_id)

    @staticmethod
    async def is_admin(db: AsyncSession, user_id: Optional[str]) -> bool:
        return await RBACService.has_permission(db, user_id, PermissionName.SYSTEM_ADMIN)

    # ---- Grants ----

    @staticmethod
    async def assign_role(
        db: AsyncSession,
        user_id: str,
        role_name: str,
        assigned_by: Optional[str] = None,
    ) -> UserRole:
        """Grant ``role_name`` to a user, reactivating a revoked grant.

        Raises:
            ResourceNotFoundError: If the user or role does not exist.
        """
        user = await db.get(User, str(user_id))
        if not user:
            raise ResourceNotFoundError(f"User {user_id} not found")
        role = await RBACService._get_role(db, role_name)

        await insert_ignore(
            db,
            UserRole,
            {
                "user_id": user.id,
                "role_id": role.id,
                "assigned_by": assigned_by,
                "is_active": True,
            },
            conflict_keys=("user_id", "role_id"),
        )
        user_role = await RBACService._get_user_role(db, user.id, role.id)
        if not user_role.is_active:
            user_role.is_active = True
            user_role.assigned_by = assigned_by
        await db.commit()
        await db.refresh(user_role)
        logger.info("Granted role %s to user %s (by %s)", role.name, user.id, assigned_by)
        return user_role

    @staticmethod
    async def revoke_role(db: AsyncSession, user_id: str, role_name: str) -> UserRole:
        """Deactivate a user's grant of ``role_name``. The row is kept.

        Raises:
            ResourceNotFoundError: If the role or the grant does not exist.
        """
        role = await RBACService._get_role(db, role_name)
        user_role = await RBACService._get_user_role(db, str(user_id), role.id)
        if user_role is None:
            raise ResourceNotFoundError(f"User {user_id} does not hold role '{role.name}'")
        user_role.is_active = False
        await db.commit()
        await db.refresh(user_role)
        logger.info("Revoked role %s from user %s", role.name, user_id)
        return user_role

    @staticmethod
    async def _get_role(db: AsyncSession, role_name: str) -> Role:
        result = await db.execute(select(Role).where(Role.name == str(role_name)))
        role = result.scalar_one_or_none()
        if not role:
            raise ResourceNotFoundError(f"Role '{role_name}' not found")
        return role

    @staticmethod
    async def _get_user_role(db: AsyncSession, user_id: str, role_id: int) -> Optional[UserRole]:
        result = await db.execute(
            select(UserRole)
            .where(UserRole.user_id == user_id, UserRole.role_id == role_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


rbac_service = RBACService()

get_user_permissions = rbac_service.get_user_permissions
get_user_roles = rbac_service.get_user_roles
has_permission = rbac_service.has_permission
has_any_permission = rbac_service.has_any_permission
has_all_permissions = rbac_service.has_all_permissions
has_role = rbac_service.has_role
is_admin = rbac_service.is_admin
