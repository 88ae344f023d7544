"""Seed the permission and role catalogs into the database.

Seeding is additive. Roles, permissions and links that are not in the
catalog are left alone, so hand-curated grants survive a re-run.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cmms.db.upsert import insert_ignore
from cmms.models.permission import Permission
from cmms.models.role import Role
from cmms.models.role_permission import RolePermission
from cmms.models.user import User
from cmms.models.user_role import UserRole
from cmms.rbac.catalog import DEFAULT_CATALOG, RBACCatalog, describe_permission, split_permission

logger = logging.getLogger("cmms.rbac")


async def initialize_rbac(db: AsyncSession, catalog: RBACCatalog = DEFAULT_CATALOG) -> bool:
    """Upsert every catalog permission, role and role-permission link.

    Safe to run on every startup. Returns False (after logging and rolling
    back) if anything fails; a later run picks up where this one stopped.
    """
    try:
        for name in catalog.permissions:
            resource, action = split_permission(name)
            await insert_ignore(
                db,
                Permission,
                {
                    "name": name,
                    "resource": resource,
                    "action": action,
                    "description": describe_permission(name),
                },
                conflict_keys=("name",),
            )

        for definition in catalog.roles:
            await insert_ignore(
                db,
                Role,
                {
                    "name": definition.name,
                    "description": definition.description,
                    "is_default": definition.is_default,
                    "is_active": True,
                },
                conflict_keys=("name",),
            )
            role_id = (
                await db.execute(select(Role.id).where(Role.name == definition.name))
            ).scalar_one()

            for permission_name in definition.permissions:
                permission_id = (
                    await db.execute(select(Permission.id).where(Permission.name == permission_name))
                ).scalar_one_or_none()
                if permission_id is None:
                    continue
                await insert_ignore(
                    db,
                    RolePermission,
                    {"role_id": role_id, "permission_id": permission_id},
                    conflict_keys=("role_id", "permission_id"),
                )

        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error("Error initializing RBAC: %s", e, exc_info=True)
        return False

    logger.info(
        "RBAC system initialized: %d permissions, %d roles",
        len(catalog.permissions),
        len(catalog.roles),
    )
    return True


async def backfill_default_roles(
    db: AsyncSession,
    system_actor_id: Optional[str] = None,
    catalog: RBACCatalog = DEFAULT_CATALOG,
) -> List[User]:
    """Grant the default role to every user that has no role rows at all.

    Users with only revoked grants are not touched. The grant is attributed
    to ``system_actor_id`` when given, otherwise to the user itself.
    """
    role = (
        await db.execute(select(Role).where(Role.name == catalog.default_role.name))
    ).scalar_one_or_none()
    if not role:
        logger.warning("Default role '%s' not found. Run initialize_rbac first.", catalog.default_role.name)
        return []

    has_role_rows = select(UserRole.id).where(UserRole.user_id == User.id).exists()
    users = (await db.execute(select(User).where(~has_role_rows).order_by(User.email))).scalars().all()

    for user in users:
        await insert_ignore(
            db,
            UserRole,
            {
                "user_id": user.id,
                "role_id": role.id,
                "assigned_by": system_actor_id or user.id,
                "is_active": True,
            },
            conflict_keys=("user_id", "role_id"),
        )
        logger.info("Assigned '%s' role to %s", role.name, user.email)

    await db.commit()
    return list(users)


async def summarize_rbac(db: AsyncSession) -> Dict[str, Any]:
    """Roles with their permission counts, plus the permission total."""
    counts = (
        select(RolePermission.role_id, func.count().label("permission_count"))
        .group_by(RolePermission.role_id)
        .subquery()
    )
    rows = (
        await db.execute(
            select(Role.name, Role.description, func.coalesce(counts.c.permission_count, 0))
            .outerjoin(counts, counts.c.role_id == Role.id)
            .order_by(Role.name)
        )
    ).all()
    total = (await db.execute(select(func.count()).select_from(Permission))).scalar_one()
    return {
        "roles": [
            {"name": name, "description": description, "permission_count": count}
            for name, description, count in rows
        ],
        "permission_count": total,
    }
