"""RBAC API router — session permissions, catalog views, role grants."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cmms.db.session import get_db
from cmms.schemas.schemas import (
    AuthorizationOut, PermissionOut, RoleAssignRequest, RoleDetailOut,
    RoleOut, UserRoleOut, UserRolesOut, ErrorResponse,
)
from cmms.services.rbac_service import rbac_service
from cmms.models.permission import Permission
from cmms.models.role import Role
from cmms.models.role_permission import RolePermission
from cmms.models.user_role import UserRole
from cmms.rbac.catalog import PermissionName
from cmms.rbac.enforcement import require_authenticated, require_permission
from cmms.core.exceptions import ResourceNotFoundError

router = APIRouter(
    prefix="/rbac",
    tags=["rbac"],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)

require_system_admin = require_permission(PermissionName.SYSTEM_ADMIN)
require_users_manage = require_permission(PermissionName.USERS_MANAGE)
require_users_read = require_permission(PermissionName.USERS_READ)


def _counts():
    users = (
        select(UserRole.role_id, func.count().label("n"))
        .where(UserRole.is_active.is_(True))
        .group_by(UserRole.role_id)
        .subquery()
    )
    perms = (
        select(RolePermission.role_id, func.count().label("n"))
        .group_by(RolePermission.role_id)
        .subquery()
    )
    return users, perms


def _role_out(role: Role, user_count: int, permission_count: int) -> dict:
    return dict(
        id=role.id,
        name=role.name,
        description=role.description,
        is_default=role.is_default,
        is_active=role.is_active,
        user_count=user_count or 0,
        permission_count=permission_count or 0,
        created_at=role.created_at,
    )


@router.get("/me", response_model=AuthorizationOut)
async def get_my_authorization(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(require_authenticated),
):
    """Roles and permissions of the session user, for client-side guards."""
    permissions = await rbac_service.get_user_permissions(db, user_id)
    roles = await rbac_service.get_user_roles(db, user_id)
    return AuthorizationOut(
        user_id=user_id,
        roles=roles,
        permissions=sorted(permissions),
        is_admin=PermissionName.SYSTEM_ADMIN.value in permissions,
    )


@router.get("/permissions", response_model=list[PermissionOut])
async def list_permissions(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(require_system_admin),
):
    """List all permissions (system admin only)."""
    result = await db.execute(select(Permission).order_by(Permission.resource, Permission.action))
    return [PermissionOut.model_validate(p) for p in result.scalars().all()]


@router.get("/roles", response_model=list[RoleOut])
async def list_roles(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(require_system_admin),
):
    """List roles with active user and permission counts (system admin only)."""
    users, perms = _counts()
    result = await db.execute(
        select(Role, users.c.n, perms.c.n)
        .outerjoin(users, users.c.role_id == Role.id)
        .outerjoin(perms, perms.c.role_id == Role.id)
        .order_by(Role.name)
    )
    return [RoleOut(**_role_out(role, u, p)) for role, u, p in result.all()]


@router.get("/roles/{role_id}", response_model=RoleDetailOut)
async def get_role(
    role_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(require_system_admin),
):
    """Get a role with its permissions (system admin only)."""
    role = await db.get(Role, role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    user_count = (
        await db.execute(
            select(func.count()).select_from(UserRole)
            .where(UserRole.role_id == role.id, UserRole.is_active.is_(True))
        )
    ).scalar_one()
    permissions = sorted((rp.permission for rp in role.role_permissions), key=lambda p: p.name)
    return RoleDetailOut(
        **_role_out(role, user_count, len(permissions)),
        permissions=[PermissionOut.model_validate(p) for p in permissions],
    )


@router.get("/users/{target_user_id}/roles", response_model=UserRolesOut)
async def get_user_roles(
    target_user_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(require_users_read),
):
    """A user's active role names."""
    roles = await rbac_service.get_user_roles(db, target_user_id)
    return UserRolesOut(user_id=target_user_id, roles=roles)


@router.post("/users/{target_user_id}/roles", response_model=UserRoleOut)
async def assign_user_role(
    target_user_id: str,
    body: RoleAssignRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(require_users_manage),
):
    """Grant a role to a user, or reactivate a revoked grant."""
    try:
        user_role = await rbac_service.assign_role(db, target_user_id, body.role_name, assigned_by=user_id)
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return UserRoleOut(
        user_id=user_role.user_id,
        role=user_role.role.name,
        is_active=user_role.is_active,
        assigned_by=user_role.assigned_by,
        assigned_at=user_role.assigned_at,
    )


@router.delete("/users/{target_user_id}/roles/{role_name}", response_model=UserRoleOut)
async def revoke_user_role(
    target_user_id: str,
    role_name: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(require_users_manage),
):
    """Revoke a role. The grant is deactivated, not deleted."""
    try:
        user_role = await rbac_service.revoke_role(db, target_user_id, role_name)
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return UserRoleOut(
        user_id=user_role.user_id,
        role=user_role.role.name,
        is_active=user_role.is_active,
        assigned_by=user_role.assigned_by,
        assigned_at=user_role.assigned_at,
    )
