"""Permission gate for API routes.

``RequirePermission`` follows the ``RequireRole`` dependency pattern: an
instance is configured with the requirement and passed to ``Depends``.
Rejections are raised as ``AccessDenied`` and rendered by the application as
``{"error": ...}`` with status 401 or 403.
"""

from typing import Iterable, Optional

from fastapi import Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from cmms.core.exceptions import AccessDenied
from cmms.core.security import get_optional_user_id
from cmms.db.session import get_db
from cmms.services.rbac_service import rbac_service

MATCH_ALL = "all"
MATCH_ANY = "any"


class RequirePermission:
    """Dependency that checks the session user holds the given permissions."""

    def __init__(self, permissions: Iterable, match: str = MATCH_ALL):
        if match not in (MATCH_ALL, MATCH_ANY):
            raise ValueError(f"match must be '{MATCH_ALL}' or '{MATCH_ANY}'")
        if isinstance(permissions, str):
            raise TypeError("permissions must be a list of names, not a single string")
        self.permissions = tuple(str(p) for p in permissions)
        self.match = match

    def __repr__(self):
        return f"RequirePermission({list(self.permissions)!r}, match={self.match!r})"

    async def check(self, db: AsyncSession, user_id: Optional[str]) -> str:
        """Return ``user_id`` if allowed.

        Raises:
            AccessDenied: 401 without a user, 403 when the check fails.
        """
        if not user_id:
            raise AccessDenied.unauthenticated()
        if self.match == MATCH_ANY:
            allowed = await rbac_service.has_any_permission(db, user_id, self.permissions)
        else:
            allowed = await rbac_service.has_all_permissions(db, user_id, self.permissions)
        if not allowed:
            raise AccessDenied.forbidden()
        return user_id

    async def evaluate(self, db: AsyncSession, user_id: Optional[str]) -> Optional[JSONResponse]:
        """Pass/reject signal for handlers: None to proceed, else the error response."""
        try:
            await self.check(db, user_id)
        except AccessDenied as exc:
            return access_denied_response(exc)
        return None

    async def __call__(
        self,
        db: AsyncSession = Depends(get_db),
        user_id: Optional[str] = Depends(get_optional_user_id),
    ) -> str:
        return await self.check(db, user_id)


def access_denied_response(exc: AccessDenied) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def require_permission(permission) -> RequirePermission:
    return RequirePermission([permission])


def require_any_permission(permissions: Iterable) -> RequirePermission:
    return RequirePermission(permissions, match=MATCH_ANY)


def require_all_permissions(permissions: Iterable) -> RequirePermission:
    return RequirePermission(permissions, match=MATCH_ALL)


async def require_authenticated(
    user_id: Optional[str] = Depends(get_optional_user_id),
) -> str:
    """Session user id; 401 without one. No permission is checked."""
    if not user_id:
        raise AccessDenied.unauthenticated()
    return user_id
