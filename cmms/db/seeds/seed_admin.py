"""Seed the administrator account from env vars."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cmms.core.config import settings
from cmms.core.exceptions import ResourceNotFoundError
from cmms.models.user import User
from cmms.rbac.catalog import RoleName
from cmms.services.rbac_service import rbac_service

logger = logging.getLogger("cmms.rbac")


async def seed_admin(db: AsyncSession, email: Optional[str] = None) -> Optional[User]:
    """Create the admin user if missing and make sure it holds ``ADMIN``."""
    email = email or settings.ADMIN_EMAIL
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if not user:
        user = User(email=email, full_name="Administrator", is_active=True)
        db.add(user)
        await db.commit()
        logger.info("Created admin user: %s", email)

    try:
        await rbac_service.assign_role(db, user.id, RoleName.ADMIN, assigned_by=settings.RBAC_SYSTEM_ACTOR_ID)
    except ResourceNotFoundError:
        logger.warning("ADMIN role not found. Run initialize_rbac first.")
        return None
    return user
