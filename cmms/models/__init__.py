"""Models package — import all models so metadata.create_all can discover them."""

from cmms.models.user import User
from cmms.models.permission import Permission
from cmms.models.role import Role
from cmms.models.role_permission import RolePermission
from cmms.models.user_role import UserRole

__all__ = ["User", "Permission", "Role", "RolePermission", "UserRole"]
