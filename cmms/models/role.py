"""Role model for RBAC."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship

from cmms.db.base import Base


class Role(Base):
    """Named bundle of permissions assignable to users."""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role_permissions = relationship(
        "RolePermission", back_populates="role", lazy="selectin"
    )
    user_roles = relationship("UserRole", back_populates="role", lazy="noload")

    def __repr__(self):
        return f"<Role {self.name}>"
