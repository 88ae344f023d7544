"""Permission model for RBAC."""

from sqlalchemy import Column, Integer, String, DateTime, func

from cmms.db.base import Base


class Permission(Base):
    """An atomic ``resource:action`` capability. Seeded, never mutated."""
    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    resource = Column(String(50), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Permission {self.name}>"
