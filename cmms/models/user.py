"""User model."""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship

from cmms.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Platform user. Profile and credentials are managed elsewhere."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    user_roles = relationship("UserRole", back_populates="user", lazy="noload")
