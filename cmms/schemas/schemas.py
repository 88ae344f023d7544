"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


# ---- Permission ----
class PermissionOut(BaseModel):
    id: int
    name: str
    resource: str
    action: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Role ----
class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_default: bool = False
    is_active: bool = True
    user_count: int = 0
    permission_count: int = 0
    created_at: Optional[datetime] = None

class RoleDetailOut(RoleOut):
    permissions: List[PermissionOut] = []


# ---- User roles ----
class RoleAssignRequest(BaseModel):
    role_name: str = Field(..., min_length=1)

class UserRoleOut(BaseModel):
    user_id: str
    role: str
    is_active: bool
    assigned_by: Optional[str] = None
    assigned_at: Optional[datetime] = None

class UserRolesOut(BaseModel):
    user_id: str
    roles: List[str]


# ---- Session authorization ----
class AuthorizationOut(BaseModel):
    user_id: str
    roles: List[str]
    permissions: List[str]
    is_admin: bool


# ---- Common ----
class ErrorResponse(BaseModel):
    error: str
