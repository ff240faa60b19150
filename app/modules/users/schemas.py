from enum import Enum
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserActiveUpdate(BaseModel):
    is_active: bool


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: UserRole = UserRole.USER
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserWithGroupsResponse(UserResponse):
    groups: List[dict] = []  # Group rows
