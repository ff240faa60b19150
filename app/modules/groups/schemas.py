from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.modules.permissions.schemas import AccessLevel


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    color: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    color: Optional[str] = None


class GroupResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupMemberAdd(BaseModel):
    user_id: str


class GroupMemberResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    created_at: Optional[datetime] = None
    profile: Optional[dict] = None

    class Config:
        from_attributes = True


class GroupPermissionResponse(BaseModel):
    id: str
    group_id: str
    app_id: str
    access_level: AccessLevel
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupWithMembersResponse(GroupResponse):
    members: List[GroupMemberResponse] = []
    permissions: List[GroupPermissionResponse] = []
