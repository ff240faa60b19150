from enum import Enum
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class AccessLevel(str, Enum):
    EDITOR = "editor"
    VIEWER = "viewer"
    LOCKED = "locked"


class PermissionSource(str, Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"
    DEFAULT = "default"


class PermissionGrant(BaseModel):
    access_level: AccessLevel


class PermissionResponse(BaseModel):
    id: str
    user_id: str
    app_id: str
    access_level: AccessLevel
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ResolvedApp(BaseModel):
    app_id: str
    app_name: str
    app_url: Optional[str] = None
    app_description: Optional[str] = None
    app_icon: Optional[str] = None
    app_color: Optional[str] = None
    app_category: Optional[str] = None
    app_is_active: bool = True
    app_is_public: bool = False
    app_display_order: int = 0
    access_level: AccessLevel
    permission_source: PermissionSource


class UserAppsResponse(BaseModel):
    user_id: Optional[str] = None
    mode: str  # authoritative | fallback | unconfigured | local
    degraded: bool = False
    apps: List[ResolvedApp]


class AppAccessStats(BaseModel):
    app_id: str
    total_users: int
    editors: int
    viewers: int
    locked: int
