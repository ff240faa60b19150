from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.permissions.schemas import (
    PermissionGrant, PermissionResponse, UserAppsResponse
)
from app.modules.permissions.service import PermissionService
from app.modules.applications.service import ApplicationService
from app.modules.users.service import UserService
from app.modules.dashboard.service import AccessResolutionService
from app.core.dependencies import require_admin
from app.core.errors import not_found
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/permissions", tags=["permissions"])


def get_permission_service(supabase: Client = Depends(get_supabase)) -> PermissionService:
    return PermissionService(supabase)


@router.get("", response_model=List[PermissionResponse])
async def list_permissions(
    user_id: Optional[str] = None,
    app_id: Optional[str] = None,
    user_data: Dict = Depends(require_admin),
    service: PermissionService = Depends(get_permission_service)
):
    """List individual permissions, optionally filtered by user or application"""
    return service.list_permissions(user_id=user_id, app_id=app_id)


@router.get("/users/{user_id}", response_model=List[PermissionResponse])
async def list_user_permissions(
    user_id: str,
    user_data: Dict = Depends(require_admin),
    service: PermissionService = Depends(get_permission_service)
):
    """Individual overrides held by a user"""
    return service.list_permissions(user_id=user_id)


@router.get("/users/{user_id}/effective", response_model=UserAppsResponse)
async def preview_user_access(
    user_id: str,
    user_data: Dict = Depends(require_admin),
    supabase: Client = Depends(get_supabase)
):
    """Effective access for every application as the resolver computes it for this user"""
    return await AccessResolutionService(supabase).preview_user_apps(user_id)


@router.put("/users/{user_id}/apps/{app_id}", response_model=PermissionResponse)
async def grant_permission(
    user_id: str,
    app_id: str,
    grant: PermissionGrant,
    user_data: Dict = Depends(require_admin),
    service: PermissionService = Depends(get_permission_service),
    supabase: Client = Depends(get_supabase)
):
    """Create or replace a user's individual access level for an application"""
    if UserService(supabase).get_user_by_id(user_id) is None:
        raise not_found("User")
    if ApplicationService(supabase).get_application_by_id(app_id) is None:
        raise not_found("Application")
    return service.grant(user_id, app_id, grant.access_level, granted_by=user_data["id"])


@router.delete("/users/{user_id}/apps/{app_id}", status_code=204)
async def revoke_permission(
    user_id: str,
    app_id: str,
    user_data: Dict = Depends(require_admin),
    service: PermissionService = Depends(get_permission_service)
):
    """Remove the individual override; group grants or default deny apply again"""
    service.revoke(user_id, app_id)
    return None
