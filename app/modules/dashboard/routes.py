from fastapi import APIRouter, Depends
from app.database.supabase_client import get_optional_supabase
from app.modules.dashboard.service import AccessResolutionService
from app.modules.permissions.schemas import UserAppsResponse
from app.core.dependencies import get_hub_user
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def get_access_resolution_service(
    supabase: Optional[Client] = Depends(get_optional_supabase)
) -> AccessResolutionService:
    return AccessResolutionService(supabase)


@router.get("/apps", response_model=UserAppsResponse)
async def get_my_apps(
    user_data: Dict = Depends(get_hub_user),
    service: AccessResolutionService = Depends(get_access_resolution_service)
):
    """Applications with the caller's effective access level. Degrades to all-locked instead of failing."""
    return await service.resolve_user_apps(user_data.get("id"))
