from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.applications.schemas import (
    ApplicationCreate, ApplicationUpdate, ApplicationResponse, ApplicationReorder
)
from app.modules.applications.service import ApplicationService
from app.modules.permissions.schemas import AppAccessStats
from app.modules.permissions.service import PermissionService
from app.core.dependencies import require_admin, get_active_user
from app.core.errors import not_found
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/applications", tags=["applications"])


def get_application_service(supabase: Client = Depends(get_supabase)) -> ApplicationService:
    return ApplicationService(supabase)


def get_permission_service(supabase: Client = Depends(get_supabase)) -> PermissionService:
    return PermissionService(supabase)


@router.get("", response_model=List[ApplicationResponse])
async def list_applications(
    active_only: bool = False,
    user_data: Dict = Depends(get_active_user),
    service: ApplicationService = Depends(get_application_service)
):
    """List the application catalog ordered by display_order"""
    return service.list_applications(active_only=active_only)


@router.post("", response_model=ApplicationResponse, status_code=201)
async def create_application(
    app_data: ApplicationCreate,
    user_data: Dict = Depends(require_admin),
    service: ApplicationService = Depends(get_application_service)
):
    """Create a new application (admin)"""
    return service.create_application(app_data)


@router.put("/reorder", response_model=List[ApplicationResponse])
async def reorder_applications(
    reorder: ApplicationReorder,
    user_data: Dict = Depends(require_admin),
    service: ApplicationService = Depends(get_application_service)
):
    """Set display_order from the given id order (admin)"""
    return service.reorder_applications(reorder.app_ids)


@router.get("/{app_id}", response_model=ApplicationResponse)
async def get_application(
    app_id: str,
    user_data: Dict = Depends(get_active_user),
    service: ApplicationService = Depends(get_application_service)
):
    """Get application by ID"""
    app = service.get_application_by_id(app_id)
    if app is None:
        raise not_found("Application")
    return app


@router.put("/{app_id}", response_model=ApplicationResponse)
async def update_application(
    app_id: str,
    app_data: ApplicationUpdate,
    user_data: Dict = Depends(require_admin),
    service: ApplicationService = Depends(get_application_service)
):
    """Update application (admin)"""
    return service.update_application(app_id, app_data)


@router.delete("/{app_id}", status_code=204)
async def delete_application(
    app_id: str,
    user_data: Dict = Depends(require_admin),
    service: ApplicationService = Depends(get_application_service)
):
    """Delete application and its grants (admin)"""
    if not service.delete_application(app_id):
        raise not_found("Application")
    return None


@router.get("/{app_id}/stats", response_model=AppAccessStats)
async def get_app_access_stats(
    app_id: str,
    user_data: Dict = Depends(require_admin),
    service: PermissionService = Depends(get_permission_service)
):
    """Editor / viewer / locked counts over active users (admin)"""
    return service.get_app_access_stats(app_id)
