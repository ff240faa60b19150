from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupWithMembersResponse,
    GroupMemberAdd, GroupMemberResponse, GroupPermissionResponse
)
from app.modules.groups.service import GroupService
from app.modules.applications.service import ApplicationService
from app.modules.permissions.schemas import PermissionGrant
from app.core.dependencies import require_admin
from app.core.errors import not_found
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group"""
    return service.create_group(group_data)


@router.get("", response_model=List[GroupResponse])
async def list_groups(
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """List all groups"""
    return service.list_groups()


@router.get("/{group_id}", response_model=GroupWithMembersResponse)
async def get_group(
    group_id: str,
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """Get group with its members and permissions"""
    group = service.get_group_details(group_id)
    if group is None:
        raise not_found("Group")
    return group


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """Update group"""
    return service.update_group(group_id, group_data)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """Delete group; members lose the access it granted"""
    if not service.delete_group(group_id):
        raise not_found("Group")
    return None


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
async def list_members(
    group_id: str,
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """List all members of a group"""
    return service.list_members(group_id)


@router.post("/{group_id}/members", response_model=GroupMemberResponse, status_code=201)
async def add_member(
    group_id: str,
    member_data: GroupMemberAdd,
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """Add a member to the group (no-op for an existing member)"""
    return service.add_member(group_id, member_data.user_id)


@router.delete("/{group_id}/members/{user_id}", status_code=204)
async def remove_member(
    group_id: str,
    user_id: str,
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """Remove a member from the group (no-op for a non-member)"""
    service.remove_member(group_id, user_id)
    return None


@router.get("/{group_id}/permissions", response_model=List[GroupPermissionResponse])
async def list_group_permissions(
    group_id: str,
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """Access levels the group grants its members"""
    return service.list_group_permissions(group_id)


@router.put("/{group_id}/permissions/{app_id}", response_model=GroupPermissionResponse)
async def set_group_permission(
    group_id: str,
    app_id: str,
    grant: PermissionGrant,
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Create or replace the group's access level for an application"""
    if ApplicationService(supabase).get_application_by_id(app_id) is None:
        raise not_found("Application")
    return service.set_group_permission(group_id, app_id, grant.access_level, granted_by=user_data["id"])


@router.delete("/{group_id}/permissions/{app_id}", status_code=204)
async def remove_group_permission(
    group_id: str,
    app_id: str,
    user_data: Dict = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """Remove the group's grant for an application"""
    service.remove_group_permission(group_id, app_id)
    return None
