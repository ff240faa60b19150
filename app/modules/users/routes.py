from fastapi import APIRouter, Depends
from pydantic import BaseModel
from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.users.schemas import (
    ProfileUpdate, UserResponse, UserWithGroupsResponse,
    UserRoleUpdate, UserActiveUpdate
)
from app.modules.users.service import UserService
from app.modules.groups.schemas import GroupMemberResponse
from app.modules.groups.service import GroupService
from app.core.dependencies import require_admin, get_active_user
from app.core.errors import not_found
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/users", tags=["users"])


class UserGroupAdd(BaseModel):
    group_id: str


def get_user_service(
    supabase: Client = Depends(get_supabase),
    admin_client: Client = Depends(get_service_supabase)
) -> UserService:
    return UserService(supabase, admin_client=admin_client)


@router.get("", response_model=List[UserResponse])
async def list_users(
    user_data: Dict = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """List all users (admin)"""
    return service.list_users()


@router.put("/me", response_model=UserResponse)
async def update_my_profile(
    user_data_body: ProfileUpdate,
    user_data: Dict = Depends(get_active_user),
    service: UserService = Depends(get_user_service)
):
    """Update the caller's display name and avatar"""
    return service.update_profile(user_data["id"], user_data_body)


@router.get("/{user_id}", response_model=UserWithGroupsResponse)
async def get_user(
    user_id: str,
    user_data: Dict = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """Get user with group memberships (admin)"""
    user = service.get_user_with_groups(user_id)
    if user is None:
        raise not_found("User")
    return user


@router.get("/{user_id}/groups", response_model=List[dict])
async def get_user_groups(
    user_id: str,
    user_data: Dict = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """Get all groups for a user (admin)"""
    return service.get_user_groups(user_id)


@router.post("/{user_id}/groups", response_model=GroupMemberResponse, status_code=201)
async def add_user_to_group(
    user_id: str,
    group_data: UserGroupAdd,
    user_data: Dict = Depends(require_admin),
    supabase: Client = Depends(get_supabase)
):
    """Add user to a group (no-op when already a member)"""
    return GroupService(supabase).add_member(group_data.group_id, user_id)


@router.delete("/{user_id}/groups/{group_id}", status_code=204)
async def remove_user_from_group(
    user_id: str,
    group_id: str,
    user_data: Dict = Depends(require_admin),
    supabase: Client = Depends(get_supabase)
):
    """Remove user from a group (no-op when not a member)"""
    GroupService(supabase).remove_member(group_id, user_id)
    return None


@router.put("/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    role_update: UserRoleUpdate,
    user_data: Dict = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """Change a user's role; refuses self-demotion and demoting the last admin"""
    return service.update_user_role(user_data["id"], user_id, role_update.role)


@router.put("/{user_id}/active", response_model=UserResponse)
async def set_user_active(
    user_id: str,
    active_update: UserActiveUpdate,
    user_data: Dict = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """Activate or deactivate a user"""
    return service.set_user_active(user_data["id"], user_id, active_update.is_active)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    user_data: Dict = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """Delete a user; they lose every group membership and permission"""
    service.delete_user(user_data["id"], user_id)
    return None
