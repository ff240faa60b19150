import logging
from supabase import Client
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupWithMembersResponse,
    GroupMemberResponse, GroupPermissionResponse
)
from app.modules.permissions.schemas import AccessLevel
from app.core.errors import backend_error, not_found, is_unique_violation
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def _duplicate_name(name: str) -> HTTPException:
    return HTTPException(status_code=409, detail=f"A group named '{name}' already exists")


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _name_taken(self, name: str, exclude_id: Optional[str] = None) -> bool:
        result = self.supabase.table("groups")\
            .select("id")\
            .eq("name", name)\
            .execute()
        return any(row["id"] != exclude_id for row in result.data or [])

    def create_group(self, group_data: GroupCreate) -> GroupResponse:
        """Create a new group; names are unique"""
        try:
            if self._name_taken(group_data.name):
                raise _duplicate_name(group_data.name)

            result = self.supabase.table("groups").insert({
                "name": group_data.name,
                "description": group_data.description,
                "color": group_data.color,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=502, detail="Failed to create group")

            return GroupResponse(**result.data[0])
        except Exception as e:
            if is_unique_violation(e):
                raise _duplicate_name(group_data.name)
            raise backend_error("create group", e)

    def get_group_by_id(self, group_id: str) -> Optional[GroupResponse]:
        """Get group by ID; None when it does not exist"""
        try:
            result = self.supabase.table("groups")\
                .select("*")\
                .eq("id", group_id)\
                .limit(1)\
                .execute()

            if not result.data:
                return None

            return GroupResponse(**result.data[0])
        except Exception as e:
            raise backend_error("get group", e)

    def _require_group(self, group_id: str) -> GroupResponse:
        group = self.get_group_by_id(group_id)
        if group is None:
            raise not_found("Group")
        return group

    def update_group(self, group_id: str, group_data: GroupUpdate) -> GroupResponse:
        """Update group"""
        try:
            update_data = group_data.model_dump(exclude_unset=True)
            if update_data.get("name") and self._name_taken(update_data["name"], exclude_id=group_id):
                raise _duplicate_name(update_data["name"])
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("groups")\
                .update(update_data)\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise not_found("Group")

            return GroupResponse(**result.data[0])
        except Exception as e:
            if is_unique_violation(e):
                raise _duplicate_name(group_data.name)
            raise backend_error("update group", e)

    def list_groups(self) -> List[GroupResponse]:
        """List all groups ordered by name"""
        try:
            result = self.supabase.table("groups")\
                .select("*")\
                .order("name")\
                .execute()
            return [GroupResponse(**group) for group in result.data]
        except Exception as e:
            raise backend_error("list groups", e)

    def delete_group(self, group_id: str) -> bool:
        """Delete group with its memberships and group permissions"""
        try:
            self.supabase.table("group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .execute()

            self.supabase.table("group_permissions")\
                .delete()\
                .eq("group_id", group_id)\
                .execute()

            result = self.supabase.table("groups")\
                .delete()\
                .eq("id", group_id)\
                .execute()

            return len(result.data) > 0
        except Exception as e:
            raise backend_error("delete group", e)

    def _find_membership(self, group_id: str, user_id: str) -> Optional[dict]:
        result = self.supabase.table("group_members")\
            .select("*")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def add_member(self, group_id: str, user_id: str) -> GroupMemberResponse:
        """Add a user to the group. Adding an existing member returns the existing membership."""
        try:
            self._require_group(group_id)
            profile = self.supabase.table("profiles")\
                .select("id")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
            if not profile.data:
                raise not_found("User")

            existing = self._find_membership(group_id, user_id)
            if existing:
                return GroupMemberResponse(**existing)

            try:
                result = self.supabase.table("group_members").insert({
                    "group_id": group_id,
                    "user_id": user_id,
                }).execute()
            except Exception as e:
                # Concurrent add won the race
                if is_unique_violation(e):
                    existing = self._find_membership(group_id, user_id)
                    if existing:
                        return GroupMemberResponse(**existing)
                raise

            if not result.data:
                raise HTTPException(status_code=502, detail="Failed to add member")

            return GroupMemberResponse(**result.data[0])
        except Exception as e:
            raise backend_error("add user to group", e)

    def remove_member(self, group_id: str, user_id: str) -> bool:
        """Remove a user from the group; removing a non-member is a no-op"""
        try:
            result = self.supabase.table("group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()

            return len(result.data or []) > 0
        except Exception as e:
            raise backend_error("remove user from group", e)

    def list_members(self, group_id: str) -> List[GroupMemberResponse]:
        """List members of a group with their profiles"""
        try:
            result = self.supabase.table("group_members")\
                .select("*")\
                .eq("group_id", group_id)\
                .execute()
            members = result.data or []
            if not members:
                return []

            profiles_result = self.supabase.table("profiles")\
                .select("id, email, full_name, avatar_url, role, is_active")\
                .in_("id", [m["user_id"] for m in members])\
                .execute()
            profiles = {p["id"]: p for p in profiles_result.data or []}

            return [
                GroupMemberResponse(**member, profile=profiles.get(member["user_id"]))
                for member in members
            ]
        except Exception as e:
            raise backend_error("list group members", e)

    def list_group_permissions(self, group_id: str) -> List[GroupPermissionResponse]:
        """Access levels this group grants, one row per application"""
        try:
            result = self.supabase.table("group_permissions")\
                .select("*")\
                .eq("group_id", group_id)\
                .execute()
            return [GroupPermissionResponse(**row) for row in result.data or []]
        except Exception as e:
            raise backend_error("list group permissions", e)

    def set_group_permission(
        self,
        group_id: str,
        app_id: str,
        access_level: AccessLevel,
        granted_by: Optional[str] = None
    ) -> GroupPermissionResponse:
        """Create or replace the group's access level for an application"""
        try:
            self._require_group(group_id)

            result = self.supabase.table("group_permissions").upsert({
                "group_id": group_id,
                "app_id": app_id,
                "access_level": access_level.value,
                "granted_by": granted_by,
                "granted_at": datetime.now(timezone.utc).isoformat(),
            }, on_conflict="group_id,app_id").execute()

            if not result.data:
                raise HTTPException(status_code=502, detail="Failed to set group permission")

            return GroupPermissionResponse(**result.data[0])
        except Exception as e:
            raise backend_error("set group permission", e)

    def remove_group_permission(self, group_id: str, app_id: str) -> bool:
        """Remove the group's grant for an application; no-op when absent"""
        try:
            result = self.supabase.table("group_permissions")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("app_id", app_id)\
                .execute()
            return len(result.data or []) > 0
        except Exception as e:
            raise backend_error("remove group permission", e)

    def get_group_details(self, group_id: str) -> Optional[GroupWithMembersResponse]:
        """Group with its members and group permissions; None when it does not exist"""
        group = self.get_group_by_id(group_id)
        if group is None:
            return None
        return GroupWithMembersResponse(
            **group.model_dump(),
            members=self.list_members(group_id),
            permissions=self.list_group_permissions(group_id),
        )
