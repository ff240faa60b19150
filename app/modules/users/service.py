import logging
from supabase import Client
from app.modules.users.schemas import (
    ProfileUpdate, UserResponse, UserWithGroupsResponse, UserRole
)
from app.modules.users.guards import (
    AdminGuardError, check_can_delete, check_can_change_role, check_can_set_active
)
from app.core.errors import backend_error, not_found
from app.core.retry import RetryPolicy
from app.modules.preferences.store import KeyValueStore, SupabaseKeyValueStore
from app.config import settings
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def default_profile_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.profile_retry_max_attempts,
        base_delay=settings.profile_retry_base_delay,
        max_delay=settings.profile_retry_max_delay,
    )


class UserService:
    def __init__(
        self,
        supabase: Client,
        admin_client: Optional[Client] = None,
        settings_store: Optional[KeyValueStore] = None
    ):
        self.supabase = supabase
        # Service-role client for the guarded admin procedures
        self.admin_client = admin_client or supabase
        self.settings_store = settings_store or SupabaseKeyValueStore(supabase)

    def _get_profile_row(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("profiles")\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_user_by_id(self, user_id: str) -> Optional[UserResponse]:
        """Get user profile by ID; None when it does not exist"""
        try:
            row = self._get_profile_row(user_id)
            return UserResponse(**row) if row else None
        except Exception as e:
            raise backend_error("get user", e)

    def list_users(self) -> List[UserResponse]:
        """All profiles ordered by name (admin screens)"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .order("full_name")\
                .execute()
            return [UserResponse(**user) for user in result.data]
        except Exception as e:
            raise backend_error("list users", e)

    def update_profile(self, user_id: str, user_data: ProfileUpdate) -> UserResponse:
        """Update display name / avatar. Role and active flag have their own guarded operations."""
        try:
            update_data = {"updated_at": datetime.now(timezone.utc).isoformat()}
            if user_data.full_name is not None:
                update_data["full_name"] = user_data.full_name.strip()
            if user_data.avatar_url is not None:
                update_data["avatar_url"] = user_data.avatar_url

            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise not_found("User")

            return UserResponse(**result.data[0])
        except Exception as e:
            raise backend_error("update profile", e)

    def ensure_profile(
        self,
        user_id: str,
        email: str,
        full_name: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> Dict[str, Any]:
        """Profile row for a signed-in user.

        The sign-up trigger normally creates it; when it has not shown up
        after the retry policy is exhausted the row is inserted here.
        """
        policy = retry_policy or default_profile_retry_policy()
        try:
            profile = policy.run_until(
                lambda: self._get_profile_row(user_id),
                description=f"profile lookup for {user_id}",
            )
            if profile is not None:
                return profile

            logger.warning(f"Profile for {user_id} not created by trigger, inserting it")
            result = self.supabase.table("profiles").upsert({
                "id": user_id,
                "email": email,
                "full_name": full_name or email.split("@")[0],
                "role": UserRole.USER.value,
                "is_active": True,
            }, on_conflict="id").execute()
            if not result.data:
                raise HTTPException(status_code=502, detail="Failed to create profile")
            return result.data[0]
        except Exception as e:
            raise backend_error("create profile", e)

    def get_user_groups(self, user_id: str) -> List[dict]:
        """Get all groups for a user"""
        try:
            members_result = self.supabase.table("group_members")\
                .select("group_id")\
                .eq("user_id", user_id)\
                .execute()
            group_ids = [m["group_id"] for m in members_result.data or []]
            if not group_ids:
                return []

            result = self.supabase.table("groups")\
                .select("*")\
                .in_("id", group_ids)\
                .order("name")\
                .execute()
            return result.data or []
        except Exception as e:
            raise backend_error("get user groups", e)

    def get_user_with_groups(self, user_id: str) -> Optional[UserWithGroupsResponse]:
        """Get user with all associated groups; None when the user does not exist"""
        user = self.get_user_by_id(user_id)
        if user is None:
            return None
        return UserWithGroupsResponse(**user.model_dump(), groups=self.get_user_groups(user_id))

    def count_active_admins(self) -> int:
        result = self.supabase.table("profiles")\
            .select("id")\
            .eq("role", UserRole.ADMIN.value)\
            .eq("is_active", True)\
            .execute()
        return len(result.data or [])

    def _load_target(self, user_id: str, action: str) -> Dict[str, Any]:
        try:
            target = self._get_profile_row(user_id)
        except Exception as e:
            raise backend_error(action, e)
        if target is None:
            raise not_found("User")
        return target

    def _admin_count(self, action: str) -> int:
        try:
            return self.count_active_admins()
        except Exception as e:
            raise backend_error(action, e)

    def _refuse(self, action: str, error: AdminGuardError) -> HTTPException:
        logger.info(f"Refused to {action}: {error}")
        return HTTPException(status_code=400, detail=str(error))

    def delete_user(self, actor_id: str, user_id: str) -> bool:
        """Delete a user and everything attached to it (memberships, permissions, settings)"""
        action = "delete user"
        target = self._load_target(user_id, action)
        try:
            check_can_delete(actor_id, target, self._admin_count(action))
        except AdminGuardError as e:
            raise self._refuse(action, e)

        try:
            # Authoritative: the procedure re-checks both guards and deletes auth.users
            self.admin_client.rpc("delete_user", {
                "target_user_id": user_id,
                "actor_id": actor_id,
            }).execute()
        except Exception as e:
            raise backend_error(action, e)

        try:
            # No-ops when the foreign keys cascade
            for table in ("group_members", "permissions"):
                self.supabase.table(table)\
                    .delete()\
                    .eq("user_id", user_id)\
                    .execute()
            self.settings_store.delete_all(user_id)
        except Exception as e:
            logger.warning(f"User {user_id} deleted, residual cleanup failed: {e}")
        logger.info(f"User {user_id} deleted by {actor_id}")
        return True

    def update_user_role(self, actor_id: str, user_id: str, role: UserRole) -> UserResponse:
        """Change a user's role; refuses self-demotion and demoting the last admin"""
        action = "update user role"
        target = self._load_target(user_id, action)
        if target.get("role") == role.value:
            return UserResponse(**target)
        try:
            check_can_change_role(actor_id, target, role.value, self._admin_count(action))
        except AdminGuardError as e:
            raise self._refuse(action, e)

        try:
            self.admin_client.rpc("update_user_role", {
                "target_user_id": user_id,
                "new_role": role.value,
                "actor_id": actor_id,
            }).execute()
            updated = self._get_profile_row(user_id)
        except Exception as e:
            raise backend_error(action, e)
        if updated is None:
            raise not_found("User")
        logger.info(f"User {user_id} role set to {role.value} by {actor_id}")
        return UserResponse(**updated)

    def set_user_active(self, actor_id: str, user_id: str, is_active: bool) -> UserResponse:
        """Activate or deactivate a user; refuses deactivating yourself or the last admin"""
        action = "update user status"
        target = self._load_target(user_id, action)
        try:
            check_can_set_active(actor_id, target, is_active, self._admin_count(action))
        except AdminGuardError as e:
            raise self._refuse(action, e)

        try:
            result = self.supabase.table("profiles")\
                .update({
                    "is_active": is_active,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                })\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            raise backend_error(action, e)
        if not result.data:
            raise not_found("User")
        return UserResponse(**result.data[0])
