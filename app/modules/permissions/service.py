import logging
from supabase import Client
from app.modules.permissions.schemas import (
    AccessLevel, PermissionResponse, ResolvedApp, AppAccessStats
)
from app.modules.permissions import resolver
from app.core.errors import backend_error, not_found
from app.config import settings
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class PermissionService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_permissions(
        self,
        user_id: Optional[str] = None,
        app_id: Optional[str] = None
    ) -> List[PermissionResponse]:
        """Individual permissions, optionally filtered by user and/or application"""
        try:
            query = self.supabase.table("permissions").select("*")
            if user_id:
                query = query.eq("user_id", user_id)
            if app_id:
                query = query.eq("app_id", app_id)
            result = query.execute()
            return [PermissionResponse(**row) for row in result.data or []]
        except Exception as e:
            raise backend_error("list permissions", e)

    def get_permission(self, user_id: str, app_id: str) -> Optional[PermissionResponse]:
        """The individual override for (user, app); None when there is none"""
        try:
            result = self.supabase.table("permissions")\
                .select("*")\
                .eq("user_id", user_id)\
                .eq("app_id", app_id)\
                .limit(1)\
                .execute()
            return PermissionResponse(**result.data[0]) if result.data else None
        except Exception as e:
            raise backend_error("get permission", e)

    def grant(
        self,
        user_id: str,
        app_id: str,
        access_level: AccessLevel,
        granted_by: Optional[str] = None
    ) -> PermissionResponse:
        """Create or replace the individual override.

        ``locked`` is stored as an explicit override: it suppresses group
        grants, unlike revoke() which falls back to the group/default rule.
        """
        try:
            result = self.supabase.table("permissions").upsert({
                "user_id": user_id,
                "app_id": app_id,
                "access_level": access_level.value,
                "granted_by": granted_by,
                "granted_at": datetime.now(timezone.utc).isoformat(),
            }, on_conflict="user_id,app_id").execute()

            if not result.data:
                raise HTTPException(status_code=502, detail="Failed to grant permission")

            logger.info(f"Granted {access_level.value} on {app_id} to {user_id} (by {granted_by})")
            return PermissionResponse(**result.data[0])
        except Exception as e:
            raise backend_error("grant permission", e)

    def revoke(self, user_id: str, app_id: str) -> bool:
        """Delete the individual override; no-op when absent"""
        try:
            result = self.supabase.table("permissions")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("app_id", app_id)\
                .execute()
            return len(result.data or []) > 0
        except Exception as e:
            raise backend_error("revoke permission", e)

    def resolve_locally(self, user_id: str) -> List[ResolvedApp]:
        """Effective access for every application, computed here from table snapshots"""
        applications = self.supabase.table("applications").select("*").execute().data or []
        permissions = self.supabase.table("permissions")\
            .select("*")\
            .eq("user_id", user_id)\
            .execute().data or []
        memberships = self.supabase.table("group_members")\
            .select("group_id, user_id")\
            .eq("user_id", user_id)\
            .execute().data or []
        group_ids = [m["group_id"] for m in memberships]
        group_permissions = []
        if group_ids:
            group_permissions = self.supabase.table("group_permissions")\
                .select("*")\
                .in_("group_id", group_ids)\
                .execute().data or []
        return resolver.resolve_user_apps(
            user_id, applications, permissions, memberships, group_permissions
        )

    def get_app_access_stats(self, app_id: str) -> AppAccessStats:
        """How many active users end up editor / viewer / locked on an application"""
        try:
            result = self.supabase.rpc(settings.app_stats_rpc, {"p_app_id": app_id}).execute()
            row = result.data[0] if isinstance(result.data, list) and result.data else result.data
            if isinstance(row, dict):
                return AppAccessStats(app_id=app_id, **{
                    k: int(row.get(k) or 0) for k in ("total_users", "editors", "viewers", "locked")
                })
        except Exception as e:
            logger.warning(f"{settings.app_stats_rpc} unavailable, computing stats locally: {e}")
        try:
            return self._compute_app_access_stats(app_id)
        except Exception as e:
            raise backend_error("get access statistics", e)

    def _compute_app_access_stats(self, app_id: str) -> AppAccessStats:
        app_result = self.supabase.table("applications")\
            .select("*")\
            .eq("id", app_id)\
            .limit(1)\
            .execute()
        if not app_result.data:
            raise not_found("Application")
        application = app_result.data[0]

        users = self.supabase.table("profiles")\
            .select("id")\
            .eq("is_active", True)\
            .execute().data or []
        permissions = self.supabase.table("permissions")\
            .select("user_id, access_level")\
            .eq("app_id", app_id)\
            .execute().data or []
        group_permissions = self.supabase.table("group_permissions")\
            .select("group_id, access_level")\
            .eq("app_id", app_id)\
            .execute().data or []
        memberships: List[Dict[str, Any]] = []
        if group_permissions:
            memberships = self.supabase.table("group_members")\
                .select("group_id, user_id")\
                .in_("group_id", [g["group_id"] for g in group_permissions])\
                .execute().data or []

        individual = {}
        for row in permissions:
            level = resolver.parse_access_level(row.get("access_level"))
            if level is not None:
                individual[row["user_id"]] = level
        group_level = {}
        for row in group_permissions:
            level = resolver.parse_access_level(row.get("access_level"))
            if level is not None:
                group_level[row["group_id"]] = level
        by_user: Dict[str, List[AccessLevel]] = {}
        for m in memberships:
            if m["group_id"] in group_level:
                by_user.setdefault(m["user_id"], []).append(group_level[m["group_id"]])

        counts = {level: 0 for level in AccessLevel}
        for user in users:
            access = resolver.resolve_access(
                application, individual.get(user["id"]), by_user.get(user["id"], [])
            )
            counts[access.access_level] += 1

        return AppAccessStats(
            app_id=app_id,
            total_users=len(users),
            editors=counts[AccessLevel.EDITOR],
            viewers=counts[AccessLevel.VIEWER],
            locked=counts[AccessLevel.LOCKED],
        )
