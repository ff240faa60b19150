from supabase import Client
from app.modules.applications.schemas import (
    ApplicationCreate, ApplicationUpdate, ApplicationResponse
)
from app.core.errors import backend_error, not_found
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException


class ApplicationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_applications(self, active_only: bool = False) -> List[ApplicationResponse]:
        """List applications ordered by display_order"""
        return [ApplicationResponse(**app) for app in self.list_application_rows(active_only)]

    def list_application_rows(self, active_only: bool = False) -> List[Dict[str, Any]]:
        """Raw application rows, as consumed by the resolver"""
        try:
            query = self.supabase.table("applications").select("*")
            if active_only:
                query = query.eq("is_active", True)
            result = query.order("display_order").execute()
            return result.data or []
        except Exception as e:
            raise backend_error("list applications", e)

    def get_application_by_id(self, app_id: str) -> Optional[ApplicationResponse]:
        """Get application by ID; None when it does not exist"""
        try:
            result = self.supabase.table("applications")\
                .select("*")\
                .eq("id", app_id)\
                .limit(1)\
                .execute()

            if not result.data:
                return None

            return ApplicationResponse(**result.data[0])
        except Exception as e:
            raise backend_error("get application", e)

    def _next_display_order(self) -> int:
        result = self.supabase.table("applications")\
            .select("display_order")\
            .order("display_order", desc=True)\
            .limit(1)\
            .execute()
        if not result.data:
            return 1
        return (result.data[0].get("display_order") or 0) + 1

    def create_application(self, app_data: ApplicationCreate) -> ApplicationResponse:
        """Create a new application"""
        try:
            payload = app_data.model_dump(mode="json")
            if payload.get("display_order") is None:
                payload["display_order"] = self._next_display_order()

            result = self.supabase.table("applications").insert(payload).execute()

            if not result.data:
                raise HTTPException(status_code=502, detail="Failed to create application")

            return ApplicationResponse(**result.data[0])
        except Exception as e:
            raise backend_error("create application", e)

    def update_application(self, app_id: str, app_data: ApplicationUpdate) -> ApplicationResponse:
        """Update application; only fields present in the request are written"""
        try:
            update_data = app_data.model_dump(mode="json", exclude_unset=True)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("applications")\
                .update(update_data)\
                .eq("id", app_id)\
                .execute()

            if not result.data:
                raise not_found("Application")

            return ApplicationResponse(**result.data[0])
        except Exception as e:
            raise backend_error("update application", e)

    def delete_application(self, app_id: str) -> bool:
        """Delete application and every grant that references it"""
        try:
            # Delete individual permissions first
            self.supabase.table("permissions")\
                .delete()\
                .eq("app_id", app_id)\
                .execute()

            # Delete group permissions
            self.supabase.table("group_permissions")\
                .delete()\
                .eq("app_id", app_id)\
                .execute()

            result = self.supabase.table("applications")\
                .delete()\
                .eq("id", app_id)\
                .execute()

            return len(result.data) > 0
        except Exception as e:
            raise backend_error("delete application", e)

    def reorder_applications(self, app_ids: List[str]) -> List[ApplicationResponse]:
        """Assign display_order 1..n following the given order.

        Every id must exist; the new order is written as one upsert so a
        failure leaves the previous order intact.
        """
        if len(set(app_ids)) != len(app_ids):
            raise HTTPException(status_code=400, detail="Duplicate application ids in reorder request")
        try:
            result = self.supabase.table("applications")\
                .select("*")\
                .in_("id", app_ids)\
                .execute()
            rows = {row["id"]: row for row in result.data or []}
            unknown = [app_id for app_id in app_ids if app_id not in rows]
            if unknown:
                raise HTTPException(status_code=404, detail=f"Unknown application ids: {', '.join(unknown)}")

            now = datetime.now(timezone.utc).isoformat()
            self.supabase.table("applications").upsert([
                {**rows[app_id], "display_order": index + 1, "updated_at": now}
                for index, app_id in enumerate(app_ids)
            ], on_conflict="id").execute()
            return self.list_applications()
        except Exception as e:
            raise backend_error("reorder applications", e)
