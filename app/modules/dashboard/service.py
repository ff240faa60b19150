"""
Access resolution for the dashboard.

The ``get_user_apps`` procedure is the authority. When it cannot be reached
in time the dashboard still gets an answer: every application locked
(safe deny). Without any backend configuration the hub runs ungated on the
demo catalog.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from supabase import Client

from app.config import settings
from app.core.errors import backend_error
from app.data.demo_apps import DEMO_APPS
from app.modules.permissions import resolver
from app.modules.permissions.schemas import (
    AccessLevel, PermissionSource, ResolvedApp, UserAppsResponse
)
from app.modules.permissions.service import PermissionService

logger = logging.getLogger(__name__)


def parse_resolved_row(row: Dict[str, Any]) -> ResolvedApp:
    """ResolvedApp from a get_user_apps row. Unknown levels are treated as locked."""
    level = resolver.parse_access_level(row.get("access_level")) or AccessLevel.LOCKED
    try:
        source = PermissionSource(row.get("permission_source"))
    except ValueError:
        source = PermissionSource.DEFAULT
    is_active = bool(row.get("app_is_active", True))
    if not is_active:
        level, source = AccessLevel.LOCKED, PermissionSource.DEFAULT
    return ResolvedApp(
        app_id=row["app_id"],
        app_name=row["app_name"],
        app_url=row.get("app_url"),
        app_description=row.get("app_description"),
        app_icon=row.get("app_icon"),
        app_color=row.get("app_color"),
        app_category=row.get("app_category"),
        app_is_active=is_active,
        app_is_public=bool(row.get("app_is_public", False)),
        app_display_order=row.get("app_display_order") or 0,
        access_level=level,
        permission_source=source,
    )


class AccessResolutionService:
    def __init__(self, supabase: Optional[Client], timeout: Optional[float] = None):
        self.supabase = supabase
        self.timeout = settings.resolver_timeout_seconds if timeout is None else timeout

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        # supabase-py is blocking; run it off the event loop and bound it
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.timeout)

    def _fetch_user_apps(self, user_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.rpc(settings.user_apps_rpc, {"p_user_id": user_id}).execute()
        return result.data or []

    def _fetch_catalog(self) -> List[Dict[str, Any]]:
        result = self.supabase.table("applications")\
            .select("*")\
            .order("display_order")\
            .execute()
        return result.data or []

    async def resolve_user_apps(self, user_id: Optional[str]) -> UserAppsResponse:
        """Applications with the caller's effective access. Never raises."""
        if self.supabase is None:
            logger.warning("Supabase not configured: serving the demo catalog without access control")
            return UserAppsResponse(user_id=user_id, mode="unconfigured", apps=resolver.open_access(DEMO_APPS))

        if not user_id:
            logger.warning("resolve_user_apps called without user_id, denying every application")
            return await self._safe_deny(user_id)

        try:
            rows = await self._call(self._fetch_user_apps, user_id)
            apps = [parse_resolved_row(row) for row in rows]
            apps.sort(key=lambda a: (a.app_display_order, a.app_name))
            return UserAppsResponse(user_id=user_id, mode="authoritative", apps=apps)
        except asyncio.TimeoutError:
            logger.warning(f"{settings.user_apps_rpc} timed out after {self.timeout}s for {user_id}")
        except Exception as e:
            logger.warning(f"{settings.user_apps_rpc} failed for {user_id}: {e}")
        return await self._safe_deny(user_id)

    async def _safe_deny(self, user_id: Optional[str]) -> UserAppsResponse:
        try:
            catalog = await self._call(self._fetch_catalog)
            apps = resolver.safe_deny(catalog)
        except asyncio.TimeoutError:
            logger.warning(f"Application catalog timed out after {self.timeout}s, returning no applications")
            apps = []
        except Exception as e:
            logger.warning(f"Application catalog unavailable, returning no applications: {e}")
            apps = []
        return UserAppsResponse(user_id=user_id, mode="fallback", degraded=True, apps=apps)

    async def preview_user_apps(self, user_id: str) -> UserAppsResponse:
        """Admin view: resolve a user's access here, from the permission tables"""
        try:
            apps = await self._call(PermissionService(self.supabase).resolve_locally, user_id)
        except asyncio.TimeoutError:
            raise backend_error("preview access", TimeoutError(f"timed out after {self.timeout}s"))
        except Exception as e:
            raise backend_error("preview access", e)
        return UserAppsResponse(user_id=user_id, mode="local", apps=apps)
