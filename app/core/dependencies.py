"""
Core dependencies for route protection and admin checks
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase, get_optional_supabase
from app.modules.auth.service import AuthService
from app.config import settings
from supabase import Client
from typing import Optional, Dict, Any
import asyncio
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (profile)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_profile(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """Return the profiles row for user_id, None if missing. Uses request-scoped cache when provided."""
    if cache is not None and "profile" in cache:
        return cache["profile"]
    result = supabase.table("profiles")\
        .select("*")\
        .eq("id", user_id)\
        .limit(1)\
        .execute()
    profile = result.data[0] if result.data else None
    if cache is not None:
        cache["profile"] = profile
    return profile


def is_admin_profile(profile: Optional[Dict[str, Any]]) -> bool:
    return bool(profile) and profile.get("role") == "admin" and profile.get("is_active", True)


def _refuse_if_deactivated(profile: Optional[Dict[str, Any]]) -> None:
    if profile is not None and not profile.get("is_active", True):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated. Contact your administrator."
        )


def get_active_user(
    request: Request,
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> dict:
    """Current user, refused when the profile has been deactivated by an admin"""
    try:
        profile = get_profile(user_data["id"], supabase, _get_request_cache(request))
    except Exception as e:
        logger.error(f"Error getting profile for {user_data['id']}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load profile")
    _refuse_if_deactivated(profile)
    return {**user_data, "profile": profile}


def require_admin(user_data: dict = Depends(get_active_user)) -> dict:
    """Dependency to check that the current user's profile has role admin"""
    if not is_admin_profile(user_data.get("profile")):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required"
        )
    return user_data


optional_security = HTTPBearer(auto_error=False)

# Identity used when no backend is configured (development/demo only)
LOCAL_USER = {"id": "local-user", "email": "local@localhost", "user_metadata": {}, "profile": None}


async def get_hub_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security),
    supabase: Optional[Client] = Depends(get_optional_supabase)
) -> dict:
    """Caller of the dashboard and settings screens; the local user when Supabase is not configured.

    The profile lookup shares the resolver timeout. When it fails or times out
    the caller continues with ``profile=None`` so the dashboard can still
    answer with its safe-deny result; the deactivation check applies only to
    a profile that actually loaded.
    """
    if supabase is None:
        return dict(LOCAL_USER)
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    user_data = await asyncio.to_thread(AuthService(supabase).get_current_user, credentials.credentials)

    user_id = user_data["id"]
    try:
        profile = await asyncio.wait_for(
            asyncio.to_thread(get_profile, user_id, supabase, _get_request_cache(request)),
            timeout=settings.resolver_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(f"Profile lookup for {user_id} timed out after {settings.resolver_timeout_seconds}s, continuing without profile")
        profile = None
    except Exception as e:
        logger.warning(f"Profile lookup for {user_id} failed, continuing without profile: {e}")
        profile = None
    _refuse_if_deactivated(profile)
    return {**user_data, "profile": profile}
