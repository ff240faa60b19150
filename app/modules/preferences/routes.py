from fastapi import APIRouter, Depends
from app.database.supabase_client import get_optional_supabase
from app.modules.preferences.schemas import UserPreferences, PreferencesUpdate
from app.modules.preferences.service import PreferenceService
from app.modules.preferences.store import (
    KeyValueStore, InMemoryKeyValueStore, SupabaseKeyValueStore
)
from app.core.dependencies import get_hub_user
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/settings", tags=["settings"])

_memory_store = InMemoryKeyValueStore()


def get_preference_store(supabase: Optional[Client] = Depends(get_optional_supabase)) -> KeyValueStore:
    if supabase is None:
        return _memory_store
    return SupabaseKeyValueStore(supabase)


def get_preference_service(store: KeyValueStore = Depends(get_preference_store)) -> PreferenceService:
    return PreferenceService(store)


@router.get("/me", response_model=UserPreferences)
async def get_my_preferences(
    user_data: Dict = Depends(get_hub_user),
    service: PreferenceService = Depends(get_preference_service)
):
    """Current user's preferences (display name, language, timezone, avatar)"""
    return service.get_preferences(user_data["id"])


@router.put("/me", response_model=UserPreferences)
async def update_my_preferences(
    update: PreferencesUpdate,
    user_data: Dict = Depends(get_hub_user),
    service: PreferenceService = Depends(get_preference_service)
):
    """Update the current user's preferences; omitted fields keep their value"""
    return service.update_preferences(user_data["id"], update)
