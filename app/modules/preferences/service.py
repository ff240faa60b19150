import logging
from pydantic import ValidationError
from app.modules.preferences.schemas import UserPreferences, PreferencesUpdate
from app.modules.preferences.store import KeyValueStore
from app.core.errors import backend_error

logger = logging.getLogger(__name__)


class PreferenceService:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def get_preferences(self, user_id: str) -> UserPreferences:
        """Stored values over defaults; unknown keys and invalid values are ignored"""
        try:
            stored = self.store.get_all(user_id)
        except Exception as e:
            raise backend_error("load preferences", e)
        known = {k: v for k, v in stored.items() if k in UserPreferences.model_fields}
        try:
            return UserPreferences(**known)
        except ValidationError as e:
            logger.warning(f"Discarding invalid stored preferences for {user_id}: {e}")
            return UserPreferences()

    def update_preferences(self, user_id: str, update: PreferencesUpdate) -> UserPreferences:
        values = update.model_dump(mode="json", exclude_none=True)
        if "display_name" in values:
            values["display_name"] = values["display_name"].strip()
        try:
            self.store.set_many(user_id, values)
        except Exception as e:
            raise backend_error("save preferences", e)
        return self.get_preferences(user_id)
