"""
Key-value persistence for per-user preferences.

The service only sees ``KeyValueStore``; deployments use the Supabase
``user_settings`` table, development without a backend keeps values in
process memory.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict

from supabase import Client


class KeyValueStore(ABC):
    @abstractmethod
    def get_all(self, user_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def set_many(self, user_id: str, values: Dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_all(self, user_id: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._data: Dict[str, Dict[str, Any]] = {}

    def get_all(self, user_id: str) -> Dict[str, Any]:
        with self._lock:
            return dict(self._data.get(user_id, {}))

    def set_many(self, user_id: str, values: Dict[str, Any]) -> None:
        with self._lock:
            self._data.setdefault(user_id, {}).update(values)

    def delete_all(self, user_id: str) -> None:
        with self._lock:
            self._data.pop(user_id, None)


class SupabaseKeyValueStore(KeyValueStore):
    def __init__(self, supabase: Client, table: str = "user_settings"):
        self.supabase = supabase
        self.table = table

    def get_all(self, user_id: str) -> Dict[str, Any]:
        result = self.supabase.table(self.table)\
            .select("key, value")\
            .eq("user_id", user_id)\
            .execute()
        return {row["key"]: row["value"] for row in result.data or []}

    def set_many(self, user_id: str, values: Dict[str, Any]) -> None:
        if not values:
            return
        now = datetime.now(timezone.utc).isoformat()
        self.supabase.table(self.table).upsert(
            [{"user_id": user_id, "key": k, "value": v, "updated_at": now} for k, v in values.items()],
            on_conflict="user_id,key",
        ).execute()

    def delete_all(self, user_id: str) -> None:
        self.supabase.table(self.table)\
            .delete()\
            .eq("user_id", user_id)\
            .execute()
