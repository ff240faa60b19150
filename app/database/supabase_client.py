from typing import Optional

from fastapi import HTTPException
from supabase import create_client, Client, ClientOptions
from app.config import settings


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def _create(cls, key: str) -> Client:
        return create_client(
            settings.supabase_url,
            key,
            options=ClientOptions(schema=settings.db_schema),
        )

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = cls._create(settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Use for admin RPCs."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = cls._create(settings.supabase_service_role_key)
        return cls._service_client or cls.get_client()

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    if not settings.is_backend_configured:
        raise HTTPException(status_code=503, detail="Backend not configured")
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    if not settings.is_backend_configured:
        raise HTTPException(status_code=503, detail="Backend not configured")
    return SupabaseClient.get_service_client()


def get_optional_supabase() -> Optional[Client]:
    """None when Supabase is not configured (development/demo mode without access control)."""
    if not settings.is_backend_configured:
        return None
    return SupabaseClient.get_client()
