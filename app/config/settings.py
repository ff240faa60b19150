from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin RPCs (delete_user, update_user_role)
    db_schema: str = "hub"

    # Remote procedures
    user_apps_rpc: str = "get_user_apps"
    app_stats_rpc: str = "get_app_access_stats"

    # Access resolution
    resolver_timeout_seconds: float = 3.0  # applies to both the RPC and the fallback fetch

    # Profile bootstrap (sign-up trigger may lag behind the first login)
    profile_retry_max_attempts: int = 3
    profile_retry_base_delay: float = 0.5
    profile_retry_max_delay: float = 4.0

    # App
    app_name: str = "apphub-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_backend_configured(self) -> bool:
        """False means no access control at all: local development/demo only."""
        return bool(self.supabase_url and self.supabase_key)

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
