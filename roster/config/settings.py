from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_schema: str = "public"
    groups_table: str = "groups"
    memberships_table: str = "group_memberships"

    # Store calls
    store_timeout_seconds: float = 10.0
    store_read_retries: int = 3  # attempts for idempotent calls only (reads, counts, deletes)
    store_page_size: int = 1000  # rows per ranged read; Supabase caps responses at max-rows (1000 by default)

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100

    # Discover / roster sessions
    discover_page_size: int = 50
    roster_session_ttl_seconds: int = 300
    roster_session_max: int = 500

    # App
    app_name: str = "roster-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
