# app/config.py

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Cookie Audit API"
    app_env: str = "development"
    debug: bool = True
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Supabase
    supabase_url: str
    supabase_service_role_key: str

    # Audit matching config
    fuzzy_max_distance: int = 2
    date_tolerance_days: int = 2
    partial_one_field_threshold: float = 60.0
    partial_two_field_threshold: float = 40.0

    # Upload ceiling (rows x orders x cookie types must stay tractable)
    max_audit_rows: int = 2000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
