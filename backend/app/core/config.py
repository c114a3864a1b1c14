"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# .env lives at the project root (one level above backend/)
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"
_DEFAULT_CACHE_DIR = Path(__file__).resolve().parents[3] / ".support-cache"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "Support Terminal Backend"
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:1333,http://127.0.0.1:1333"

    # LLM configuration
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_suggestion_model: str = "gpt-4o"

    # Zendesk Support API
    zendesk_subdomain: str = ""
    zendesk_email: str = ""
    zendesk_api_token: str = ""

    # Zendesk Conversations (Sunshine) API, used by the contact form
    zendesk_conversations_url: str = "https://api.smooch.io/v2"
    zendesk_app_id: str = ""
    zendesk_key_id: str = ""
    zendesk_secret: str = ""

    # Intercom
    intercom_access_token: str = ""
    intercom_workspace_id: str = ""
    intercom_subdomain: str = "app"
    intercom_inbox_email: str = ""

    # Resend (contact form email forwarding)
    resend_api_key: str = ""
    resend_from_address: str = "noreply@example.com"

    # Vendor HTTP
    vendor_timeout_seconds: float = 30.0
    intercom_max_rate_limit_retries: int = 3

    # Snapshot caches
    cache_dir: str = str(_DEFAULT_CACHE_DIR)
    zendesk_cache_ttl_seconds: int = 60 * 60
    intercom_cache_ttl_seconds: int = 24 * 60 * 60

    class Config:
        env_file = str(_ENV_FILE)
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
