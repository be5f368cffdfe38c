from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rolescout.errors import ConfigurationError

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "RoleScout"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8788
    log_level: str = "INFO"
    cors_origins: str = "http://127.0.0.1:8788"

    database_url: str = "sqlite:///./data/rolescout.db"
    data_dir: Path = Path("./data")

    brave_subscription_token: str = ""
    serpapi_key: str = ""

    imap_host: str = "imap.gmail.com"
    imap_port: int = 993
    imap_user: str = ""
    imap_password: str = ""
    imap_mailbox: str = "INBOX"
    imap_gmail_search: bool = True

    http_timeout_sec: int = 30
    pacing_delay_sec: float = 0.3

    # Sources whose New rows the fetcher will pick up.
    fetch_sources: str = "search_provider,ats_feed,aggregator_api,email_alert"
    real_content_min_chars: int = 500
    min_content_chars: int = 800
    structured_min_chars: int = 100
    location_hint_window: int = 600
    max_fetch_per_run: int = 120

    search_pages: int = 10
    search_count: int = 20
    ats_feed_max_companies: int = 18
    aggregator_max_pages: int = 5
    email_window_days: int = 14
    email_max_threads: int = 20

    score_baseline: int = 50
    comp_floor_k: int = 180
    fit_notes_limit: int = 6

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("search_count")
    @classmethod
    def validate_search_count(cls, value: int) -> int:
        if value < 1 or value > 20:
            raise ValueError("search_count must be between 1 and 20")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def fetch_source_set(self) -> set[str]:
        return {item.strip() for item in self.fetch_sources.split(",") if item.strip()}

    def require(self, field_name: str) -> str:
        value = getattr(self, field_name)
        if not value:
            raise ConfigurationError(f"missing required setting {field_name.upper()}")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
