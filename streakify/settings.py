from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Values are read from process environment and optionally from `.env`.
    Times of day are "HH:MM" in `reference_timezone`.
    """

    database_url: str | None = None

    github_graphql_url: str = "https://api.github.com/graphql"
    github_token: str | None = None

    telegram_bot_token: str | None = None
    telegram_api_base_url: str = "https://api.telegram.org"
    telegram_bot_username: str = "streakify_bot"

    resend_api_key: str | None = None
    resend_api_url: str = "https://api.resend.com/emails"
    from_email: str = "Streakify <onboarding@resend.dev>"

    http_timeout_seconds: float = 20.0

    reference_timezone: str = "Asia/Kolkata"
    urgent_cutoff: str = "23:00"
    boundary_sync_time: str = "00:05"
    cleanup_time: str = "03:30"
    sync_window_days: int = 7

    link_code_ttl_minutes: int = 10
    link_code_backend: str = "memory"

    scheduler_enabled: bool = False
    scheduler_max_workers: int = 1

    log_level: str = "INFO"
    sentry_dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    sentry_traces_sample_rate: float = 0.1

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
