"""Application settings for the relay bot."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "relaybot"
    log_level: str = "INFO"

    bot_token: str = ""
    bot_secret: str = ""
    webhook_path: str = "/endpoint"
    admin_uid: str = ""
    telegram_api_base_url: str = "https://api.telegram.org"
    http_timeout_seconds: float = 10.0

    start_msg_url: str = ""
    notification_url: str = ""
    fraud_db_url: str = ""
    enable_notification: bool = False
    notify_interval: int = 3_600_000

    kv_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    captcha_ttl_seconds: int = 300
    verified_ttl_seconds: int = 86_400


@lru_cache
def get_settings() -> Settings:
    return Settings()
