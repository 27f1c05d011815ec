"""Application configuration using Pydantic settings."""
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Storage: Cloud Datastore when true, Redis otherwise
    USE_GCP: bool = False
    HTTP_PORT: int = 8080

    # OpenAI
    OPENAI_API_KEY: str = Field(alias="OPEN_AI_TOKEN")
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    OPENAI_TEMPERATURE: float = 0.9

    # Telegram
    TELEGRAM_BOT_TOKEN: str
    TELEGRAM_USE_WEBHOOK: bool = False  # webhook or long polling
    TELEGRAM_WEBHOOK_URL: str = ""
    TELEGRAM_DEBUG: bool = False

    # Redis
    REDIS_ADDR: str = "redis:6379"
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0

    # Google Cloud
    GCP_PROJECT_ID: str = "openai-telegram"
    GCP_CREDENTIALS: str = "credentials.json"

    # Sentry
    SENTRY_DSN: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""
    LOG_MAX_BYTES: int = 10_485_760
    LOG_BACKUP_COUNT: int = 5

    @model_validator(mode="after")
    def _check_webhook_url(self) -> "Settings":
        if self.TELEGRAM_USE_WEBHOOK and not self.TELEGRAM_WEBHOOK_URL:
            raise ValueError("TELEGRAM_WEBHOOK_URL is required when TELEGRAM_USE_WEBHOOK is set")
        return self

    @property
    def redis_host(self) -> str:
        """Host part of REDIS_ADDR."""
        host, _, _ = self.REDIS_ADDR.rpartition(":")
        return host or self.REDIS_ADDR

    @property
    def redis_port(self) -> int:
        """Port part of REDIS_ADDR, 6379 when absent."""
        host, _, port = self.REDIS_ADDR.rpartition(":")
        if not host or not port.isdigit():
            return 6379
        return int(port)

    @property
    def webhook_path(self) -> str:
        """URL path Telegram posts updates to."""
        return f"/{self.TELEGRAM_BOT_TOKEN}"

    @property
    def webhook_url(self) -> str:
        """Full webhook URL registered with Telegram."""
        return self.TELEGRAM_WEBHOOK_URL.rstrip("/") + self.webhook_path


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
