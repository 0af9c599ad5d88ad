from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "ATK Reorder Intelligence"
    ENVIRONMENT: str = "local"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./atk_insight.db"

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Security
    # ==============================
    API_KEYS: Optional[str] = None
    API_KEY_HEADER: str = "X-API-Key"

    # ==============================
    # Reorder engine
    # ==============================
    DEFAULT_LEAD_TIME_DAYS: int = 7
    RECOMPUTE_WORKERS: int = 4
    DEAD_STOCK_ALERT_VALUE: float = 500_000

    # ==============================
    # WhatsApp (Fonnte-compatible gateway)
    # ==============================
    WHATSAPP_API_URL: Optional[str] = "https://api.fonnte.com/send"
    WHATSAPP_ACCESS_TOKEN: Optional[str] = None
    WHATSAPP_COUNTRY_CODE: str = "62"

    # ==============================
    # Low-stock notifications
    # ==============================
    LOW_STOCK_NOTIFY: bool = False
    ALERT_RECIPIENTS: str = ""

    # ==============================
    # Scheduler
    # ==============================
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_RUN_AFTER: str = "06:00"
    SCHEDULER_POLL_SECONDS: int = 30
    SCHEDULER_HEARTBEAT_SECONDS: int = 30
    SCHEDULER_STALE_SECONDS: int = 900
    SCHEDULER_RETRY_SECONDS: int = 300
    SCHEDULER_MAX_RETRIES: int = 3
    SCHEDULER_TZ: str = "local"

    def alert_recipients(self) -> list[str]:
        return [value.strip() for value in self.ALERT_RECIPIENTS.split(",") if value.strip()]


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
