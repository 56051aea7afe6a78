# educafric/core/config.py
import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from .env"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Database ===
    DATABASE_URL: str = "sqlite+aiosqlite:///./educafric.db"

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure database URL is safe for current environment"""
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env == "production" and ("localhost" in v or v.startswith("sqlite")):
            raise ValueError("🚨 Production environment cannot use a local database!")
        return v

    # === Redis / Celery ===
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # === CORS ===
    ALLOWED_ORIGINS: List[str] = ["*"]

    # === SMTP (Email) ===
    MAIL_SERVER: Optional[str] = None
    MAIL_PORT: int = 587
    MAIL_USERNAME: Optional[str] = None
    MAIL_PASSWORD: Optional[str] = None
    MAIL_FROM: str = "no-reply@educafric.com"
    MAIL_FROM_NAME: str = "EDUCAFRIC"
    MAIL_TLS: bool = True
    MAIL_TIMEOUT: float = 20.0

    # === WhatsApp Business API ===
    WHATSAPP_API_URL: str = "https://graph.facebook.com"
    WHATSAPP_API_VERSION: str = "v18.0"
    WHATSAPP_PHONE_NUMBER_ID: Optional[str] = None
    WHATSAPP_ACCESS_TOKEN: Optional[str] = None
    WHATSAPP_TIMEOUT: float = 10.0

    # === Platform ===
    PLATFORM_URL: str = "https://www.educafric.com"
    SUPPORT_PHONE: str = "+237 656 200 472"
    SUPPORT_EMAIL: str = "support@educafric.com"
    DEFAULT_LANGUAGE: str = "fr"
    CURRENCY: str = "XAF"

    # === Auto-notify per event type ===
    AUTO_NOTIFY_ATTENDANCE: bool = True
    AUTO_NOTIFY_GRADES: bool = True
    AUTO_NOTIFY_PAYMENTS: bool = True
    AUTO_NOTIFY_GEOLOCATION: bool = True
    AUTO_NOTIFY_ONLINE_CLASSES: bool = True
    AUTO_NOTIFY_SUBSCRIPTIONS: bool = True

    # === Channels ===
    CHANNEL_EMAIL_ENABLED: bool = True
    CHANNEL_WHATSAPP_ENABLED: bool = True
    CHANNEL_PWA_ENABLED: bool = True

    # === Notification queue / scheduler ===
    SCHEDULER_BACKEND: str = "inprocess"  # 'inprocess' | 'celery' | 'disabled'
    NOTIFICATION_POLL_INTERVAL_SECONDS: int = 3600
    NOTIFICATION_WARMUP_SECONDS: int = 30
    NOTIFICATION_BATCH_SIZE: int = 50
    NOTIFICATION_SCAN_LIMIT: int = 100
    NOTIFICATION_REMINDER_DAYS: int = 3
    NOTIFICATION_MAX_RETRIES: int = 3
    NOTIFICATION_RETRY_BASE_SECONDS: int = 300
    NOTIFICATION_CLAIM_LEASE_SECONDS: int = 600

    # === System ===
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True
    TIMEZONE: str = "Africa/Douala"


# Create a global settings instance
settings = Settings()
