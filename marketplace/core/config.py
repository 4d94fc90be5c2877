"""
Application settings.

Grouped pydantic-settings classes read from the environment and `.env`.
Services receive the group they need (usually BookingSettings) through their
constructor.
"""

from typing import List
from functools import lru_cache

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


_ENV_CONFIG = {
    "env_file": ".env",
    "env_file_encoding": "utf-8",
    "case_sensitive": True,
    "extra": "ignore"
}


class DatabaseSettings(BaseSettings):
    """Database configuration settings"""

    DATABASE_URL: str = Field(default="sqlite:///./marketplace.db")

    # Connection pool settings
    DB_POOL_PRE_PING: bool = Field(default=True)
    DB_POOL_RECYCLE: int = Field(default=3600)

    # Advanced settings
    DB_ECHO: bool = Field(default=False)

    model_config = _ENV_CONFIG


class LoggingSettings(BaseSettings):
    """Logging configuration settings"""

    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")
    ENABLE_STRUCTURED_LOGGING: bool = Field(default=True)
    LOG_SQL_QUERIES: bool = Field(default=False)

    model_config = _ENV_CONFIG

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of {valid_levels}')
        return v.upper()

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        if v not in ('json', 'text'):
            raise ValueError('Log format must be "json" or "text"')
        return v


class BookingSettings(BaseSettings):
    """Business rules for bookings, recurrence, waitlists and reminders"""

    # Payments
    PLATFORM_FEE_PERCENT: int = Field(default=10, ge=0, le=100)
    ESCROW_RELEASE_DAYS: int = Field(default=15, ge=0)

    # Discounts (bundles and groups)
    MAX_DISCOUNT_PERCENT: int = Field(default=50, ge=0, le=100)

    # Recurring bookings
    RECURRING_BATCH_SIZE: int = Field(default=4, ge=1)
    RECURRING_DEFAULT_OCCURRENCES: int = Field(default=52, ge=1)
    RECURRING_MAX_OCCURRENCES: int = Field(default=104, ge=1)
    RECURRING_HORIZON_MONTHS: int = Field(default=12, ge=1)
    RECURRING_UPCOMING_PREVIEW: int = Field(default=10, ge=1)

    # Waitlist
    WAITLIST_OPPORTUNITY_BATCH: int = Field(default=5, ge=1)
    WAITLIST_OFFER_HOURS: int = Field(default=24, ge=1)
    WAITLIST_DEFAULT_TIME: str = Field(default="09:00")

    # Reminders
    REMINDER_MAX_RETRIES: int = Field(default=3, ge=0)

    # Listing
    DEFAULT_PAGE_SIZE: int = Field(default=20, ge=1)
    MAX_PAGE_SIZE: int = Field(default=100, ge=1)

    model_config = _ENV_CONFIG


class NotificationSettings(BaseSettings):
    """Channels used for booking notifications and the SMS length cap"""

    NOTIFICATION_DEFAULT_CHANNELS: List[str] = Field(default=["sms", "email"])
    SMS_MAX_LENGTH: int = Field(default=160)

    model_config = _ENV_CONFIG


class APISettings(BaseSettings):
    """API configuration settings"""

    API_V1_PREFIX: str = Field(default="/api/v1")
    API_TITLE: str = Field(default="Marketplace Booking API")
    API_VERSION: str = Field(default="1.0.0")
    CORS_ORIGINS: List[str] = Field(default=["*"])
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    model_config = _ENV_CONFIG


class Settings(BaseSettings):
    """All settings groups plus the deployment environment"""

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()
    booking: BookingSettings = BookingSettings()
    notifications: NotificationSettings = NotificationSettings()
    api: APISettings = APISettings()

    model_config = _ENV_CONFIG

    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v):
        valid_envs = ['development', 'staging', 'production', 'testing']
        if v not in valid_envs:
            raise ValueError(f'Environment must be one of {valid_envs}')
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings"""
    return Settings()


settings = get_settings()
