from datetime import timedelta, tzinfo

from dateutil import tz
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./subscriptions.db"
    LOG_LEVEL: str = "INFO"

    # civil date used for days-until-due; timestamps stay UTC
    TIMEZONE: str = "UTC"
    CURRENCY_SYMBOL: str = "₱"

    NOTIFICATION_SCHEDULER_ENABLED: bool = True
    NOTIFICATION_INTERVAL_SECONDS: int = 3600
    NOTIFICATION_BACKOFF_SECONDS: int = 300
    NOTIFICATION_DEDUP_HOURS: int = 23
    NOTIFICATION_RETENTION_DAYS: int = 30
    NOTIFICATION_DEDUP_PER_RULE: bool = False

    @field_validator("TIMEZONE")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        if not value or tz.gettz(value) is None:
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @property
    def timezone(self) -> tzinfo:
        return tz.gettz(self.TIMEZONE)

    @property
    def notification_interval(self) -> timedelta:
        return timedelta(seconds=self.NOTIFICATION_INTERVAL_SECONDS)

    @property
    def notification_backoff(self) -> timedelta:
        return timedelta(seconds=self.NOTIFICATION_BACKOFF_SECONDS)

    @property
    def dedup_window(self) -> timedelta:
        return timedelta(hours=self.NOTIFICATION_DEDUP_HOURS)

    @property
    def retention_window(self) -> timedelta:
        return timedelta(days=self.NOTIFICATION_RETENTION_DAYS)


settings = Settings()
