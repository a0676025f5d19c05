# Engine configuration using Pydantic BaseSettings (loads from .env or defaults).

from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # fixed-offset zone, no DST transitions
    OPERATING_TZ: str = "Asia/Singapore"

    MAX_RECURRENCE_OCCURRENCES: int = 1000
    SUMMARY_WINDOW_DAYS: int = 90
    LONGEST_DISRUPTIONS_LIMIT: int = 10

    LINES_CSV: str | None = None
    HOLIDAYS_CSV: str | None = None
    INCIDENTS_CSV: str | None = None
    REPORT_DIR: str = "reports"

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()

def operating_tz() -> ZoneInfo:
    return ZoneInfo(settings.OPERATING_TZ)
