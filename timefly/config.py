# timefly/config.py
import os
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application Settings
    APP_NAME: str = "TimeFly Scheduling API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # Database Settings
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite:///./timefly.db")

    # CORS Settings (comma-separated to avoid JSON parsing in env)
    ALLOWED_ORIGINS: str = os.environ.get("ALLOWED_ORIGINS", "*")

    # Middleware settings
    GZIP_MIN_SIZE: int = 500

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    REDIS_URL: Optional[str] = os.environ.get("REDIS_URL", None)

    # Clinic scheduling
    CLINIC_TIMEZONE: str = "Asia/Manila"
    LUNCH_START: str = "12:00"
    LUNCH_END: str = "13:00"
    DEFAULT_MAX_APPOINTMENTS: int = 8
    DEFAULT_CONSULTATION_DURATION: int = 15
    DEFAULT_BUFFER_TIME: int = 15
    QUEUE_MINUTES_PER_PATIENT: int = 30

    # Queue-number collisions are retried this many times before giving up
    BOOKING_MAX_RETRIES: int = 3

    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

@lru_cache()
def get_settings() -> Settings:
    s = Settings()
    # CORS_ORIGINS is accepted as an alias for ALLOWED_ORIGINS
    cors_env = os.environ.get("CORS_ORIGINS")
    if cors_env:
        s.ALLOWED_ORIGINS = cors_env
    return s

settings: Settings = get_settings()
