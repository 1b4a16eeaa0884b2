"""
Environment configuration for the library desk.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

from typing import Optional
from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application configuration
    APP_NAME: str = Field(default="Library Desk", alias="PROJECT_NAME")
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    TIMEZONE: str = "Asia/Kolkata"

    # Library layout and bookkeeping
    LIBRARY_SEAT_COUNT: int = Field(default=102, ge=1)
    ACTIVITY_LOG_LIMIT: int = Field(default=50, ge=1)
    NOTIFICATION_LOG_LIMIT: int = Field(default=100, ge=1)
    RECEIPT_PREFIX: str = "RCP"
    FEE_VALIDITY_DAYS: int = 30
    EXPIRY_WINDOW_DAYS: int = 7

    # Storage configuration
    STORAGE_BACKEND: str = "file"
    STORAGE_DIR: str = ".library_desk"

    # Redis configuration (STORAGE_BACKEND=redis)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    REDIS_POOL_SIZE: int = 10

    # Student import source
    IMPORT_CSV_URL: str = (
        "https://docs.google.com/spreadsheets/d/e/"
        "2PACX-1vSJYI6zpSzRgAhxtfMr75zAFiJqjuJC-5dRe81l-u5xevVQebaWqPRFmRqTR0r9rm1bXF_nVwg-ZVNY"
        "/pub?output=csv"
    )
    IMPORT_TIMEOUT_SECONDS: Optional[float] = None

    # Messaging
    WHATSAPP_BASE_URL: str = "https://wa.me"
    DEFAULT_COUNTRY_CODE: str = "91"
    CURRENCY_SYMBOL: str = "₹"
    BULK_DISPATCH_DELAY_SECONDS: float = Field(default=1.0, ge=0)
    NOTIFICATION_MAX_ATTEMPTS: int = Field(default=3, ge=1)

    # Display
    DISPLAY_DATETIME_FORMAT: str = "%d/%m/%Y, %I:%M:%S %p"

    # Monitoring and logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    LOG_FILE: Optional[str] = None
    ENABLE_STRUCTURED_LOGGING: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator('STORAGE_BACKEND')
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        """Restrict storage backend to the supported set"""
        v = v.strip().lower()
        if v not in {"file", "memory", "redis"}:
            raise ValueError(f"Unsupported storage backend: {v}")
        return v

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level names"""
        v = v.strip().upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return v

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"json", "text"}:
            raise ValueError(f"Invalid log format: {v}")
        return v

    def get_redis_url(self) -> str:
        """Get Redis URL"""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
