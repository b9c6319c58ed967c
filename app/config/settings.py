import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOCAL_DB = Path(__file__).resolve().parent.parent.parent / "training_log.db"
_DEV_SECRET = "dev-secret-change-me"


def get_database_url() -> str:
    """DATABASE_URL from the environment, else a SQLite file next to the repo."""
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        return db_url
    logger.warning(f"DATABASE_URL not set; using local SQLite file {_LOCAL_DB}")
    return f"sqlite:///{_LOCAL_DB}"


class Settings(BaseSettings):
    database_url: str = Field(default_factory=get_database_url, validation_alias="DATABASE_URL")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str = Field(default="", validation_alias="LOG_FILE")
    auth_secret_key: str = Field(default=_DEV_SECRET, validation_alias="AUTH_SECRET_KEY")
    auth_algorithm: str = Field(default="HS256", validation_alias="AUTH_ALGORITHM")
    auth_token_expire_days: int = Field(default=30, validation_alias="AUTH_TOKEN_EXPIRE_DAYS")
    sessions_max_page_size: int = Field(
        default=500,
        validation_alias="SESSIONS_MAX_PAGE_SIZE",
        description="Upper bound for a single sessions page (limit=0 still returns everything)",
    )
    numbering_lock_enabled: bool = Field(
        default=True,
        validation_alias="NUMBERING_LOCK_ENABLED",
        description="Serialize session renumbering per user",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("sessions_max_page_size")
    @classmethod
    def validate_max_page_size(cls, value: int) -> int:
        """Keep the page size cap positive."""
        if value < 1:
            logger.warning(f"Invalid SESSIONS_MAX_PAGE_SIZE '{value}'. Defaulting to 500.")
            return 500
        return value

    @field_validator("auth_secret_key")
    @classmethod
    def validate_secret_key(cls, value: str) -> str:
        """Warn when the development secret is used in a production-like environment."""
        is_production = bool(os.getenv("RENDER") or os.getenv("RAILWAY_ENVIRONMENT") or os.getenv("DYNO"))
        if is_production and value == _DEV_SECRET:
            logger.error("AUTH_SECRET_KEY is not set in production. Tokens are signed with the development secret.")
        return value


settings = Settings()
