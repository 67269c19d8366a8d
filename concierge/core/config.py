# concierge/core/config.py

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import urllib.parse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

OVERLAP_SCOPES = ("active", "unarchived", "all")


class Settings(BaseSettings):
    # Read env from .env; ignore unknown keys so extra lines don't crash startup
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    # Full async URL wins; otherwise Postgres is used when POSTGRES_HOST is set
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str | None = None
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "concierge"
    POSTGRES_USER: str = "concierge"
    POSTGRES_PASSWORD: str = ""
    SQLITE_PATH: str = "./data/concierge.db"

    # --- Logging ---
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    MAX_LOG_LENGTH: int = 200

    # --- Scheduling ---
    BUSINESS_TIMEZONE: str = "UTC"
    OVERLAP_SCOPE: str = "active"

    @field_validator("BUSINESS_TIMEZONE")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {value!r}") from e
        return value

    @field_validator("OVERLAP_SCOPE")
    @classmethod
    def _known_scope(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in OVERLAP_SCOPES:
            raise ValueError(f"OVERLAP_SCOPE must be one of {', '.join(OVERLAP_SCOPES)}")
        return value

    # Async URI (SQLAlchemy engine)
    @property
    def async_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.POSTGRES_HOST:
            pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
            return f"postgresql+asyncpg://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        return f"sqlite+aiosqlite:///{self.SQLITE_PATH}"

    # Sync URI (Alembic)
    @property
    def sync_db_uri(self) -> str:
        uri = self.async_db_uri
        return (
            uri.replace("postgresql+asyncpg://", "postgresql://", 1)
            .replace("sqlite+aiosqlite://", "sqlite://", 1)
        )

    @property
    def business_tz(self) -> ZoneInfo:
        return ZoneInfo(self.BUSINESS_TIMEZONE)

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() in ("production", "prod")


# Singleton
settings = Settings()
