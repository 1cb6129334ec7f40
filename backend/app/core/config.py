# backend/app/core/config.py
"""
Production-ready configuration using pydantic-settings.

Security considerations:
- No hardcoded secrets in production (AES_KEY / SECRET_KEY must be set)
- CORS_ORIGINS parsed from comma-separated env var, never defaults to "*"
- Database URLs normalized for async drivers automatically
- Debug/echo modes disabled in production by default

Besides environment variables and `.env`, values may come from a JSON file
whose path is read from STRONGBOX_CONFIG_FILE (default: configuration.json).
"""
import os
from datetime import timedelta
from functools import lru_cache
from typing import List, Tuple, Type

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_FILE_ENV = "STRONGBOX_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "configuration.json"

_DEV_AES_KEY = "INSECURE_DEV_AES_KEY_CHANGE_ME"
_DEV_SECRET_KEY = "INSECURE_DEV_KEY_CHANGE_IN_PRODUCTION"

SUPPORTED_DATABASE_ENGINES = ("sqlite", "postgres")


class Settings(BaseSettings):
    """
    Strictly typed application settings.

    Priority for loading:
    1. Init kwargs (tests build Settings explicitly)
    2. Environment variables
    3. .env file (via pydantic-settings)
    4. JSON configuration file
    5. Default values (lowest priority, dev-safe only)
    """

    # ─────────────────────────────────────────────────────────────
    # Application metadata
    # ─────────────────────────────────────────────────────────────
    PROJECT_NAME: str = "Strongbox"
    PROJECT_VERSION: str = "1.0.0"
    API_PREFIX: str = ""

    # ─────────────────────────────────────────────────────────────
    # Environment mode
    # Used to toggle behaviors between dev/production safely
    # ─────────────────────────────────────────────────────────────
    ENVIRONMENT: str = "development"

    # ─────────────────────────────────────────────────────────────
    # Security: at-rest encryption key
    # Only the first 16 bytes are used (AES-128)
    # ─────────────────────────────────────────────────────────────
    AES_KEY: str = _DEV_AES_KEY

    # ─────────────────────────────────────────────────────────────
    # Security: bearer token configuration
    # ─────────────────────────────────────────────────────────────
    SECRET_KEY: str = _DEV_SECRET_KEY
    ALGORITHM: str = "HS256"
    TOKEN_TIMEOUT: timedelta = timedelta(hours=1)
    MAX_REFRESH: timedelta = timedelta(hours=1)

    # ─────────────────────────────────────────────────────────────
    # Security: password hashing and login risk
    # ─────────────────────────────────────────────────────────────
    BCRYPT_ROUNDS: int = Field(default=12, ge=10, le=31)
    # Negative means "every attempt in the user's history"
    MAX_UNSUCCESSFUL_ATTEMPTS: int = 3

    # ─────────────────────────────────────────────────────────────
    # Mail (SMTP) configuration
    # ─────────────────────────────────────────────────────────────
    MAIL_HOST: str = "localhost"
    MAIL_PORT: int = 587
    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""
    MAIL_FROM: str = ""
    MAIL_USE_TLS: bool = True
    MAIL_TIMEOUT: int = 10
    MAIL_CHECK_DELIVERABILITY: bool = True

    # ─────────────────────────────────────────────────────────────
    # Database Configuration
    # DATABASE_ENGINE picks the store implementation at start-up.
    # DATABASE_URL is normalized to the matching async driver.
    # ─────────────────────────────────────────────────────────────
    DATABASE_ENGINE: str = "sqlite"
    DATABASE_URL: str = "sqlite+aiosqlite:///./strongbox.db"
    DATABASE_ECHO: bool = False

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """
        Normalize database URLs for async SQLAlchemy compatibility.

        Conversions:
        - postgres://     → postgresql+asyncpg://
        - postgresql://   → postgresql+asyncpg://
        - sqlite:///      → sqlite+aiosqlite:///
        """
        if v is None:
            return "sqlite+aiosqlite:///./strongbox.db"

        url = v.strip()

        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)

        if url.startswith("postgresql://") and "+asyncpg" not in url:
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)

        if url.startswith("sqlite:///") and "+aiosqlite" not in url:
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)

        return url

    @field_validator("DATABASE_ENGINE", mode="before")
    @classmethod
    def normalize_database_engine(cls, v: str) -> str:
        return (v or "").strip().lower()

    # ─────────────────────────────────────────────────────────────
    # File storage (encrypted blobs)
    # ─────────────────────────────────────────────────────────────
    FILES_PATH: str = "files"

    # ─────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # ─────────────────────────────────────────────────────────────
    # CORS Configuration
    # Empty string → empty list (NOT "*" for security)
    # ─────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "http://localhost:5500,http://127.0.0.1:5500,http://localhost:8000,http://127.0.0.1:8000"

    @property
    def BACKEND_CORS_ORIGINS(self) -> List[str]:
        """
        Parse CORS_ORIGINS string into a list of allowed origins.

        Returns:
            List of allowed origin URLs
        """
        if not self.CORS_ORIGINS or not self.CORS_ORIGINS.strip():
            return []

        return [
            origin.strip()
            for origin in self.CORS_ORIGINS.split(",")
            if origin.strip()
        ]

    @field_validator("AES_KEY")
    @classmethod
    def check_aes_key_length(cls, v: str) -> str:
        if len(v.encode("utf-8")) < 16:
            raise ValueError("AES_KEY must be at least 16 bytes long")
        return v

    @model_validator(mode="after")
    def refuse_dev_keys_in_production(self) -> "Settings":
        if self.is_production and (
            self.AES_KEY == _DEV_AES_KEY or self.SECRET_KEY == _DEV_SECRET_KEY
        ):
            raise ValueError(
                "AES_KEY and SECRET_KEY must be set explicitly in production"
            )
        return self

    # ─────────────────────────────────────────────────────────────
    # Pydantic Settings Configuration
    # ─────────────────────────────────────────────────────────────
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        # Extra fields are ignored (prevents config injection)
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        json_settings = JsonConfigSettingsSource(
            settings_cls, json_file=config_file_path()
        )
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            json_settings,
            file_secret_settings,
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database (local development)."""
        return "sqlite" in self.DATABASE_URL.lower()

    @property
    def aes_key_bytes(self) -> bytes:
        return self.AES_KEY.encode("utf-8")[:16]


def config_file_path() -> str:
    return os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance.

    Settings are read once per process; the composition root in
    backend.app.container receives this instance explicitly.
    """
    return Settings()
