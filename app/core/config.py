from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AnyHttpUrl, field_validator
import secrets
import os
from pathlib import Path

# Ensure the SQLite database directory exists
sqlite_db_path = Path("./sqlite_db")
sqlite_db_path.mkdir(exist_ok=True)

class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "NavExpo Event Registration API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # Server settings
    PORT: int = int(os.environ.get("PORT", 8000))

    # Security
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days
    REFRESH_TOKEN_EXPIRE_DAYS: int = 14
    JWT_SECRET_KEY: str = os.environ.get("JWT_SECRET_KEY", secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = "HS256"
    ALLOW_ADMIN_SELF_REGISTRATION: bool = False

    # Testing
    TESTING: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str] | str:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./sqlite_db/app.db")
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Admission
    STORE_TIMEOUT_SECONDS: float = 10.0  # upper bound for a single admission attempt
    ADMISSION_MAX_RETRIES: int = 3
    ADMISSION_RETRY_BACKOFF_SECONDS: float = 0.05
    ADMISSION_VERIFY_ROSTER: bool = True

    # Documentation
    SHOW_DOCS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", env_file_encoding="utf-8")

# Global instance
settings = Settings()
