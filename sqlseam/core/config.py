import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Connection settings using Pydantic Settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SQLSEAM_",
        case_sensitive=False,
        extra="ignore",
    )

    # Database settings
    db_dsn: str = Field(default="sqlite::memory:", description="Data source name, e.g. sqlite:/path/app.db or pgsql:host=localhost;dbname=app")
    db_user: str = Field(default="", description="Database user (PostgreSQL)")
    db_password: str = Field(default="", description="Database password (PostgreSQL)")

    # Behaviour
    error_mode: str = Field(default="silent", description="Error mode: silent, warning or exception")
    sqlite_timeout: float = Field(default=5.0, description="SQLite busy timeout in seconds")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")


def get_settings() -> Settings:
    """Read settings from the environment"""
    return Settings()


def configure_logging(settings: Settings) -> None:
    """Configure root logging for applications embedding sqlseam"""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
