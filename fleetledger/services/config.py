"""Application configuration from environment variables."""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./fleetledger.db",
        description="SQLAlchemy connection string (SQLite for development, PostgreSQL in production)",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")
    db_retry_attempts: int = Field(
        default=3, description="Attempts for read queries hitting transient connection errors"
    )
    db_retry_base_delay: float = Field(
        default=1.0, description="Initial backoff delay in seconds, doubled on every retry"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file path")

    # Invoicing
    invoice_number_prefix: str = Field(
        default="AHT-", description="Prefix of generated customer invoice numbers"
    )
    invoice_number_attempts: int = Field(
        default=10, description="Attempts to find an unused generated invoice number"
    )

    # API
    api_title: str = Field(default="FleetLedger API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")


# Global settings instance
settings = Settings()
