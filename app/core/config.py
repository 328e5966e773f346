"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "portal_user"
    postgres_password: str = "password"
    postgres_db: str = "portal_db"

    # Full URL override (tests point this at sqlite://)
    database_url: Optional[str] = None

    db_pool_size: int = 5
    db_max_overflow: int = 10
    sql_echo: bool = False

    # Operation deadlines (milliseconds), enforced with SET LOCAL statement_timeout
    query_timeout_ms: int = 5000
    pull_next_timeout_ms: int = 5000
    rebalance_timeout_ms: int = 30000

    # JWT Auth - tokens are minted by the identity provider with the same secret
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # App
    frontend_url: str = "http://localhost:5173"
    log_level: str = "INFO"
    auto_create_schema: bool = True

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
