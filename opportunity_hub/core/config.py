"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "opportunity_user"
    postgres_password: str = "password"
    postgres_db: str = "opportunity_db"

    # Full SQLAlchemy URL, wins over the postgres_* parts when set
    database_url: Optional[str] = None

    # MongoDB (empty URI disables the raw posting archive)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "opportunity_docs"
    mongodb_timeout_ms: int = 2000

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Bulk internship ingest
    internship_ingest_api_key: Optional[str] = None
    internship_ingest_user_id: Optional[str] = None

    # Razorpay
    razorpay_key_id: Optional[str] = None
    razorpay_key_secret: Optional[str] = None
    razorpay_base_url: str = "https://api.razorpay.com/v1"

    # App
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    debug: bool = False

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def sqlalchemy_url(self) -> str:
        return self.database_url or self.postgres_url

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
