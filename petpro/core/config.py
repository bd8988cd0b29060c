"""
Centralized configuration management.

- All secrets (DB credentials, JWT signing key, Redis password) MUST come from
  environment variables or a .env file (never hardcoded for production)
- Centralize configuration in this module
- Do not spread os.getenv calls all over the codebase
- Do not log secrets or environment values
"""
from __future__ import annotations
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "petpro-dev-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    APP_ENV: str = Field(default="development", description="development | test | production")

    # --- Postgres ---
    PG_HOST: str = Field(default="localhost", description="PostgreSQL host")
    PG_PORT: int = Field(default=5432, description="PostgreSQL port")
    PG_DB: str = Field(default="petpro", description="PostgreSQL database name")
    PG_USER: str = Field(default="petpro", description="PostgreSQL user")
    PG_PASSWORD: str = Field(default="petpro", description="PostgreSQL password")
    PG_SSLMODE: str = Field(default="prefer", description="PostgreSQL SSL mode (require/prefer/disable)")
    PG_POOL_MIN: int = Field(default=1, description="Minimum pooled connections")
    PG_POOL_MAX: int = Field(default=10, description="Maximum pooled connections")

    # --- JWT ---
    JWT_SECRET: str = Field(default=DEV_JWT_SECRET, description="JWT signing secret key")
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT signing algorithm")
    JWT_EXP_MIN: int = Field(default=7 * 24 * 60, description="JWT expiration in minutes")

    # --- Passwords ---
    BCRYPT_ROUNDS: int = Field(default=10, ge=4, le=31, description="bcrypt work factor")

    # --- Login rate limit ---
    LOGIN_RATE_LIMIT_MAX: int = Field(default=10, ge=1, description="Login attempts allowed per window")
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: int = Field(default=15 * 60, ge=1, description="Login rate limit window")
    RATE_LIMIT_BACKEND: str = Field(default="memory", description="memory | redis")

    # --- Redis/Valkey ---
    REDIS_HOST: str = Field(default="redis", description="Redis host")
    REDIS_PORT: int = Field(default=6379, description="Redis port")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password")
    REDIS_SSL: str = Field(default="false", description="Redis SSL enabled (true/false)")

    # --- Tenancy ---
    DEFAULT_TRIAL_DAYS: int = Field(default=14, ge=0, description="Trial length when no trial plan exists")

    # --- Logging ---
    LOG_LEVEL: str = Field(default="INFO", description="Logger level")
    LOG_BUFFER_SIZE: int = Field(default=1000, ge=1, description="Log lines kept in memory for /api/logs")

    # --- CORS ---
    CORS_ORIGINS: str = Field(default="*", description="CORS allowed origins (comma-separated)")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _require_secret_in_production(self) -> "Settings":
        if self.APP_ENV.lower() == "production" and (
            not self.JWT_SECRET or self.JWT_SECRET == DEV_JWT_SECRET
        ):
            raise ValueError("JWT_SECRET é obrigatório em produção.")
        return self

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"


settings = Settings()
