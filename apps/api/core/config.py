"""
Application settings.

Everything configurable comes from the environment (or a local .env file)
and is validated once at import time. Import `settings`, never os.environ.
"""
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

MIN_SECRET_KEY_LENGTH = 32


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # --- Database -----------------------------------------------------------
    # A full DATABASE_URL (tests use sqlite://) overrides the POSTGRES_* parts.
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="agent_training")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)

    # --- Redis: cache, rate limiting, Celery broker ---------------------------
    REDIS_URL: str = Field(default="redis://redis:6379/0")
    CELERY_BROKER_URL: str = Field(default="redis://redis:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://redis:6379/0")
    CACHE_TTL_DEFAULT: int = Field(default=300)
    CACHE_TTL_USER_STATS: int = Field(default=600)
    CACHE_TTL_TEAM_OVERVIEW: int = Field(default=300)

    # --- Auth ---------------------------------------------------------------
    # Bearer tokens are issued upstream; this service only verifies them.
    SECRET_KEY: str = Field(default=...)

    # --- LLM ----------------------------------------------------------------
    # Without a key, evaluation and client role-play use their fixed fallbacks.
    OPENAI_API_KEY: Optional[str] = Field(default=None)
    LLM_MODEL: str = Field(default="gpt-4o")
    LLM_EVALUATION_MODEL: str = Field(default="gpt-4o")
    LLM_TIMEOUT_S: int = Field(default=30)
    CLIENT_RESPONSE_LANGUAGE: str = Field(default="Paraguayan Spanish")

    # --- HTTP ---------------------------------------------------------------
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)
    CORS_ORIGINS: Optional[str] = Field(default=None)  # comma-separated
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    RATE_LIMIT_PER_MINUTE: int = Field(default=60)

    # --- Observability ------------------------------------------------------
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: Literal["json", "text"] = Field(default="json")
    SENTRY_DSN: Optional[str] = Field(default=None)
    SENTRY_TRACES_SAMPLE_RATE: float = Field(default=0.1, ge=0.0, le=1.0)

    @field_validator("SECRET_KEY")
    @classmethod
    def _secret_key_length(cls, value: str) -> str:
        if len(value) < MIN_SECRET_KEY_LENGTH:
            raise ValueError(
                f"SECRET_KEY must be at least {MIN_SECRET_KEY_LENGTH} characters. "
                "Generate with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
            )
        return value

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def cors_origins(self) -> List[str]:
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
