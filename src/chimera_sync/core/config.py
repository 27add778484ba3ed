"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Store:
        DATABASE_URL_OVERRIDE (optional), otherwise built from
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_PORT,
        POSTGRES_DB. DB_RETRY_INTERVAL_SECONDS (5).

    Plans:
        FREE_MAX_NOTES (50), FREE_MAX_CHARS_PER_NOTE (20000),
        FREE_MAX_STORAGE_BYTES (1 MiB), PRO_UPGRADE_CODES, SUPPORT_EMAIL.

    AI provider:
        AI_API_KEY, AI_MODEL, AI_FALLBACK_MODELS, AI_BASE_URL,
        AI_TIMEOUT_SECONDS, AI_DISCOVERY_TTL_SECONDS, AI_PRODUCT_NAME.
    """

    PROJECT_NAME: str = "Chimera Sync"
    ENVIRONMENT: str = "local"

    # Database
    DATABASE_URL_OVERRIDE: str | None = None
    POSTGRES_USER: str = "chimera"
    POSTGRES_PASSWORD: str = "chimera"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "chimera"
    DB_RETRY_INTERVAL_SECONDS: float = 5.0

    # Identity
    GOOGLE_CLIENT_ID: str = ""

    # Plans
    FREE_MAX_NOTES: int = 50
    FREE_MAX_CHARS_PER_NOTE: int = 20_000
    FREE_MAX_STORAGE_BYTES: int = 1_048_576
    PRO_UPGRADE_CODES: str = ""
    SUPPORT_EMAIL: str = "support@chimera.local"

    # AI provider
    AI_API_KEY: str = ""
    AI_MODEL: str = "gemini-2.0-flash"
    AI_FALLBACK_MODELS: str = "gemini-1.5-flash,gemini-1.5-pro"
    AI_BASE_URL: str = "https://generativelanguage.googleapis.com"
    AI_TIMEOUT_SECONDS: float = 30.0
    AI_DISCOVERY_TTL_SECONDS: float = 600.0
    AI_PRODUCT_NAME: str = "Chimera AI"

    # HTTP
    CORS_ORIGINS: str = "*"

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async connection string; asyncpg driver unless overridden."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def upgrade_codes(self) -> set[str]:
        return {code.lower() for code in _split_csv(self.PRO_UPGRADE_CODES)}

    @property
    def fallback_models(self) -> list[str]:
        return _split_csv(self.AI_FALLBACK_MODELS)

    @property
    def cors_origins(self) -> list[str]:
        return _split_csv(self.CORS_ORIGINS) or ["*"]


settings = Settings()
