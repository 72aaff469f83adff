from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # JWT Authentication (shared with the identity provider)
    SECRET_KEY: str

    # Application
    APP_NAME: str = "Agency CRM API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = ""
    CORS_ALLOW_CREDENTIALS: bool = True

    # Tenancy
    TENANT_OWNER_QUOTA: int = 5
    INVITE_CODE_LENGTH: int = 8
    INVITE_CODE_MAX_ATTEMPTS: int = 5
    DEFAULT_SUBSCRIPTION_PLAN: str = "FREE"

    # Contracts
    CONTRACT_ID_PREFIX: str = "C"

    # Audit: only trust X-Forwarded-For behind a reverse proxy
    TRUST_PROXY_HEADERS: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS from comma-separated string"""
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
