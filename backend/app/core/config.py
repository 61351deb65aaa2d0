from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Runtime
    ENVIRONMENT: str = "development"  # 'development' | 'test' | 'production'
    APP_NAME: str = "YAAKE"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./yaake.db"

    # JWT Authentication
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Password hashing
    BCRYPT_ROUNDS: int = 12

    # Frontend / CORS
    FRONTEND_URL: str = ""
    BACKEND_CORS_ORIGINS: str = (
        "http://localhost:3000,"
        "http://127.0.0.1:3000"
    )

    # Request security
    DISABLE_CSRF: bool = False
    HTTPS_ENABLED: bool = False
    TRUST_PROXY: bool = False

    # Rate limiting
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    GUEST_REGISTER_RATE_LIMIT: str = "10/15 minutes"

    # Error tracking
    SENTRY_DSN: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_FILE: str = ""

    # Email (SMTP)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = ""
    SMTP_USE_TLS: bool = True

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"

    @property
    def csrf_enabled(self) -> bool:
        # The kill-switch never applies to production deployments.
        return self.is_production or not self.DISABLE_CSRF

    @property
    def cors_origins(self) -> list[str]:
        origins = [
            origin.strip()
            for origin in self.BACKEND_CORS_ORIGINS.split(",")
            if origin.strip()
        ]
        if self.FRONTEND_URL and self.FRONTEND_URL not in origins:
            origins.append(self.FRONTEND_URL.rstrip("/"))
        return origins


settings = Settings()
