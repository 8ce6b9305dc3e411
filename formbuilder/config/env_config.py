from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database Configuration
    DB_USER: str = "root"
    DB_PASSWORD: str = "root"
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_NAME: str = "form_builder"
    DATABASE_URL: Optional[str] = None  # Overrides the DB_* parts when set

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"mysql+pymysql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Application
    APP_ENV: str = "production"
    APP_DEBUG: bool = False
    APP_VERSION: str = "1.0.0"

    @property
    def show_debug_info(self) -> bool:
        return self.APP_DEBUG and self.APP_ENV == "development"

    # JWT Configuration
    JWT_SECRET: str = "fallback_secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION: str = "7d"  # seconds, or Nd / Nh / Nm / Ns
    BCRYPT_ROUNDS: int = 12

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    # Rate limiting
    RATE_LIMIT_REQUESTS: int = 1000
    RATE_LIMIT_WINDOW: int = 900  # seconds

    # Payment providers
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_PUBLIC_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    BKASH_APP_KEY: Optional[str] = None
    BKASH_CHECKOUT_URL: str = "https://checkout.pay.bka.sh/v1.2.0-beta/checkout/payment"

    # File storage
    UPLOAD_DIR: str = "uploads/receipts"
    EXPORT_DIR: str = "storage/exports"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Notification webhook (n8n or similar); skipped when empty
    NOTIFICATION_WEBHOOK_URL: Optional[str] = None

    # Frontend URL (used for edit / payment links)
    FRONTEND_URL: str = "http://localhost:3000"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_TO_FILE: bool = True


# Global settings instance
settings = Settings()
