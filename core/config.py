from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./garage.db"  # Default to SQLite

    # Auth
    SECRET_KEY: str = "change-this-secret-key"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    LOG_LEVEL: str = "INFO"

    # Outbound email
    SMTP_SERVER: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_TIMEOUT_SECONDS: int = 60
    FROM_EMAIL: Optional[str] = None
    FROM_NAME: str = "Garage Systems"

    # Payment gateway
    RAZORPAY_KEY_SECRET: Optional[str] = None

    # Background cleanup of unverified registrations
    REGISTRATION_TTL_HOURS: int = 24
    CLEANUP_INTERVAL_MINUTES: int = 60

    # Billing
    SEQUENCE_RETRY_ATTEMPTS: int = 3
    DEFAULT_GST_PERCENTAGE: float = 18.0

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
