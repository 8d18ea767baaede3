"""Configuration settings for the accounts service."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./accounts.db")

    # Credentials and sessions
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    TOKEN_TTL_DAYS: int = int(os.getenv("TOKEN_TTL_DAYS", "7"))
    TOKEN_CLEANUP_INTERVAL_SECONDS: float = float(os.getenv("TOKEN_CLEANUP_INTERVAL_SECONDS", "3600"))
    TOKEN_CLEANUP_ENABLED: bool = os.getenv("TOKEN_CLEANUP_ENABLED", "true").lower() == "true"

    # Upload
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    PROFILE_DIR: str = os.getenv("PROFILE_DIR", "profile")
    MAX_PROFILE_IMAGE_BYTES: int = int(os.getenv("MAX_PROFILE_IMAGE_BYTES", str(2 * 1024 * 1024)))

    # Mail
    MAIL_SERVER: str = os.getenv("MAIL_SERVER", "localhost")
    MAIL_PORT: int = int(os.getenv("MAIL_PORT", "8587"))
    MAIL_USERNAME: str = os.getenv("MAIL_USERNAME", "")
    MAIL_PASSWORD: str = os.getenv("MAIL_PASSWORD", "")
    MAIL_FROM: str = os.getenv("MAIL_FROM", "info@my-app.com")
    MAIL_FROM_NAME: str = os.getenv("MAIL_FROM_NAME", "My App")
    MAIL_STARTTLS: bool = os.getenv("MAIL_STARTTLS", "false").lower() == "true"
    MAIL_SSL_TLS: bool = os.getenv("MAIL_SSL_TLS", "false").lower() == "true"
    MAIL_TIMEOUT: int = int(os.getenv("MAIL_TIMEOUT", "30"))
    MAIL_SUPPRESS_SEND: bool = os.getenv("MAIL_SUPPRESS_SEND", "false").lower() == "true"
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # Localization
    DEFAULT_LOCALE: str = os.getenv("DEFAULT_LOCALE", "en")

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    @property
    def profile_folder(self) -> str:
        return os.path.join(self.UPLOAD_DIR, self.PROFILE_DIR)

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self.MAIL_SERVER == "localhost" and self.APP_ENV == "production":
            errors.append("MAIL_SERVER is not set - activation and reset mails go to localhost")
        if self.BCRYPT_ROUNDS < 10 and self.APP_ENV == "production":
            errors.append(f"BCRYPT_ROUNDS={self.BCRYPT_ROUNDS} is too cheap for production")
        if self.MAIL_SUPPRESS_SEND:
            errors.append("MAIL_SUPPRESS_SEND is on - no mail leaves this process")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
