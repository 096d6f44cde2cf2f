"""
Identity service settings.

Extends the base settings with auth-flow and delivery configuration.
"""

from typing import Optional
from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """Identity-service-specific settings."""

    # ==========================================================================
    # Credential Settings
    # ==========================================================================
    BCRYPT_ROUNDS: int = 12

    # Password reset settings
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60

    # ==========================================================================
    # Profile Cache
    # ==========================================================================
    PROFILE_CACHE_TTL_SECONDS: int = 300

    # ==========================================================================
    # Email Settings (verification and password reset)
    # ==========================================================================
    EMAIL_MODE: str = "console"  # console, smtp, resend
    RESEND_API_KEY: Optional[str] = None
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: str = "noreply@example.com"
    SMTP_FROM_NAME: str = "Identity Service"

    # ==========================================================================
    # Public URL (for email links)
    # ==========================================================================
    BASE_URL: str = "http://localhost:8000"
    API_PREFIX: str = "/api/v1"

    # ==========================================================================
    # Edge Protection
    # ==========================================================================
    # When set, /auth requests must carry a matching X-Gateway-Key header
    GATEWAY_SECRET: Optional[str] = None

    AUTH_RATE_LIMIT_REQUESTS: int = 100
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = 900
    RATE_LIMIT_BACKEND: str = "redis"  # redis, memory

    # Number of reverse proxies in front of the service whose X-Forwarded-For
    # entries are trusted; 0 keys clients on the socket peer address
    TRUSTED_PROXY_COUNT: int = 0


# Global settings instance
settings = Settings()
