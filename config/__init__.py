"""
Configuration module - Fixed app-specific constants.
"""

from config.email_config import (
    RESEND_API_URL,
    RESEND_TIMEOUT_SECONDS,
    EMAIL_DEFAULTS,
    EMAIL_SUBJECTS,
)

__all__ = ["RESEND_API_URL", "RESEND_TIMEOUT_SECONDS", "EMAIL_DEFAULTS", "EMAIL_SUBJECTS"]
