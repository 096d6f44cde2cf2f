"""
Request schemas for the identity API.
"""

from identity.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "LogoutRequest",
    "RefreshTokenRequest",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
]
