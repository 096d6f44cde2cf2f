"""
Auth-specific API exceptions.

Authentication failures are deliberately generic so callers cannot tell an
unknown email from a wrong password.
"""

from typing import Optional, Any

from common.utils.exceptions import (
    BadRequestException,
    UnauthorizedException,
    ForbiddenException,
)


class DuplicateEmailException(BadRequestException):
    """Email is already registered."""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, code="DUPLICATE_EMAIL")


class InvalidCredentialsException(UnauthorizedException):
    """Unknown email or wrong password."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class TokenInvalidException(UnauthorizedException):
    """Bearer token failed signature or structure checks."""

    def __init__(self, message: str = "Invalid token", details: Optional[Any] = None):
        super().__init__(message, code="TOKEN_INVALID", details=details)


class TokenExpiredException(UnauthorizedException):
    """Bearer token is past its validity window."""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class WrongTokenTypeException(UnauthorizedException):
    """Token is valid but was issued for the other kind."""

    def __init__(self, message: str = "Invalid token type"):
        super().__init__(message, code="WRONG_TOKEN_TYPE")


class SessionRevokedException(UnauthorizedException):
    """Refresh token is no longer registered on the account."""

    def __init__(self, message: str = "Session has been revoked"):
        super().__init__(message, code="SESSION_REVOKED")


class EmailVerificationRequiredException(ForbiddenException):
    """Operation requires a verified email address."""

    def __init__(self, message: str = "Email verification required"):
        super().__init__(message, code="EMAIL_VERIFICATION_REQUIRED")


class InvalidOrExpiredTokenException(BadRequestException):
    """Password reset token is wrong, expired, or already used."""

    def __init__(self, message: str = "Token is invalid or has expired"):
        super().__init__(message, code="INVALID_OR_EXPIRED_TOKEN")


class InvalidVerificationTokenException(BadRequestException):
    """Email verification token does not match any pending verification."""

    def __init__(self, message: str = "Invalid verification token"):
        super().__init__(message, code="INVALID_TOKEN")
