"""
Custom HTTP exceptions with error codes.

Services raise these directly; an app-level handler renders them with
``to_response()`` into the ``{"status": "fail", ...}`` envelope.

Example:
    from common.utils import NotFoundException

    async def forgot_password(email: str):
        account = await users.find_one({"email": email})
        if not account:
            raise NotFoundException("There is no user with that email address")

    # Rendered as:
    # 404 {"status": "fail", "message": "There is no user ...", "code": "NOT_FOUND"}
"""

from typing import Optional, Any, Dict
from fastapi import HTTPException

from common.utils.responses import error_response


class APIException(HTTPException):
    """
    Base API exception with error code support.

    ``message``, ``code`` and ``details`` are kept as attributes so the
    envelope can be rebuilt without unpacking ``detail``.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Create an API exception.

        Args:
            status_code: HTTP status code
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
            headers: Optional response headers
        """
        self.message = message
        self.code = code
        self.details = details

        super().__init__(
            status_code=status_code,
            detail=error_response(message, code=code, details=details),
            headers=headers,
        )

    def to_response(self) -> Dict[str, Any]:
        """Render the failure envelope for this exception."""
        return error_response(self.message, code=self.code, details=self.details)


class BadRequestException(APIException):
    """400 Bad Request - Invalid input or a rejected one-time token."""

    def __init__(
        self,
        message: str = "Bad request",
        code: str = "BAD_REQUEST",
        details: Optional[Any] = None,
    ):
        super().__init__(400, message, code, details)


class UnauthorizedException(APIException):
    """401 Unauthorized - Missing, invalid or revoked credentials."""

    def __init__(
        self,
        message: str = "Unauthorized",
        code: str = "UNAUTHORIZED",
        details: Optional[Any] = None,
    ):
        super().__init__(401, message, code, details)


class ForbiddenException(APIException):
    """403 Forbidden - Authenticated but not allowed (e.g. unverified email)."""

    def __init__(
        self,
        message: str = "Forbidden",
        code: str = "FORBIDDEN",
        details: Optional[Any] = None,
    ):
        super().__init__(403, message, code, details)


class NotFoundException(APIException):
    """404 Not Found - Resource doesn't exist."""

    def __init__(
        self,
        message: str = "Not found",
        code: str = "NOT_FOUND",
        details: Optional[Any] = None,
    ):
        super().__init__(404, message, code, details)


class ValidationException(APIException):
    """
    400 Validation Error - Request validation failed.

    ``errors`` is a list of ``{"path": ..., "message": ...}`` items naming
    the offending fields; it is rendered as a top-level ``errors`` key.
    """

    def __init__(
        self,
        message: str = "Validation error",
        code: str = "VALIDATION_ERROR",
        errors: Optional[list] = None,
    ):
        self.errors = errors or []
        super().__init__(400, message, code)

    def to_response(self) -> Dict[str, Any]:
        return error_response(self.message, code=self.code, errors=self.errors)


class RateLimitException(APIException):
    """429 Too Many Requests - Per-client request budget exhausted."""

    def __init__(
        self,
        message: str = "Too many requests, please try again later",
        code: str = "RATE_LIMIT_EXCEEDED",
        retry_after: Optional[int] = None,
    ):
        super().__init__(
            status_code=429,
            message=message,
            code=code,
            details={"retryAfter": retry_after} if retry_after else None,
            headers={"Retry-After": str(retry_after)} if retry_after else None,
        )


class InternalServerException(APIException):
    """500 Internal Server Error - Opaque stand-in for unexpected failures."""

    def __init__(
        self,
        message: str = "Internal server error",
        code: str = "INTERNAL_ERROR",
    ):
        super().__init__(500, message, code)
