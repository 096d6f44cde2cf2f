"""
Authentication middleware for protected routes.

Validates bearer access tokens and attaches the account to requests.
"""

import logging
from typing import Optional

from fastapi import Request

from common.utils.exceptions import UnauthorizedException
from identity.auth.exceptions import EmailVerificationRequiredException
from identity.auth.services.token_service import TokenKind, TokenService
from identity.user.services.user_store import Account, UserStore

logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    Middleware that validates access tokens and attaches the account to request.
    """

    def __init__(self, token_service: TokenService, user_store: UserStore):
        """
        Initialize AuthMiddleware.

        Args:
            token_service: Verifies access tokens
            user_store: Loads the token's account
        """
        self._token_service = token_service
        self._user_store = user_store

    async def require_auth(self, request: Request) -> Account:
        """
        Validate request is authenticated.

        Args:
            request: HTTP request object

        Returns:
            Account dict attached to request

        Raises:
            UnauthorizedException: No header, invalid token, or unknown account

        Side Effects:
            - Attaches account to request.state.user
            - Attaches verified claims to request.state.claims
        """
        token = self._extract_token(request)

        if not token:
            raise UnauthorizedException(
                message="Access token is required",
                code="AUTH_REQUIRED"
            )

        claims = self._token_service.verify(token, TokenKind.ACCESS)

        account = await self._user_store.find_by_id(claims.id)
        if not account:
            logger.warning(f"Access token for unknown user {claims.id}")
            raise UnauthorizedException(
                message="User not found",
                code="USER_NOT_FOUND"
            )

        request.state.user = account
        request.state.claims = claims

        return account

    async def require_verified_email(self, request: Request) -> Account:
        """
        Validate request is authenticated by an account with a verified email.

        Raises:
            UnauthorizedException: See ``require_auth``
            EmailVerificationRequiredException: Email not verified yet
        """
        account = await self.require_auth(request)

        if not account.get("emailVerified"):
            raise EmailVerificationRequiredException()

        return account

    def _extract_token(self, request: Request) -> Optional[str]:
        """
        Extract bearer token from Authorization header.

        Expected format: "Authorization: Bearer <token>"
        """
        auth_header = request.headers.get("Authorization")

        if not auth_header:
            return None

        parts = auth_header.split()

        if len(parts) != 2:
            return None

        scheme, token = parts

        if scheme.lower() != "bearer":
            return None

        return token
