"""
JWT access/refresh token signing and verification.

Tokens are stateless: verification is a pure function of the token and the
signing key for its kind, with no database or cache access. Each kind has its
own key, so an access token never verifies as a refresh token and vice versa.

Example:
    tokens = TokenService(access_secret="a", refresh_secret="r")
    pair = tokens.issue_pair(account)
    claims = tokens.verify(pair["accessToken"], TokenKind.ACCESS)
    print(claims.id, claims.email)
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict

from jose import jwt, JWTError, ExpiredSignatureError

from identity.auth.exceptions import (
    TokenExpiredException,
    TokenInvalidException,
    WrongTokenTypeException,
)

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Verified identity carried by a token."""

    id: str
    email: str
    kind: TokenKind


class TokenService:
    """
    Signs and verifies access/refresh token pairs.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 15,
        refresh_token_expire_days: int = 30,
    ):
        """
        Initialize the token service.

        Args:
            access_secret: Signing key for access tokens
            refresh_secret: Signing key for refresh tokens (must differ)
            algorithm: JWT algorithm (default: HS256)
            access_token_expire_minutes: Access token validity window
            refresh_token_expire_days: Refresh token validity window
        """
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens require distinct signing keys")

        self._secrets = {
            TokenKind.ACCESS: access_secret,
            TokenKind.REFRESH: refresh_secret,
        }
        self._lifetimes = {
            TokenKind.ACCESS: timedelta(minutes=access_token_expire_minutes),
            TokenKind.REFRESH: timedelta(days=refresh_token_expire_days),
        }
        self.algorithm = algorithm

    def lifetime(self, kind: TokenKind) -> timedelta:
        """Return the validity window for a token kind."""
        return self._lifetimes[TokenKind(kind)]

    def issue(self, kind: TokenKind, account: Dict[str, Any]) -> str:
        """
        Sign a token of the given kind for an account.

        Args:
            kind: access or refresh
            account: Account document (needs ``_id`` and ``email``)

        Returns:
            Encoded JWT string
        """
        kind = TokenKind(kind)
        now = datetime.now(timezone.utc)
        payload = {
            "id": str(account["_id"]),
            "email": account["email"],
            "type": kind.value,
            # Unique per token so two sessions opened in the same second differ
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self._lifetimes[kind],
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=self.algorithm)

    def issue_pair(self, account: Dict[str, Any]) -> Dict[str, str]:
        """Sign a fresh access/refresh pair for an account."""
        return {
            "accessToken": self.issue(TokenKind.ACCESS, account),
            "refreshToken": self.issue(TokenKind.REFRESH, account),
        }

    def verify(self, token: str, expected_kind: TokenKind) -> TokenClaims:
        """
        Verify a token and return its claims.

        Args:
            token: Encoded JWT
            expected_kind: Kind the caller requires

        Returns:
            TokenClaims with id, email and kind

        Raises:
            TokenExpiredException: Token is past its validity window
            WrongTokenTypeException: Token is a valid token of the other kind
            TokenInvalidException: Signature or structure checks failed
        """
        expected_kind = TokenKind(expected_kind)

        try:
            payload = jwt.decode(
                token,
                self._secrets[expected_kind],
                algorithms=[self.algorithm],
            )
        except ExpiredSignatureError:
            raise TokenExpiredException()
        except JWTError as e:
            if self._signed_as_other_kind(token, expected_kind):
                raise WrongTokenTypeException()
            logger.debug(f"Token rejected: {e}")
            raise TokenInvalidException()

        if payload.get("type") != expected_kind.value:
            raise WrongTokenTypeException()

        account_id = payload.get("id")
        email = payload.get("email")
        if not account_id or not email:
            raise TokenInvalidException(message="Invalid token claims")

        return TokenClaims(id=account_id, email=email, kind=expected_kind)

    def _signed_as_other_kind(self, token: str, expected_kind: TokenKind) -> bool:
        other = TokenKind.REFRESH if expected_kind == TokenKind.ACCESS else TokenKind.ACCESS
        try:
            jwt.decode(
                token,
                self._secrets[other],
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            return False
        return True
