"""
Password hashing and the password-reset token lifecycle.

Only the SHA-256 digest of a reset token is stored; the raw token exists in
the outgoing email and in the request that redeems it. A successful reset
clears the pending reset and revokes every session of the account.
"""

import base64
import hashlib
import logging
from datetime import datetime, timedelta, timezone

import bcrypt as bcrypt_lib

from identity.auth.exceptions import InvalidOrExpiredTokenException
from identity.auth.services.session_store import SessionStore
from identity.auth.services.link_tokens import digest_link_token, issue_link_token
from identity.user.services.user_store import Account, UserStore

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CredentialManager:
    """
    Handles password hashing and password-reset tokens.
    """

    DEFAULT_BCRYPT_ROUNDS = 12
    DEFAULT_RESET_EXPIRE_MINUTES = 60

    def __init__(
        self,
        user_store: UserStore,
        session_store: SessionStore,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
        reset_expire_minutes: int = DEFAULT_RESET_EXPIRE_MINUTES,
    ):
        """
        Initialize CredentialManager.

        Args:
            user_store: Account persistence
            session_store: Used to revoke all sessions after a reset
            bcrypt_rounds: bcrypt work factor (log2 rounds)
            reset_expire_minutes: Lifetime of a password-reset token
        """
        self._user_store = user_store
        self._session_store = session_store
        self._bcrypt_rounds = bcrypt_rounds
        self._reset_expire = timedelta(minutes=reset_expire_minutes)

    def _prehash_password(self, password: str) -> str:
        """
        Pre-hash password with SHA-256 before bcrypt.

        This handles bcrypt's 72-byte limit and ensures consistent
        behavior across all password lengths.
        """
        sha256_hash = hashlib.sha256(password.encode("utf-8")).digest()
        return base64.b64encode(sha256_hash).decode("utf-8")

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt with SHA-256 pre-hashing."""
        prehashed = self._prehash_password(password)
        salt = bcrypt_lib.gensalt(rounds=self._bcrypt_rounds)
        return bcrypt_lib.hashpw(prehashed.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str, hashed: str) -> bool:
        """
        Verify a password against its hash.

        Supports both pre-hashed and legacy direct-bcrypt hashes.
        """
        if not hashed:
            return False
        hashed_bytes = hashed.encode("utf-8")

        prehashed = self._prehash_password(password)
        try:
            if bcrypt_lib.checkpw(prehashed.encode("utf-8"), hashed_bytes):
                return True
        except ValueError:
            pass

        # Legacy hashes were made from the raw password
        try:
            return bcrypt_lib.checkpw(password.encode("utf-8"), hashed_bytes)
        except ValueError:
            return False

    async def begin_password_reset(self, account: Account) -> str:
        """
        Start a password reset for an account.

        Any reset already pending is replaced, so only the newest token works.

        Args:
            account: Account requesting the reset

        Returns:
            Raw reset token for out-of-band delivery
        """
        token = issue_link_token()
        account["passwordResetTokenHash"] = token.digest
        account["passwordResetExpiresAt"] = datetime.now(timezone.utc) + self._reset_expire
        await self._user_store.save(account)

        logger.info(f"Password reset started for user {account['_id']}")
        return token.raw

    async def complete_password_reset(self, raw_token: str, new_password: str) -> Account:
        """
        Redeem a reset token and set a new password.

        Args:
            raw_token: Token from the reset email
            new_password: New plain-text password

        Returns:
            Updated account with no live sessions

        Raises:
            InvalidOrExpiredTokenException: Token unknown, expired, or already used
        """
        token_hash = digest_link_token(raw_token)
        account = await self._user_store.find_by_password_reset_hash(token_hash)

        if not account:
            raise InvalidOrExpiredTokenException()

        expires_at = account.get("passwordResetExpiresAt")
        if not expires_at or _as_utc(expires_at) <= datetime.now(timezone.utc):
            logger.warning(f"Expired password reset token for user {account['_id']}")
            raise InvalidOrExpiredTokenException()

        account["passwordHash"] = self.hash_password(new_password)
        account["passwordResetTokenHash"] = None
        account["passwordResetExpiresAt"] = None
        await self._user_store.save(account)
        await self._session_store.revoke_all(account)

        logger.info(f"Password reset completed for user {account['_id']}")
        return account
