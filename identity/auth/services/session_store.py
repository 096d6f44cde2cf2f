"""
Refresh-token session registry.

The registry lives inside the Account document (``refreshTokens``), one entry
per live session. Each operation applies an atomic array update at the store
and mirrors it on the in-memory account the caller holds.
"""

import logging

from identity.user.services.user_store import Account, UserStore

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Handles registration and revocation of refresh tokens.
    Tokens are never rotated on use: one stays live until it is revoked.
    """

    def __init__(self, user_store: UserStore):
        """
        Initialize SessionStore.

        Args:
            user_store: Account persistence providing the array primitives
        """
        self._user_store = user_store

    async def register(self, account: Account, refresh_token: str) -> None:
        """
        Add a refresh token to the account's live sessions.

        No deduplication and no cap on the number of sessions.
        """
        await self._user_store.push_refresh_token(account["_id"], refresh_token)
        account.setdefault("refreshTokens", []).append(refresh_token)
        logger.info(f"Session registered for user {account['_id']}")

    async def revoke(self, account: Account, refresh_token: str) -> None:
        """
        Remove a refresh token from the account's live sessions.

        Revoking a token that is not registered is a no-op.
        """
        await self._user_store.pull_refresh_token(account["_id"], refresh_token)
        account["refreshTokens"] = [
            token for token in account.get("refreshTokens", [])
            if token != refresh_token
        ]
        logger.info(f"Session revoked for user {account['_id']}")

    async def revoke_all(self, account: Account) -> int:
        """
        Remove every live session of the account.

        Returns:
            Number of sessions the caller's copy of the account held
        """
        revoked_count = len(account.get("refreshTokens", []))
        await self._user_store.clear_refresh_tokens(account["_id"])
        account["refreshTokens"] = []
        logger.info(f"Revoked {revoked_count} sessions for user {account['_id']}")
        return revoked_count

    @staticmethod
    def is_active(account: Account, refresh_token: str) -> bool:
        """Check whether a refresh token is still registered on the account."""
        return refresh_token in account.get("refreshTokens", [])
