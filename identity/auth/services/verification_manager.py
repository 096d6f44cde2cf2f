"""
Email-verification token lifecycle.

Verification tokens are stored as issued and never expire; consuming one
marks the email verified and removes the token.
"""

import logging

from identity.auth.exceptions import InvalidVerificationTokenException
from identity.auth.services.link_tokens import issue_link_token
from identity.user.services.user_store import Account, UserStore

logger = logging.getLogger(__name__)


class VerificationManager:
    """Issues and redeems email-verification tokens."""

    def __init__(self, user_store: UserStore):
        self._user_store = user_store

    async def begin_verification(self, account: Account) -> str:
        """Attach a fresh verification token to the account and return it."""
        raw_token = issue_link_token().raw
        account["emailVerificationToken"] = raw_token
        await self._user_store.save(account)
        return raw_token

    async def complete_verification(self, raw_token: str) -> Account:
        """
        Consume a verification token.

        Raises:
            InvalidVerificationTokenException: No account holds this token
        """
        if not raw_token:
            raise InvalidVerificationTokenException()

        account = await self._user_store.find_by_verification_token(raw_token)
        if not account:
            raise InvalidVerificationTokenException()

        account["emailVerified"] = True
        account["emailVerificationToken"] = None
        await self._user_store.save(account)

        logger.info(f"Email verified for user {account['_id']}")
        return account
