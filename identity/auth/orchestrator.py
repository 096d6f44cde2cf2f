"""
Auth flow orchestration.

Composes the token, session, credential, verification and profile-cache
services into the account-lifecycle commands exposed over HTTP.

Account states:
    Unverified -> Verified          (verify_email)
    Active <-> ResetPending         (forgot_password / reset_password)

Outbound emails are dispatched as detached tasks. Their failures are logged
and never reach the caller.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Dict, Optional, Set, Tuple

from common.utils.exceptions import NotFoundException
from identity.auth.exceptions import (
    DuplicateEmailException,
    EmailVerificationRequiredException,
    InvalidCredentialsException,
    SessionRevokedException,
    TokenInvalidException,
)
from identity.auth.services.credential_manager import CredentialManager
from identity.auth.services.profile_cache import (
    ProfileCache,
    ProfileView,
    build_profile_view,
)
from identity.auth.services.session_store import SessionStore
from identity.auth.services.token_service import TokenKind, TokenService
from identity.auth.services.verification_manager import VerificationManager
from identity.user.services.user_store import Account, UserStore

if TYPE_CHECKING:
    from identity.services.email import EmailService

logger = logging.getLogger(__name__)


def display_name(account: Account) -> Optional[str]:
    """Name used to greet the account owner in emails."""
    if account.get("role") == "organization":
        return account.get("contactPersonName") or account.get("organizationName")
    return account.get("fullName")


class AuthFlowOrchestrator:
    """
    Runs the account-lifecycle commands.
    """

    def __init__(
        self,
        user_store: UserStore,
        token_service: TokenService,
        session_store: SessionStore,
        credential_manager: CredentialManager,
        verification_manager: VerificationManager,
        profile_cache: ProfileCache,
        notifier: "EmailService",
    ):
        self._user_store = user_store
        self._token_service = token_service
        self._session_store = session_store
        self._credential_manager = credential_manager
        self._verification_manager = verification_manager
        self._profile_cache = profile_cache
        self._notifier = notifier
        self._pending: Set[asyncio.Task] = set()

    # =========================================================================
    # SESSIONS
    # =========================================================================

    async def register(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an account and open its first session.

        Args:
            fields: Validated registration fields including plain ``password``

        Returns:
            dict with ``user`` view and ``tokens`` pair

        Raises:
            DuplicateEmailException: Email already registered
        """
        fields = dict(fields)
        password = fields.pop("password")

        if await self._user_store.find_by_email(fields["email"]):
            raise DuplicateEmailException()

        fields["passwordHash"] = self._credential_manager.hash_password(password)
        account = await self._user_store.create(fields)

        tokens = await self._open_session(account)

        raw_token = await self._verification_manager.begin_verification(account)
        self._dispatch(
            "verification email",
            self._notifier.send_verification_email(
                account["email"], display_name(account), raw_token
            ),
        )

        logger.info(f"User registered: {account['_id']} ({account.get('role')})")
        return {"user": build_profile_view(account), "tokens": tokens}

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Authenticate with email and password and open a new session.

        Existing sessions of the account stay valid.

        Raises:
            InvalidCredentialsException: Unknown email or wrong password
        """
        account = await self._user_store.find_by_email(email)

        if not account or not self._credential_manager.verify_password(
            password, account.get("passwordHash", "")
        ):
            logger.warning("Login rejected: invalid credentials")
            raise InvalidCredentialsException()

        tokens = await self._open_session(account)

        logger.info(f"User logged in: {account['_id']}")
        return {"user": build_profile_view(account), "tokens": tokens}

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, str]:
        """
        Exchange a live refresh token for a new access token.

        The refresh token itself is not rotated.

        Raises:
            TokenInvalidException: Token invalid or its account no longer exists
            TokenExpiredException: Refresh token past its validity window
            WrongTokenTypeException: An access token was presented
            SessionRevokedException: Token was logged out or revoked by a reset
        """
        claims = self._token_service.verify(refresh_token, TokenKind.REFRESH)

        account = await self._user_store.find_by_id(claims.id)
        if not account:
            raise TokenInvalidException(message="User not found")

        if not SessionStore.is_active(account, refresh_token):
            logger.warning(f"Refresh rejected: revoked session for user {account['_id']}")
            raise SessionRevokedException()

        return {"accessToken": self._token_service.issue(TokenKind.ACCESS, account)}

    async def logout(self, account: Account, refresh_token: Optional[str]) -> None:
        """Close the session identified by ``refresh_token``."""
        if not refresh_token:
            return
        await self._session_store.revoke(account, refresh_token)

    async def logout_all(self, account: Account) -> int:
        """Close every session of the account; returns how many were open."""
        return await self._session_store.revoke_all(account)

    # =========================================================================
    # RECOVERY & VERIFICATION
    # =========================================================================

    async def forgot_password(self, email: str) -> None:
        """
        Start a password reset and email the reset link.

        Raises:
            NotFoundException: No account with this email
        """
        account = await self._user_store.find_by_email(email)
        if not account:
            raise NotFoundException(
                message="There is no user with that email address",
                code="USER_NOT_FOUND",
            )

        raw_token = await self._credential_manager.begin_password_reset(account)
        self._dispatch(
            "password reset email",
            self._notifier.send_password_reset_email(
                account["email"], display_name(account), raw_token
            ),
        )

    async def reset_password(self, raw_token: str, new_password: str) -> Account:
        """
        Redeem a reset token, set the new password and close all sessions.

        Raises:
            InvalidOrExpiredTokenException: Token unknown, expired, or used
        """
        account = await self._credential_manager.complete_password_reset(
            raw_token, new_password
        )
        await self._profile_cache.invalidate(str(account["_id"]))

        self._dispatch(
            "password reset confirmation",
            self._notifier.send_password_reset_success_email(
                account["email"], display_name(account)
            ),
        )
        return account

    async def verify_email(self, raw_token: str) -> Account:
        """
        Mark the email of the token's account as verified.

        Raises:
            InvalidVerificationTokenException: No pending verification matches
        """
        account = await self._verification_manager.complete_verification(raw_token)
        await self._profile_cache.invalidate(str(account["_id"]))
        return account

    # =========================================================================
    # PROFILE
    # =========================================================================

    async def get_profile(self, account: Account) -> Tuple[ProfileView, str]:
        """
        Read the profile view of a verified account through the cache.

        Returns:
            (view, source) where source is ``"cache"`` or ``"database"``

        Raises:
            EmailVerificationRequiredException: Email not verified yet
        """
        if not account.get("emailVerified"):
            raise EmailVerificationRequiredException()

        account_id = str(account["_id"])
        cached = await self._profile_cache.get(account_id)
        if cached is not None:
            return cached, "cache"

        view = build_profile_view(account)
        await self._profile_cache.set(account_id, view)
        return view, "database"

    # =========================================================================
    # DISPATCH
    # =========================================================================

    async def wait_for_dispatches(self) -> None:
        """Wait until every detached email has finished sending."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _open_session(self, account: Account) -> Dict[str, str]:
        tokens = self._token_service.issue_pair(account)
        await self._session_store.register(account, tokens["refreshToken"])
        return tokens

    def _dispatch(self, description: str, send: Awaitable[Any]) -> None:
        task = asyncio.create_task(self._deliver(description, send))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, description: str, send: Awaitable[Any]) -> None:
        try:
            result = await send
        except Exception:
            logger.exception(f"Failed to send {description}")
            return

        if isinstance(result, dict) and not result.get("success", False):
            logger.warning(f"Failed to send {description}: {result.get('error')}")
