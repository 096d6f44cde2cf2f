"""
Auth System Services

Contains service classes for authentication operations.
"""

from identity.auth.services.link_tokens import LinkToken, digest_link_token, issue_link_token
from identity.auth.services.token_service import TokenService, TokenKind, TokenClaims
from identity.auth.services.session_store import SessionStore
from identity.auth.services.credential_manager import CredentialManager
from identity.auth.services.verification_manager import VerificationManager
from identity.auth.services.profile_cache import ProfileCache, build_profile_view

__all__ = [
    "LinkToken",
    "digest_link_token",
    "issue_link_token",
    "TokenService",
    "TokenKind",
    "TokenClaims",
    "SessionStore",
    "CredentialManager",
    "VerificationManager",
    "ProfileCache",
    "build_profile_view",
]
