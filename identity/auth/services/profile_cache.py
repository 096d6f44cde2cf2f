"""
Read-through cache of role-shaped profile views.

Views are JSON-encoded and stored in the shared cache under
``profile:<account id>``. Entries expire after the ttl; callers that change
profile-affecting fields should call ``invalidate``.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from identity.user.services.user_store import Account

logger = logging.getLogger(__name__)

ProfileView = Dict[str, Any]

INDIVIDUAL_FIELDS = ("fullName",)
ORGANIZATION_FIELDS = (
    "organizationName",
    "organizationType",
    "contactPersonName",
    "phone",
)


class CacheBackend(Protocol):
    async def get(self, key: str) -> Optional[bytes]: ...

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


def _isoformat(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


def build_profile_view(account: Account) -> ProfileView:
    """
    Project an account onto the fields its role exposes.

    Password, token and session fields are never included.
    """
    view: ProfileView = {
        "id": str(account["_id"]),
        "email": account.get("email"),
        "role": account.get("role"),
    }

    role_fields = ORGANIZATION_FIELDS if account.get("role") == "organization" else INDIVIDUAL_FIELDS
    for field in role_fields:
        view[field] = account.get(field)

    view["emailVerified"] = bool(account.get("emailVerified", False))
    view["createdAt"] = _isoformat(account.get("createdAt"))
    view["updatedAt"] = _isoformat(account.get("updatedAt"))
    return view


class ProfileCache:
    """
    Profile views keyed by account id.
    """

    KEY_PREFIX = "profile"
    DEFAULT_TTL_SECONDS = 300

    def __init__(self, backend: CacheBackend, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        """
        Initialize ProfileCache.

        Args:
            backend: Shared cache (e.g. ``common.cache.RedisCache``)
            ttl_seconds: Default entry lifetime
        """
        self._backend = backend
        self._ttl_seconds = ttl_seconds

    def _key(self, account_id: str) -> str:
        return f"{self.KEY_PREFIX}:{account_id}"

    async def get(self, account_id: str) -> Optional[ProfileView]:
        """Return the cached view, or None on a miss or undecodable entry."""
        raw = await self._backend.get(self._key(account_id))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding corrupt profile cache entry for {account_id}: {e}")
            return None

    async def set(
        self,
        account_id: str,
        view: ProfileView,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        """
        Store a view, overwriting any previous entry for the account.

        A ttl of zero or less drops the entry instead.
        """
        ttl = self._ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            await self.invalidate(account_id)
            return
        payload = json.dumps(view, default=str).encode("utf-8")
        await self._backend.set(
            self._key(account_id),
            payload,
            ttl,
        )

    async def invalidate(self, account_id: str) -> None:
        """
        Drop the cached view for an account.

        Backend failures are logged, never raised to the caller.
        """
        try:
            await self._backend.delete(self._key(account_id))
        except Exception as e:
            logger.warning(f"Failed to invalidate profile cache for {account_id}: {e}")
