"""Shared test fixtures for identity service tests."""

import copy
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId

from identity.auth.exceptions import DuplicateEmailException
from identity.auth.orchestrator import AuthFlowOrchestrator
from identity.auth.services.credential_manager import CredentialManager
from identity.auth.services.profile_cache import ProfileCache
from identity.auth.services.session_store import SessionStore
from identity.auth.services.token_service import TokenService
from identity.auth.services.verification_manager import VerificationManager
from identity.config import Settings
from identity.user.services.user_store import MUTABLE_FIELDS, normalize_email

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"


# ─────────────────────────────────────────────────────────────────
# In-memory collaborators
# ─────────────────────────────────────────────────────────────────


class FakeUserStore:
    """UserStore stand-in that keeps accounts in a dict and hands out copies."""

    def __init__(self):
        self.accounts = {}

    def _find(self, predicate):
        for account in self.accounts.values():
            if predicate(account):
                return copy.deepcopy(account)
        return None

    async def find_by_email(self, email):
        email = normalize_email(email)
        return self._find(lambda a: a["email"] == email)

    async def find_by_id(self, account_id):
        try:
            object_id = ObjectId(account_id)
        except Exception:
            return None
        account = self.accounts.get(object_id)
        return copy.deepcopy(account) if account else None

    async def find_by_password_reset_hash(self, token_hash):
        return self._find(lambda a: token_hash and a.get("passwordResetTokenHash") == token_hash)

    async def find_by_verification_token(self, token):
        return self._find(lambda a: token and a.get("emailVerificationToken") == token)

    async def create(self, fields):
        email = normalize_email(fields["email"])
        if self._find(lambda a: a["email"] == email):
            raise DuplicateEmailException()
        now = datetime.now(timezone.utc)
        account = {
            "emailVerified": False,
            "emailVerificationToken": None,
            "passwordResetTokenHash": None,
            "passwordResetExpiresAt": None,
            "refreshTokens": [],
            **fields,
            "_id": ObjectId(),
            "email": email,
            "createdAt": now,
            "updatedAt": now,
        }
        self.accounts[account["_id"]] = copy.deepcopy(account)
        return account

    async def save(self, account):
        stored = self.accounts[account["_id"]]
        for field in MUTABLE_FIELDS:
            stored[field] = account.get(field)
        stored["updatedAt"] = datetime.now(timezone.utc)
        account["updatedAt"] = stored["updatedAt"]
        return account

    async def push_refresh_token(self, account_id, token):
        self.accounts[account_id]["refreshTokens"].append(token)

    async def pull_refresh_token(self, account_id, token):
        stored = self.accounts[account_id]
        stored["refreshTokens"] = [t for t in stored["refreshTokens"] if t != token]

    async def clear_refresh_tokens(self, account_id):
        self.accounts[account_id]["refreshTokens"] = []


class FakeCacheBackend:
    """Shared-cache stand-in with a manually advanced clock."""

    def __init__(self):
        self.now = 0.0
        self.entries = {}

    def advance(self, seconds):
        self.now += seconds

    async def get(self, key):
        entry = self.entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.now >= expires_at:
            del self.entries[key]
            return None
        return value

    async def set(self, key, value, ttl_seconds):
        self.entries[key] = (value, self.now + ttl_seconds)

    async def delete(self, key):
        self.entries.pop(key, None)


class RecordingNotifier:
    """Records every email at dispatch time and reports success."""

    def __init__(self):
        self.sent = []

    async def _delivered(self):
        return {"success": True, "mode": "test"}

    def send_verification_email(self, email, name, token):
        self.sent.append(("verification", email, name, token))
        return self._delivered()

    def send_password_reset_email(self, email, name, token):
        self.sent.append(("password_reset", email, name, token))
        return self._delivered()

    def send_password_reset_success_email(self, email, name):
        self.sent.append(("password_reset_success", email, name, None))
        return self._delivered()

    def of_kind(self, kind):
        return [entry for entry in self.sent if entry[0] == kind]


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    collection.find = MagicMock()
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db


@pytest.fixture
def user_store():
    return FakeUserStore()


@pytest.fixture
def cache_backend():
    return FakeCacheBackend()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def token_service():
    return TokenService(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def session_store(user_store):
    return SessionStore(user_store)


@pytest.fixture
def credential_manager(user_store, session_store):
    return CredentialManager(user_store, session_store, bcrypt_rounds=4)


@pytest.fixture
def verification_manager(user_store):
    return VerificationManager(user_store)


@pytest.fixture
def profile_cache(cache_backend):
    return ProfileCache(cache_backend, ttl_seconds=300)


@pytest.fixture
def orchestrator(
    user_store,
    token_service,
    session_store,
    credential_manager,
    verification_manager,
    profile_cache,
    notifier,
):
    return AuthFlowOrchestrator(
        user_store=user_store,
        token_service=token_service,
        session_store=session_store,
        credential_manager=credential_manager,
        verification_manager=verification_manager,
        profile_cache=profile_cache,
        notifier=notifier,
    )


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        JWT_ACCESS_SECRET=ACCESS_SECRET,
        JWT_REFRESH_SECRET=REFRESH_SECRET,
        BCRYPT_ROUNDS=4,
        GATEWAY_SECRET=None,
        RATE_LIMIT_BACKEND="memory",
        ENVIRONMENT="test",
    )


@pytest.fixture
def individual_fields():
    return {
        "email": "ada@example.com",
        "password": "Abcd123!",
        "role": "individual",
        "fullName": "Ada Lovelace",
    }


@pytest.fixture
def organization_fields():
    return {
        "email": "contact@acme.com",
        "password": "Abcd123!",
        "role": "organization",
        "organizationName": "Acme",
        "organizationType": "company",
        "contactPersonName": "Wile Coyote",
        "phone": "+1 555 0100",
    }
