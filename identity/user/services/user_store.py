"""
User store backed by the MongoDB ``users`` collection.

Accounts are plain dicts with camelCase keys, as stored. Whole-document
writes go through ``save``; refresh-token set mutations use atomic array
operators so concurrent logins and logouts never overwrite each other.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from identity.auth.exceptions import DuplicateEmailException

logger = logging.getLogger(__name__)

Account = Dict[str, Any]

USERS_COLLECTION = "users"

# Fields ``save`` is allowed to rewrite; identity and session fields are excluded
MUTABLE_FIELDS = (
    "passwordHash",
    "role",
    "fullName",
    "organizationName",
    "organizationType",
    "contactPersonName",
    "phone",
    "emailVerified",
    "emailVerificationToken",
    "passwordResetTokenHash",
    "passwordResetExpiresAt",
)

USER_INDEXES = {
    USERS_COLLECTION: [
        ("email", {"unique": True}),
        ("passwordResetTokenHash", {"sparse": True}),
        ("emailVerificationToken", {"sparse": True}),
    ]
}


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address."""
    return email.strip().lower()


class UserStore:
    """
    Persistence for Account documents.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize UserStore.

        Args:
            db: MongoDB database connection
        """
        self._db = db
        self._users_collection = db[USERS_COLLECTION]

    async def find_by_email(self, email: str) -> Optional[Account]:
        """Load an account by (normalized) email address."""
        return await self._users_collection.find_one({"email": normalize_email(email)})

    async def find_by_id(self, account_id: str) -> Optional[Account]:
        """
        Load an account by MongoDB ID.

        Returns None for unknown or malformed ids.
        """
        try:
            object_id = ObjectId(account_id)
        except (InvalidId, TypeError):
            return None
        return await self._users_collection.find_one({"_id": object_id})

    async def find_by_password_reset_hash(self, token_hash: str) -> Optional[Account]:
        """Load the account with a pending reset whose digest matches."""
        return await self._users_collection.find_one({"passwordResetTokenHash": token_hash})

    async def find_by_verification_token(self, token: str) -> Optional[Account]:
        """Load the account with a pending email verification token."""
        return await self._users_collection.find_one({"emailVerificationToken": token})

    async def create(self, fields: Account) -> Account:
        """
        Insert a new account.

        Args:
            fields: Account fields; ``passwordHash`` must already be hashed

        Returns:
            Created account document including ``_id``

        Raises:
            DuplicateEmailException: Email already registered (unique index)
        """
        now = datetime.now(timezone.utc)
        user_doc: Account = {
            "emailVerified": False,
            "emailVerificationToken": None,
            "passwordResetTokenHash": None,
            "passwordResetExpiresAt": None,
            "refreshTokens": [],
            **fields,
            "email": normalize_email(fields["email"]),
            "createdAt": now,
            "updatedAt": now,
        }

        try:
            result = await self._users_collection.insert_one(user_doc)
        except DuplicateKeyError:
            raise DuplicateEmailException()

        user_doc["_id"] = result.inserted_id
        logger.info(f"User created: {result.inserted_id}")
        return user_doc

    async def save(self, account: Account) -> Account:
        """
        Write the account's mutable fields back to the store.

        Whole-document semantics with no optimistic lock: the last writer wins
        for every field in ``MUTABLE_FIELDS``.
        """
        now = datetime.now(timezone.utc)
        updates = {field: account.get(field) for field in MUTABLE_FIELDS}
        updates["updatedAt"] = now

        await self._users_collection.update_one(
            {"_id": account["_id"]},
            {"$set": updates},
        )
        account["updatedAt"] = now
        return account

    async def push_refresh_token(self, account_id: ObjectId, token: str) -> None:
        """Append a refresh token to the account's live set."""
        await self._users_collection.update_one(
            {"_id": account_id},
            {
                "$push": {"refreshTokens": token},
                "$set": {"updatedAt": datetime.now(timezone.utc)},
            },
        )

    async def pull_refresh_token(self, account_id: ObjectId, token: str) -> None:
        """Remove a refresh token from the account's live set if present."""
        await self._users_collection.update_one(
            {"_id": account_id},
            {
                "$pull": {"refreshTokens": token},
                "$set": {"updatedAt": datetime.now(timezone.utc)},
            },
        )

    async def clear_refresh_tokens(self, account_id: ObjectId) -> None:
        """Empty the account's live refresh-token set."""
        await self._users_collection.update_one(
            {"_id": account_id},
            {"$set": {"refreshTokens": [], "updatedAt": datetime.now(timezone.utc)}},
        )

