"""
Single-use tokens carried by emailed links.

The raw value only travels in the email. Password-reset links persist the
SHA-256 digest; verification links persist the raw value.
"""

import hashlib
import secrets
from typing import NamedTuple

LINK_TOKEN_BYTES = 32


class LinkToken(NamedTuple):
    raw: str
    digest: str


def digest_link_token(raw_token: str) -> str:
    """Storage form of a raw link token (hex SHA-256)."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def issue_link_token(nbytes: int = LINK_TOKEN_BYTES) -> LinkToken:
    """Generate a fresh hex token of ``nbytes`` random bytes with its digest."""
    raw = secrets.token_hex(nbytes)
    return LinkToken(raw=raw, digest=digest_link_token(raw))
