"""Unit tests for TokenService (stateless access/refresh JWTs)."""

import base64
import json

import pytest
from bson import ObjectId
from jose import jwt

from identity.auth.exceptions import (
    TokenExpiredException,
    TokenInvalidException,
    WrongTokenTypeException,
)
from identity.auth.services.token_service import TokenKind, TokenService

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"


@pytest.fixture
def account():
    return {"_id": ObjectId(), "email": "ada@example.com"}


def _tamper_email(token: str, email: str) -> str:
    header, payload, signature = token.split(".")
    padded = payload + "=" * (-len(payload) % 4)
    claims = json.loads(base64.urlsafe_b64decode(padded))
    claims["email"] = email
    forged = base64.urlsafe_b64encode(json.dumps(claims).encode()).rstrip(b"=").decode()
    return f"{header}.{forged}.{signature}"


# ─────────────────────────────────────────────────────────────────
# issue / verify
# ─────────────────────────────────────────────────────────────────


class TestRoundTrip:
    @pytest.mark.parametrize("kind", [TokenKind.ACCESS, TokenKind.REFRESH])
    def test_verify_returns_issued_identity(self, token_service, account, kind):
        token = token_service.issue(kind, account)

        claims = token_service.verify(token, kind)

        assert claims.id == str(account["_id"])
        assert claims.email == "ada@example.com"
        assert claims.kind == kind

    def test_pair_contains_both_kinds(self, token_service, account):
        pair = token_service.issue_pair(account)

        assert set(pair) == {"accessToken", "refreshToken"}
        assert token_service.verify(pair["accessToken"], TokenKind.ACCESS)
        assert token_service.verify(pair["refreshToken"], TokenKind.REFRESH)

    def test_tokens_issued_back_to_back_differ(self, token_service, account):
        first = token_service.issue(TokenKind.REFRESH, account)
        second = token_service.issue(TokenKind.REFRESH, account)

        assert first != second

    def test_payload_carries_type_claim(self, token_service, account):
        token = token_service.issue(TokenKind.ACCESS, account)

        payload = jwt.get_unverified_claims(token)

        assert payload["type"] == "access"
        assert payload["id"] == str(account["_id"])


# ─────────────────────────────────────────────────────────────────
# Rejections
# ─────────────────────────────────────────────────────────────────


class TestRejections:
    def test_access_token_presented_as_refresh(self, token_service, account):
        token = token_service.issue(TokenKind.ACCESS, account)

        with pytest.raises(WrongTokenTypeException):
            token_service.verify(token, TokenKind.REFRESH)

    def test_refresh_token_presented_as_access(self, token_service, account):
        token = token_service.issue(TokenKind.REFRESH, account)

        with pytest.raises(WrongTokenTypeException) as exc_info:
            token_service.verify(token, TokenKind.ACCESS)

        assert exc_info.value.status_code == 401

    def test_type_claim_mismatch_under_correct_key(self, account):
        service = TokenService(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)
        token = jwt.encode(
            {"id": str(account["_id"]), "email": account["email"], "type": "refresh"},
            ACCESS_SECRET,
            algorithm="HS256",
        )

        with pytest.raises(WrongTokenTypeException):
            service.verify(token, TokenKind.ACCESS)

    def test_tampered_payload(self, token_service, account):
        token = token_service.issue(TokenKind.ACCESS, account)

        with pytest.raises(TokenInvalidException):
            token_service.verify(_tamper_email(token, "eve@example.com"), TokenKind.ACCESS)

    def test_wrong_signing_key(self, token_service, account):
        other = TokenService(access_secret="someone-else", refresh_secret="someone-else-r")
        token = other.issue(TokenKind.ACCESS, account)

        with pytest.raises(TokenInvalidException):
            token_service.verify(token, TokenKind.ACCESS)

    def test_garbage_token(self, token_service):
        with pytest.raises(TokenInvalidException):
            token_service.verify("not-a-jwt", TokenKind.ACCESS)

    def test_expired_token(self, account):
        service = TokenService(
            access_secret=ACCESS_SECRET,
            refresh_secret=REFRESH_SECRET,
            access_token_expire_minutes=-1,
        )
        token = service.issue(TokenKind.ACCESS, account)

        with pytest.raises(TokenExpiredException):
            service.verify(token, TokenKind.ACCESS)

    def test_missing_identity_claims(self, token_service):
        token = jwt.encode({"type": "access"}, ACCESS_SECRET, algorithm="HS256")

        with pytest.raises(TokenInvalidException) as exc_info:
            token_service.verify(token, TokenKind.ACCESS)

        assert exc_info.value.message == "Invalid token claims"


# ─────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────


class TestConfiguration:
    def test_same_secret_for_both_kinds_is_rejected(self):
        with pytest.raises(ValueError):
            TokenService(access_secret="shared", refresh_secret="shared")

    def test_default_lifetimes(self, token_service):
        assert token_service.lifetime(TokenKind.ACCESS).total_seconds() == 15 * 60
        assert token_service.lifetime(TokenKind.REFRESH).days == 30
