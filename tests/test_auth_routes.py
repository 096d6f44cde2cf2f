"""HTTP tests for the auth router, exception handlers and health check."""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock

from api import create_app
from identity.auth.dependencies import build_services
from identity.auth.services.link_tokens import digest_link_token

PREFIX = "/api/v1/auth"


def _make_client(settings, user_store, cache_backend, notifier, **client_kwargs):
    app = create_app(settings)
    app.state.services = build_services(settings, user_store, cache_backend, notifier=notifier)
    return TestClient(app, **client_kwargs)


@pytest.fixture
def client(test_settings, user_store, cache_backend, notifier):
    return _make_client(test_settings, user_store, cache_backend, notifier)


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def _register(client, fields):
    response = client.post(f"{PREFIX}/register", json=fields)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def _verify(client, notifier):
    _, _, _, token = notifier.of_kind("verification")[-1]
    return client.get(f"{PREFIX}/verify-email", params={"token": token})


# ─────────────────────────────────────────────────────────────────
# register
# ─────────────────────────────────────────────────────────────────


class TestRegisterRoute:
    def test_register_individual(self, client, individual_fields):
        response = client.post(f"{PREFIX}/register", json=dict(individual_fields, fullName="A"))

        body = response.json()
        assert response.status_code == 201
        assert body["status"] == "success"
        assert body["message"] == "User registered successfully."
        assert body["data"]["user"]["fullName"] == "A"
        assert body["data"]["user"]["emailVerified"] is False
        assert set(body["data"]["tokens"]) == {"accessToken", "refreshToken"}

    def test_profile_right_after_register_is_forbidden(self, client, individual_fields):
        data = _register(client, individual_fields)

        response = client.get(f"{PREFIX}/profile", headers=_bearer(data["tokens"]["accessToken"]))

        assert response.status_code == 403
        assert response.json()["status"] == "fail"
        assert response.json()["message"] == "Email verification required"

    def test_organization_missing_phone(self, client, organization_fields):
        fields = dict(organization_fields)
        del fields["phone"]

        response = client.post(f"{PREFIX}/register", json=fields)

        body = response.json()
        assert response.status_code == 400
        assert body["status"] == "fail"
        assert body["errors"][0]["path"] == "organizationName"

    def test_individual_missing_full_name(self, client, individual_fields):
        fields = dict(individual_fields)
        del fields["fullName"]

        response = client.post(f"{PREFIX}/register", json=fields)

        assert response.status_code == 400
        assert response.json()["errors"] == [{
            "path": "fullName",
            "message": "Full name is required for individual users",
        }]

    @pytest.mark.parametrize("password", ["Ab1!", "abcd1234!", "ABCD1234!", "Abcdefgh!", "Abcd1234"])
    def test_weak_password(self, client, individual_fields, password):
        response = client.post(f"{PREFIX}/register", json=dict(individual_fields, password=password))

        body = response.json()
        assert response.status_code == 400
        assert body["errors"][0]["path"] == "password"

    def test_invalid_role(self, client, individual_fields):
        response = client.post(f"{PREFIX}/register", json=dict(individual_fields, role="admin"))

        assert response.status_code == 400
        assert response.json()["errors"][0]["path"] == "role"

    def test_full_name_too_long(self, client, individual_fields):
        response = client.post(f"{PREFIX}/register", json=dict(individual_fields, fullName="x" * 61))

        assert response.status_code == 400
        assert response.json()["errors"][0]["path"] == "fullName"

    def test_duplicate_email(self, client, individual_fields):
        _register(client, individual_fields)

        response = client.post(f"{PREFIX}/register", json=individual_fields)

        assert response.status_code == 400
        assert response.json()["message"] == "Email already registered"


# ─────────────────────────────────────────────────────────────────
# login / logout / refresh
# ─────────────────────────────────────────────────────────────────


class TestSessionRoutes:
    def test_login(self, client, individual_fields):
        _register(client, individual_fields)

        response = client.post(
            f"{PREFIX}/login", json={"email": "ada@example.com", "password": "Abcd123!"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == "ada@example.com"

    def test_login_wrong_password(self, client, individual_fields):
        _register(client, individual_fields)

        response = client.post(
            f"{PREFIX}/login", json={"email": "ada@example.com", "password": "Wrong123!"}
        )

        assert response.status_code == 401
        assert response.json() == {
            "status": "fail",
            "message": "Invalid email or password",
            "code": "INVALID_CREDENTIALS",
        }

    def test_logout_requires_access_token(self, client):
        response = client.post(f"{PREFIX}/logout", json={"refreshToken": "x"})

        assert response.status_code == 401
        assert response.json()["message"] == "Access token is required"

    def test_logout_rejects_refresh_token_as_bearer(self, client, individual_fields):
        data = _register(client, individual_fields)

        response = client.post(
            f"{PREFIX}/logout",
            json={"refreshToken": data["tokens"]["refreshToken"]},
            headers=_bearer(data["tokens"]["refreshToken"]),
        )

        assert response.status_code == 401
        assert response.json()["code"] == "WRONG_TOKEN_TYPE"

    def test_logout_then_refresh_fails(self, client, individual_fields):
        data = _register(client, individual_fields)
        tokens = data["tokens"]

        logout = client.post(
            f"{PREFIX}/logout",
            json={"refreshToken": tokens["refreshToken"]},
            headers=_bearer(tokens["accessToken"]),
        )
        refresh = client.post(f"{PREFIX}/refresh", json={"refreshToken": tokens["refreshToken"]})

        assert logout.status_code == 200
        assert logout.json() == {"status": "success", "message": "Logged out successfully"}
        assert refresh.status_code == 401
        assert refresh.json()["code"] == "SESSION_REVOKED"

    def test_refresh(self, client, individual_fields):
        data = _register(client, individual_fields)

        response = client.post(
            f"{PREFIX}/refresh", json={"refreshToken": data["tokens"]["refreshToken"]}
        )

        assert response.status_code == 200
        assert "accessToken" in response.json()["data"]["tokens"]

    def test_logout_all(self, client, user_store, individual_fields):
        data = _register(client, individual_fields)
        client.post(f"{PREFIX}/login", json={"email": "ada@example.com", "password": "Abcd123!"})

        response = client.post(f"{PREFIX}/logout-all", headers=_bearer(data["tokens"]["accessToken"]))

        assert response.status_code == 200
        assert response.json()["message"] == "Logged out from all devices successfully"
        assert next(iter(user_store.accounts.values()))["refreshTokens"] == []

    def test_access_token_for_deleted_account(self, client, user_store, individual_fields):
        data = _register(client, individual_fields)
        user_store.accounts.clear()

        response = client.post(f"{PREFIX}/logout-all", headers=_bearer(data["tokens"]["accessToken"]))

        assert response.status_code == 401
        assert response.json()["message"] == "User not found"


# ─────────────────────────────────────────────────────────────────
# verify-email / profile
# ─────────────────────────────────────────────────────────────────


class TestVerificationAndProfileRoutes:
    def test_verify_email_returns_html(self, client, notifier, individual_fields):
        _register(client, individual_fields)

        response = _verify(client, notifier)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "ada@example.com" in response.text

    def test_verify_email_with_bad_token(self, client):
        response = client.get(f"{PREFIX}/verify-email", params={"token": "nope"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid verification token"

    def test_profile_source_database_then_cache(self, client, notifier, individual_fields):
        data = _register(client, individual_fields)
        _verify(client, notifier)
        headers = _bearer(data["tokens"]["accessToken"])

        first = client.get(f"{PREFIX}/profile", headers=headers).json()
        second = client.get(f"{PREFIX}/profile", headers=headers).json()

        assert first["status"] == "success"
        assert first["source"] == "database"
        assert second["source"] == "cache"
        assert first["data"] == second["data"]
        assert first["data"]["user"]["emailVerified"] is True


# ─────────────────────────────────────────────────────────────────
# forgot / reset password
# ─────────────────────────────────────────────────────────────────


class TestRecoveryRoutes:
    def test_forgot_password_unknown_email(self, client):
        response = client.post(f"{PREFIX}/forgot-password", json={"email": "nobody@example.com"})

        assert response.status_code == 404
        assert response.json()["status"] == "fail"

    def test_forgot_password_known_email(self, client, user_store, notifier, individual_fields):
        _register(client, individual_fields)

        response = client.post(f"{PREFIX}/forgot-password", json={"email": "ada@example.com"})

        assert response.status_code == 200
        assert response.json()["status"] == "success"
        [(_, _, _, token)] = notifier.of_kind("password_reset")
        stored = next(iter(user_store.accounts.values()))
        assert stored["passwordResetTokenHash"] == digest_link_token(token)

    def test_reset_password_revokes_old_refresh_token(self, client, notifier, individual_fields):
        data = _register(client, individual_fields)
        client.post(f"{PREFIX}/forgot-password", json={"email": "ada@example.com"})
        [(_, _, _, token)] = notifier.of_kind("password_reset")

        reset = client.post(
            f"{PREFIX}/reset-password", params={"token": token}, json={"password": "Newpass1!"}
        )
        retry = client.post(
            f"{PREFIX}/reset-password", params={"token": token}, json={"password": "Other123!"}
        )
        refresh = client.post(
            f"{PREFIX}/refresh", json={"refreshToken": data["tokens"]["refreshToken"]}
        )

        assert reset.status_code == 200
        assert reset.json()["message"] == "Password reset successful"
        assert retry.status_code == 400
        assert retry.json()["message"] == "Token is invalid or has expired"
        assert refresh.status_code == 401

    def test_reset_password_validates_strength(self, client):
        response = client.post(
            f"{PREFIX}/reset-password", params={"token": "t"}, json={"password": "weak"}
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["path"] == "password"

    def test_reset_password_survives_cache_outage(
        self, client, cache_backend, notifier, individual_fields
    ):
        _register(client, individual_fields)
        client.post(f"{PREFIX}/forgot-password", json={"email": "ada@example.com"})
        [(_, _, _, token)] = notifier.of_kind("password_reset")
        cache_backend.delete = AsyncMock(side_effect=ConnectionError("redis down"))

        reset = client.post(
            f"{PREFIX}/reset-password", params={"token": token}, json={"password": "Newpass1!"}
        )
        login = client.post(
            f"{PREFIX}/login", json={"email": "ada@example.com", "password": "Newpass1!"}
        )

        assert reset.status_code == 200
        assert len(notifier.of_kind("password_reset_success")) == 1
        assert login.status_code == 200

    def test_verify_email_survives_cache_outage(self, client, cache_backend, notifier, individual_fields):
        _register(client, individual_fields)
        cache_backend.delete = AsyncMock(side_effect=ConnectionError("redis down"))

        response = _verify(client, notifier)

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]


# ─────────────────────────────────────────────────────────────────
# Edge protection
# ─────────────────────────────────────────────────────────────────


class TestEdgeProtection:
    def test_gateway_key_required_when_configured(
        self, test_settings, user_store, cache_backend, notifier
    ):
        settings = test_settings.model_copy(update={"GATEWAY_SECRET": "gw-secret"})
        client = _make_client(settings, user_store, cache_backend, notifier)

        rejected = client.post(f"{PREFIX}/forgot-password", json={"email": "a@example.com"})
        accepted = client.post(
            f"{PREFIX}/forgot-password",
            json={"email": "a@example.com"},
            headers={"X-Gateway-Key": "gw-secret"},
        )

        assert rejected.status_code == 403
        assert rejected.json()["message"] == "Forbidden: Only API Gateway allowed"
        assert accepted.status_code == 404

    def test_rate_limit(self, test_settings, user_store, cache_backend, notifier):
        settings = test_settings.model_copy(update={"AUTH_RATE_LIMIT_REQUESTS": 2})
        client = _make_client(settings, user_store, cache_backend, notifier)
        body = {"email": "ada@example.com", "password": "Abcd123!"}

        statuses = [client.post(f"{PREFIX}/login", json=body).status_code for _ in range(3)]

        assert statuses == [401, 401, 429]

    def test_rate_limit_ignores_forwarded_headers_by_default(
        self, test_settings, user_store, cache_backend, notifier
    ):
        settings = test_settings.model_copy(update={"AUTH_RATE_LIMIT_REQUESTS": 2})
        client = _make_client(settings, user_store, cache_backend, notifier)
        body = {"email": "ada@example.com", "password": "Abcd123!"}

        statuses = [
            client.post(
                f"{PREFIX}/login",
                json=body,
                headers={"X-Forwarded-For": f"10.0.0.{i}", "X-Real-IP": f"10.0.1.{i}"},
            ).status_code
            for i in range(4)
        ]

        assert statuses == [401, 401, 429, 429]

    def test_rate_limit_behind_trusted_proxy(
        self, test_settings, user_store, cache_backend, notifier
    ):
        settings = test_settings.model_copy(
            update={"AUTH_RATE_LIMIT_REQUESTS": 1, "TRUSTED_PROXY_COUNT": 1}
        )
        client = _make_client(settings, user_store, cache_backend, notifier)
        body = {"email": "ada@example.com", "password": "Abcd123!"}

        def login(forwarded_for):
            return client.post(
                f"{PREFIX}/login", json=body, headers={"X-Forwarded-For": forwarded_for}
            ).status_code

        # The left-hand entries are client-supplied; only the last hop counts
        assert login("1.1.1.1, 203.0.113.7") == 401
        assert login("2.2.2.2, 203.0.113.7") == 429
        assert login("1.1.1.1, 203.0.113.8") == 401


# ─────────────────────────────────────────────────────────────────
# App-level handlers
# ─────────────────────────────────────────────────────────────────


class TestAppHandlers:
    def test_unknown_route(self, client):
        response = client.get("/api/v1/nowhere")

        assert response.status_code == 404
        assert response.json() == {
            "status": "fail",
            "message": "Can't find /api/v1/nowhere on this server",
        }

    def test_health(self, client):
        response = client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "success"
        assert body["data"]["status"] == "OK"
        assert "timestamp" in body["data"]

    def test_unexpected_error_is_opaque(
        self, test_settings, user_store, cache_backend, notifier, monkeypatch
    ):
        async def explode(email):
            raise RuntimeError("connection string with secrets")

        monkeypatch.setattr(user_store, "find_by_email", explode)
        client = _make_client(
            test_settings, user_store, cache_backend, notifier, raise_server_exceptions=False
        )

        response = client.post(
            f"{PREFIX}/login", json={"email": "ada@example.com", "password": "Abcd123!"}
        )

        assert response.status_code == 500
        assert response.json() == {
            "status": "fail",
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
        }
