"""
FastAPI dependencies for the identity service.

Services are built once at startup by ``init_services`` and stored on
``app.state``; request-scoped getters read them back from there.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Annotated, Optional, Union

from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from common.cache import RedisCache
from common.utils.exceptions import ForbiddenException, RateLimitException
from identity.auth.middleware import AuthMiddleware
from identity.auth.orchestrator import AuthFlowOrchestrator
from identity.auth.rate_limiter import RedisSlidingWindowRateLimiter, SlidingWindowRateLimiter
from identity.auth.services.credential_manager import CredentialManager
from identity.auth.services.profile_cache import CacheBackend, ProfileCache
from identity.auth.services.session_store import SessionStore
from identity.auth.services.token_service import TokenService
from identity.auth.services.verification_manager import VerificationManager
from identity.config import Settings
from identity.services.email import EmailService
from identity.user.services.user_store import Account, UserStore

logger = logging.getLogger(__name__)

RateLimiter = Union[SlidingWindowRateLimiter, RedisSlidingWindowRateLimiter]


@dataclass
class IdentityServices:
    """Service graph shared by all requests of one application."""

    orchestrator: AuthFlowOrchestrator
    auth_middleware: AuthMiddleware
    rate_limiter: RateLimiter
    gateway_secret: Optional[str] = None
    trusted_proxy_count: int = 0


def build_services(
    settings: Settings,
    user_store: UserStore,
    cache: CacheBackend,
    notifier: Optional[EmailService] = None,
) -> IdentityServices:
    """
    Wire the identity services together.

    Args:
        settings: Application settings
        user_store: Account persistence
        cache: Shared cache backend for profile views
        notifier: Email sender (built from settings when omitted)
    """
    token_service = TokenService(
        access_secret=settings.JWT_ACCESS_SECRET,
        refresh_secret=settings.JWT_REFRESH_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        access_token_expire_minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
        refresh_token_expire_days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS,
    )
    session_store = SessionStore(user_store)

    if notifier is None:
        notifier = EmailService(
            mode=settings.EMAIL_MODE,
            base_url=settings.BASE_URL,
            api_prefix=settings.API_PREFIX,
            resend_api_key=settings.RESEND_API_KEY,
            from_email=settings.SMTP_FROM_EMAIL,
            from_name=settings.SMTP_FROM_NAME,
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
        )

    orchestrator = AuthFlowOrchestrator(
        user_store=user_store,
        token_service=token_service,
        session_store=session_store,
        credential_manager=CredentialManager(
            user_store,
            session_store,
            bcrypt_rounds=settings.BCRYPT_ROUNDS,
            reset_expire_minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES,
        ),
        verification_manager=VerificationManager(user_store),
        profile_cache=ProfileCache(cache, ttl_seconds=settings.PROFILE_CACHE_TTL_SECONDS),
        notifier=notifier,
    )

    return IdentityServices(
        orchestrator=orchestrator,
        auth_middleware=AuthMiddleware(token_service, user_store),
        rate_limiter=build_rate_limiter(settings, cache),
        gateway_secret=settings.GATEWAY_SECRET,
        trusted_proxy_count=settings.TRUSTED_PROXY_COUNT,
    )


def build_rate_limiter(settings: Settings, cache: CacheBackend) -> RateLimiter:
    """Use the shared Redis for rate limiting when configured and connected."""
    if settings.RATE_LIMIT_BACKEND == "redis":
        if isinstance(cache, RedisCache) and cache.is_connected:
            logger.info("Auth rate limiter using Redis backend")
            return RedisSlidingWindowRateLimiter(
                cache.client,
                max_requests=settings.AUTH_RATE_LIMIT_REQUESTS,
                window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
            )
        logger.warning("Redis unavailable for rate limiting, falling back to in-memory limiter")

    return SlidingWindowRateLimiter(
        max_requests=settings.AUTH_RATE_LIMIT_REQUESTS,
        window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
    )


def init_services(
    app,
    settings: Settings,
    db: AsyncIOMotorDatabase,
    cache: CacheBackend,
) -> IdentityServices:
    """
    Initialize identity services and attach them to the application.

    Called once at application startup.
    """
    services = build_services(settings, UserStore(db), cache)
    app.state.services = services
    logger.info("Identity services initialized")
    return services


def get_services(request: Request) -> IdentityServices:
    """Get the service graph attached to the running application."""
    services: Optional[IdentityServices] = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Identity services not initialized. Call init_services first.")
    return services


def get_orchestrator(
    services: Annotated[IdentityServices, Depends(get_services)]
) -> AuthFlowOrchestrator:
    """Get auth flow orchestrator."""
    return services.orchestrator


async def require_auth(
    request: Request,
    services: Annotated[IdentityServices, Depends(get_services)]
) -> Account:
    """
    Dependency that requires a valid access token.

    Usage:
        @router.post("/logout")
        async def logout(user: Annotated[dict, Depends(require_auth)]):
            ...
    """
    return await services.auth_middleware.require_auth(request)


async def require_verified_email(
    request: Request,
    services: Annotated[IdentityServices, Depends(get_services)]
) -> Account:
    """Dependency that requires a valid access token and a verified email."""
    return await services.auth_middleware.require_verified_email(request)


def require_gateway(
    request: Request,
    services: Annotated[IdentityServices, Depends(get_services)]
) -> None:
    """
    Reject requests that did not come through the API gateway.

    Only enforced when a gateway secret is configured.
    """
    expected = services.gateway_secret
    if not expected:
        return

    presented = request.headers.get("X-Gateway-Key", "")
    if not hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8")):
        logger.warning(
            f"Gateway key rejected for {get_client_ip(request, services.trusted_proxy_count)}"
        )
        raise ForbiddenException(
            message="Forbidden: Only API Gateway allowed",
            code="GATEWAY_REQUIRED"
        )


async def rate_limit(
    request: Request,
    services: Annotated[IdentityServices, Depends(get_services)]
) -> None:
    """Apply the per-client sliding window limit to unauthenticated routes."""
    client_ip = get_client_ip(request, services.trusted_proxy_count)
    if not await services.rate_limiter.allow(client_ip):
        logger.warning(f"Rate limit exceeded for {client_ip}")
        raise RateLimitException(retry_after=services.rate_limiter.window_seconds)


def get_client_ip(request: Request, trusted_proxy_count: int = 0) -> str:
    """
    Extract the client IP address used to key rate limits.

    The socket peer is used unless ``trusted_proxy_count`` proxies are
    configured, in which case the X-Forwarded-For entry appended by the
    outermost trusted proxy is used. Entries left of it are client-supplied.
    """
    peer = request.client.host if request.client else "0.0.0.0"
    if trusted_proxy_count <= 0:
        return peer

    hops = [
        hop.strip()
        for hop in request.headers.get("X-Forwarded-For", "").split(",")
        if hop.strip()
    ]
    if len(hops) < trusted_proxy_count:
        return peer
    return hops[-trusted_proxy_count]
