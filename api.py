"""
Identity Service FastAPI Application

Main entry point for the identity API: registration, login, multi-device
sessions, email verification, password recovery and cached profile reads.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Common library imports
from common.cache import RedisCache
from common.database import MongoDB
from common.utils import (
    APIException,
    InternalServerException,
    ValidationException,
    error_response,
    success_response,
)

# App-specific imports
from identity.config import Settings, settings
from identity.auth.dependencies import init_services
from identity.routers import auth_router
from identity.user.services import USER_INDEXES

logger = logging.getLogger(__name__)


# =============================================================================
# Connection Instances
# =============================================================================
main_db = MongoDB()
cache = RedisCache()


# =============================================================================
# Application Lifespan
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown tasks like database and cache connections
    and service initialization.
    """
    app_settings: Settings = app.state.settings

    # Startup
    logging.basicConfig(
        level=app_settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("Starting Identity API...")

    app_settings.validate_required()

    await main_db.connect(
        uri=app_settings.MONGODB_URI,
        database_name=app_settings.MONGODB_DATABASE,
        indexes=USER_INDEXES,
    )
    await cache.connect(app_settings.REDIS_URL)

    services = init_services(app, app_settings, db=main_db.db, cache=cache)

    logger.info("Identity API started successfully!")

    yield

    # Shutdown
    logger.info("Shutting down Identity API...")
    await services.orchestrator.wait_for_dispatches()
    await cache.close()
    await main_db.disconnect()
    logger.info("Identity API shut down complete.")


# =============================================================================
# Exception Handlers
# =============================================================================
def _field_path(loc: tuple) -> str:
    # Drop the "body" / "query" source prefix
    parts = [str(part) for part in loc[1:]] if len(loc) > 1 else [str(part) for part in loc]
    return ".".join(parts)


def _clean_message(message: str) -> str:
    prefix = "Value error, "
    return message[len(prefix):] if message.startswith(prefix) else message


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response(),
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"path": _field_path(tuple(err.get("loc", ()))), "message": _clean_message(err.get("msg", ""))}
        for err in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Validation error"
    return await api_exception_handler(
        request, ValidationException(message=message, errors=errors)
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Can't find {request.url.path} on this server"
    else:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return await api_exception_handler(request, InternalServerException())


# =============================================================================
# FastAPI Application
# =============================================================================
def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Services are attached by the lifespan on startup; tests may instead set
    ``app.state.services`` directly and skip the lifespan.
    """
    app_settings = app_settings or settings

    app = FastAPI(
        title="Identity API",
        description="Credential and session lifecycle service",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if app_settings.is_development() else None,
        redoc_url="/redoc" if app_settings.is_development() else None,
    )
    app.state.settings = app_settings

    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # =========================================================================
    # CORS Middleware
    # =========================================================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.get_cors_origins(),
        allow_credentials=app_settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Include Routers
    # =========================================================================
    app.include_router(auth_router, prefix=app_settings.API_PREFIX, tags=["Authentication"])

    # =========================================================================
    # Health Check Endpoint
    # =========================================================================
    @app.get("/health", tags=["Health"])
    async def health():
        """
        Health check endpoint.

        Returns the status of the API and its database and cache connections.
        """
        return success_response({
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": await main_db.ping(),
            "cache": await cache.ping(),
        })

    return app


app = create_app()


# =============================================================================
# Run with Uvicorn
# =============================================================================
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development(),
    )
