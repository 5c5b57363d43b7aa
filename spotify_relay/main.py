"""
FastAPI Application Factory
============================

Entry point for the Spotify login relay.

Routes:
    - /login        : Redirect to Spotify's authorization page
    - /callback     : Complete the login, return profile + session token
    - /health       : Health check endpoint

Environment Variables Required:
    - SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET: Spotify application credentials
    - SPOTIFY_REDIRECT_URI: Redirect URI registered with Spotify
    - JWT_SECRET: Secret for signing session JWTs
    - FIREBASE_SERVICE_ACCOUNT_BASE64: Service account key (Firestore backend)
    - PORT: Listening port (default: 3001)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn spotify_relay.main:create_app --factory --reload --port 3001

    Production:
        spotify-relay
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .auth import auth_router
from .config import Settings, get_settings, validate_configuration
from .users import InMemoryUserRepository, UserRepository, create_firestore_repository

SERVICE_NAME = "spotify-relay"


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def build_user_repository(settings: Settings) -> UserRepository:
    """Create the user store selected by USER_STORE_BACKEND."""
    if settings.USER_STORE_BACKEND == "memory":
        return InMemoryUserRepository()

    return create_firestore_repository(
        settings.service_account_info,
        settings.firebase_project_id,
    )


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging and report configuration problems
        - Connect the user store
        - Open the shared HTTP client used for Spotify calls

    Shutdown tasks:
        - Close the HTTP client
    """
    settings: Settings = app.state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("spotify_relay.main")

    status = validate_configuration(settings)
    for warning in status["warnings"]:
        logger.warning(f"Configuration warning: {warning}")
    if not status["valid"]:
        for error in status["errors"]:
            logger.error(f"Configuration error: {error}")
        raise RuntimeError("Invalid configuration: " + "; ".join(status["errors"]))

    # Store first: a failed Firebase init must not leave the HTTP client open
    app.state.user_repository = build_user_repository(settings)
    app.state.http_client = httpx.AsyncClient(
        timeout=settings.SPOTIFY_HTTP_TIMEOUT_SECONDS,
    )

    logger.info(
        "Spotify relay started",
        extra={
            "service": SERVICE_NAME,
            "version": __version__,
            "user_store_backend": settings.USER_STORE_BACKEND,
            "port": settings.PORT,
        }
    )

    yield

    logger.info("Shutting down Spotify relay")

    await app.state.http_client.aclose()

    logger.info("Spotify relay shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Lifespan management
        - CORS middleware
        - Route handlers
        - Exception handlers

    Args:
        settings: Configuration to use; loaded from the environment if omitted

    Raises:
        ValidationError: If the environment configuration is missing or invalid
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Spotify Login Relay",
        description="Login with Spotify and receive a session token",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    origins = settings.allowed_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)

    @app.get("/health", tags=["System"])
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint.
        """
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__,
        }

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, Any]:
        """
        Root endpoint with service information.
        """
        return {
            "service": SERVICE_NAME,
            "version": __version__,
            "endpoints": {
                "login": "/login",
                "callback": "/callback",
                "health": "/health",
                "docs": "/docs",
            },
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Log unhandled errors and return a generic 500 response.
        """
        logger = logging.getLogger("spotify_relay.main")
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
        )

    return app


def run() -> None:
    """Console entry point: serve the relay with uvicorn."""
    settings = get_settings()

    uvicorn.run(
        "spotify_relay.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
