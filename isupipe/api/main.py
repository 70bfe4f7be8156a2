"""
isupipe API - Application Entrypoint

- Connection pool created at startup, closed at shutdown
- Database, ReactionService and SessionVerifier built once and kept on
  app.state; routes receive them through dependencies
- Structured JSON logs with request_id
- No stack traces to clients
"""

import os
from contextlib import asynccontextmanager
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from isupipe import __version__
from isupipe.api.dependencies import generate_request_id
from isupipe.api.v1 import health, reactions
from isupipe.auth import SessionVerifier
from isupipe.config import cors_origins_from_env, get_config
from isupipe.hydration.reactions import ReactionHydrator
from isupipe.service import ReactionService
from isupipe.storage.database import (
    close_connection_pool,
    create_database,
    init_connection_pool
)

load_dotenv()

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    - Load configuration
    - Open the connection pool
    - Build Database, ReactionService, SessionVerifier

    Shutdown:
    - Close the connection pool
    """
    logger.info("app.startup", version=__version__)

    try:
        config = get_config()
    except ValueError as e:
        logger.error("app.startup.failed", error=str(e))
        raise RuntimeError(str(e))

    pool = init_connection_pool(config.database)
    database = create_database(pool, config.database)

    app.state.config = config
    app.state.database = database
    app.state.reaction_service = ReactionService(
        database,
        ReactionHydrator.build(config.hydration.fallback_icon_hash)
    )
    app.state.session_verifier = SessionVerifier(database)

    logger.info("app.ready", status="healthy")

    try:
        yield
    finally:
        logger.info("app.shutdown")
        close_connection_pool(pool)


def create_app(cors_origins: Optional[List[str]] = None, use_lifespan: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        cors_origins: CORS allow-list (default: CORS_ORIGINS env)
        use_lifespan: Open the pool at startup; tests set app.state themselves
    """
    app = FastAPI(
        title="isupipe reactions API",
        description="Livestream reactions with batched response hydration",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan if use_lifespan else None
    )

    @app.middleware("http")
    async def add_request_id_middleware(request: Request, call_next):
        """Add request_id to request state and response headers."""
        request_id = generate_request_id()
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if cors_origins is not None else cors_origins_from_env(),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies are a 400, as in the rest of the API."""
        logger.warning(
            "request.invalid",
            request_id=getattr(request.state, "request_id", "unknown"),
            path=request.url.path,
            errors=exc.errors()
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "failed to decode the request body as json"}
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """No stack traces to clients; structured JSON error with request_id."""
        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
            method=request.method
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "internal_error",
                    "message": "An unexpected error occurred",
                    "request_id": request_id
                }
            }
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(reactions.router, tags=["reactions"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "isupipe.api.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("ENV", "production") == "development",
        log_level="info"
    )
