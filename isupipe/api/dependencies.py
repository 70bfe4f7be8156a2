"""
isupipe API - Dependencies

Shared dependencies for the FastAPI application:
- Service handles (built at startup, stored on app.state)
- Session verification
- POST path and body decoding, ordered around session verification
- Request ID generation
- Running a unit of work off the event loop with cancellation
"""

import uuid
from functools import partial
from typing import Any, Callable, TypeVar

import anyio
from fastapi import Depends, HTTPException, Request
import structlog

from isupipe.auth import AuthResult, SessionVerifier
from isupipe.config import IsupipeConfig
from isupipe.errors import AuthError, StoreError, ValidationError
from isupipe.hydration.schemas import PostReactionRequest
from isupipe.service import ReactionService, parse_id
from isupipe.storage.database import Database
from isupipe.storage.unit_of_work import Cancellation

logger = structlog.get_logger()

T = TypeVar('T')


def get_config(request: Request) -> IsupipeConfig:
    return request.app.state.config


def get_database(request: Request) -> Database:
    """
    Database handle created at startup.

    Raises:
        HTTPException: 503 if startup did not complete
    """
    database = getattr(request.app.state, "database", None)
    if database is None:
        logger.error("database.not_initialized")
        raise HTTPException(
            status_code=503,
            detail="Database connection pool not initialized"
        )
    return database


def get_reaction_service(request: Request) -> ReactionService:
    return request.app.state.reaction_service


def get_session_verifier(request: Request) -> SessionVerifier:
    return request.app.state.session_verifier


def verify_user_session(
    request: Request,
    verifier: SessionVerifier = Depends(get_session_verifier),
    config: IsupipeConfig = Depends(get_config)
) -> AuthResult:
    """
    Verify the session cookie.

    Runs on the threadpool (plain def) since it reads user_sessions.

    Returns:
        AuthResult of the acting user

    Raises:
        HTTPException: 401/403 on a bad session, 500 if the lookup failed
    """
    request_id = getattr(request.state, "request_id", None)
    token = request.cookies.get(config.request.session_cookie_name)

    try:
        auth = verifier.verify(token)
    except AuthError as e:
        logger.warning(
            "auth.session_rejected",
            request_id=request_id,
            status_code=e.status_code,
            reason=e.message
        )
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except StoreError as e:
        logger.error("auth.session_lookup_failed", exc_info=e, request_id=request_id)
        raise HTTPException(status_code=500, detail="failed to verify session")

    logger.debug("auth.session_valid", request_id=request_id, user_id=auth.user_id)
    return auth


def livestream_id_param(livestream_id: str) -> int:
    """livestream_id path parameter, 400 when not an integer."""
    try:
        return parse_id(livestream_id, "livestream_id")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


async def reaction_request_body(request: Request) -> PostReactionRequest:
    """
    Decode the POST reaction body.

    Declared after verify_user_session, so the body of an anonymous request
    is never read.
    """
    try:
        return PostReactionRequest.model_validate(await request.json())
    except ValueError as e:
        logger.warning(
            "request.invalid_body",
            request_id=getattr(request.state, "request_id", None),
            error=str(e)
        )
        raise HTTPException(status_code=400, detail="failed to decode the request body as json")


async def run_unit_of_work(request: Request, func: Callable[..., T], *args: Any) -> T:
    """
    Run a blocking service call on a worker thread.

    func receives a Cancellation keyword argument. If this coroutine is
    cancelled (client disconnect, shutdown) the worker is released and the
    cancellation is set, so the unit of work rolls back at its next statement
    or at commit instead of committing.
    """
    config: IsupipeConfig = request.app.state.config
    cancellation = Cancellation(timeout=config.request.deadline_seconds())

    try:
        return await anyio.to_thread.run_sync(
            partial(func, *args, cancellation=cancellation),
            abandon_on_cancel=True
        )
    except anyio.get_cancelled_exc_class():
        cancellation.cancel()
        logger.warning(
            "request.cancelled",
            request_id=getattr(request.state, "request_id", None),
            path=request.url.path
        )
        raise


def generate_request_id() -> str:
    """
    Generate unique request ID for tracing.

    Returns:
        Request ID (UUID4)
    """
    return f"req_{uuid.uuid4().hex[:12]}"
