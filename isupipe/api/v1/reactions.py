"""
isupipe API v1 - Reaction Endpoints

- GET  /api/v1/livestream/{livestream_id}/reaction
- POST /api/v1/livestream/{livestream_id}/reaction

Status mapping: malformed input 400, bad session 401/403, listing query
failure 404, any other store failure 500.

GET verifies the session before parsing its path. POST parses its path,
then verifies the session, then reads the body.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
import structlog

from isupipe.api.dependencies import (
    get_reaction_service,
    livestream_id_param,
    reaction_request_body,
    run_unit_of_work,
    verify_user_session
)
from isupipe.auth import AuthResult
from isupipe.errors import FactQueryError, StoreError, ValidationError
from isupipe.hydration.schemas import PostReactionRequest, Reaction
from isupipe.service import ReactionService, parse_id, parse_limit

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1")


@router.get("/livestream/{livestream_id}/reaction", response_model=List[Reaction])
async def get_reactions(
    request: Request,
    livestream_id: str,
    limit: Optional[str] = Query(None, description="Maximum number of reactions"),
    auth: AuthResult = Depends(verify_user_session),
    service: ReactionService = Depends(get_reaction_service)
):
    """
    List reactions of a livestream, newest first.

    Path Parameters:
        - livestream_id: Livestream ID (integer)

    Query Parameters:
        - limit: Maximum number of reactions (non-negative integer, optional)

    Returns:
        List of hydrated reactions (empty list if none)

    Raises:
        400: Malformed livestream_id or limit
        404: Reaction query failed
        500: Hydration or commit failed
    """
    request_id = request.state.request_id

    try:
        livestream_id_int = parse_id(livestream_id, "livestream_id")
        limit_int = parse_limit(limit)

        logger.info(
            "reactions.list",
            request_id=request_id,
            livestream_id=livestream_id_int,
            limit=limit_int,
            user_id=auth.user_id
        )

        reactions = await run_unit_of_work(
            request, service.list_reactions, livestream_id_int, limit_int
        )

        logger.info(
            "reactions.list.success",
            request_id=request_id,
            livestream_id=livestream_id_int,
            count=len(reactions)
        )

        return reactions

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except FactQueryError as e:
        logger.warning("reactions.list.query_failed", exc_info=e, request_id=request_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="failed to get reactions"
        )
    except StoreError as e:
        logger.error("reactions.list.error", exc_info=e, request_id=request_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="failed to fill reaction"
        )


@router.post(
    "/livestream/{livestream_id}/reaction",
    response_model=Reaction,
    status_code=status.HTTP_201_CREATED
)
async def post_reaction(
    request: Request,
    livestream_id: int = Depends(livestream_id_param),
    auth: AuthResult = Depends(verify_user_session),
    body: PostReactionRequest = Depends(reaction_request_body),
    service: ReactionService = Depends(get_reaction_service)
):
    """
    Post a reaction as the session user.

    The path is checked before the session and the body after it.

    Body:
        {"emoji_name": "..."}

    Returns:
        The hydrated reaction (201)

    Raises:
        400: Malformed livestream_id or body
        401/403: Bad session
        500: Insert, hydration or commit failed
    """
    request_id = request.state.request_id

    try:
        logger.info(
            "reactions.post",
            request_id=request_id,
            livestream_id=livestream_id,
            user_id=auth.user_id,
            emoji_name=body.emoji_name
        )

        reaction = await run_unit_of_work(
            request, service.post_reaction, auth, livestream_id, body.emoji_name
        )

        logger.info(
            "reactions.post.success",
            request_id=request_id,
            reaction_id=reaction.id
        )

        return reaction

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreError as e:
        logger.error("reactions.post.error", exc_info=e, request_id=request_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="failed to post reaction"
        )
