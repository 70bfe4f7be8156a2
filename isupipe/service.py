"""
isupipe - Reaction service

One request, one unit of work:

    validate -> begin -> read/write reactions -> hydrate -> commit

Any failure before commit leaves the unit of work uncommitted, so it rolls
back on exit and the error propagates unchanged to the caller.
"""

import re
import time
from typing import Callable, List, Optional

import structlog

from isupipe.auth import AuthResult
from isupipe.errors import ValidationError
from isupipe.hydration.reactions import ReactionHydrator
from isupipe.hydration.schemas import Reaction
from isupipe.storage.database import Database
from isupipe.storage.models import ReactionModel
from isupipe.storage.reaction_store import ReactionStore
from isupipe.storage.unit_of_work import Cancellation

logger = structlog.get_logger()

_INTEGER = re.compile(r'[+-]?[0-9]+')

INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1


def _parse_int64(raw: Optional[str]) -> Optional[int]:
    """ASCII decimal within the bigint range, else None."""
    if raw is None or not _INTEGER.fullmatch(raw):
        return None
    value = int(raw)
    if not INT64_MIN <= value <= INT64_MAX:
        return None
    return value


def parse_id(raw: str, name: str) -> int:
    """
    Parse an integer path parameter.

    Raises:
        ValidationError: raw is not a 64-bit integer
    """
    value = _parse_int64(raw)
    if value is None:
        raise ValidationError(f"{name} in path must be integer")
    return value


def parse_limit(raw: Optional[str]) -> Optional[int]:
    """
    Parse the optional limit query parameter.

    Returns:
        None when absent or empty, otherwise a non-negative int

    Raises:
        ValidationError: Not an integer, or negative
    """
    if raw is None or raw == "":
        return None
    value = _parse_int64(raw)
    if value is None or value < 0:
        raise ValidationError("limit query parameter must be integer")
    return value


class ReactionService:
    """
    Reaction listing and posting.

    Args:
        database: Source of units of work
        hydrator: Reaction hydrator
        store: Reaction accessor
        clock: Epoch-seconds clock for created_at
    """

    def __init__(
        self,
        database: Database,
        hydrator: ReactionHydrator,
        store: Optional[ReactionStore] = None,
        clock: Callable[[], int] = lambda: int(time.time())
    ):
        self.database = database
        self.hydrator = hydrator
        self.store = store or ReactionStore()
        self.clock = clock

    def list_reactions(
        self,
        livestream_id: int,
        limit: Optional[int] = None,
        cancellation: Optional[Cancellation] = None
    ) -> List[Reaction]:
        """
        Hydrated reactions of a livestream, newest first.

        Raises:
            ValidationError: Malformed limit
            FactQueryError: The listing query failed
            StoreError: Hydration or commit failed
        """
        with self.database.unit_of_work(cancellation) as uow:
            reactions = self.store.list_for_livestream(uow.transaction, livestream_id, limit)
            hydrated = self.hydrator.hydrate(uow.transaction, reactions)
            uow.commit()

        logger.debug(
            "reactions.list.hydrated",
            livestream_id=livestream_id,
            limit=limit,
            count=len(hydrated)
        )
        return hydrated

    def post_reaction(
        self,
        auth: AuthResult,
        livestream_id: int,
        emoji_name: str,
        cancellation: Optional[Cancellation] = None
    ) -> Reaction:
        """
        Insert a reaction by the authenticated user and return it hydrated.

        The inserted row is hydrated in the same transaction, before commit.

        Raises:
            ValidationError: Empty emoji_name
            StoreError: Insert, hydration or commit failed
        """
        if not emoji_name:
            raise ValidationError("emoji_name must not be empty")

        reaction = ReactionModel(
            emoji_name=emoji_name,
            user_id=auth.user_id,
            livestream_id=livestream_id,
            created_at=self.clock()
        )

        with self.database.unit_of_work(cancellation) as uow:
            reaction = self.store.insert(uow.transaction, reaction)
            hydrated = self.hydrator.hydrate(uow.transaction, [reaction])
            uow.commit()

        logger.info(
            "reactions.post.committed",
            reaction_id=reaction.id,
            livestream_id=livestream_id,
            user_id=auth.user_id
        )
        return hydrated[0]
