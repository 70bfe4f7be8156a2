"""
isupipe - Reaction store

Parameterized reads and writes on the reactions table. Every call runs on the
caller's Transaction.
"""

from dataclasses import replace
from typing import List, Optional
import logging

from isupipe.errors import FactQueryError, StoreError, UnitOfWorkCancelled, ValidationError
from isupipe.storage.models import ReactionModel
from isupipe.storage.unit_of_work import Transaction

logger = logging.getLogger(__name__)

LIST_REACTIONS_SQL = """
    SELECT id, emoji_name, user_id, livestream_id, created_at
    FROM reactions
    WHERE livestream_id = %s
    ORDER BY created_at DESC
"""

INSERT_REACTION_SQL = """
    INSERT INTO reactions (user_id, livestream_id, emoji_name, created_at)
    VALUES (%s, %s, %s, %s)
    RETURNING id
"""


BIGINT_MAX = 2 ** 63 - 1


def validate_limit(limit: Optional[int]) -> Optional[int]:
    """
    Check a limit before it reaches SQL.

    Raises:
        ValidationError: limit is not a non-negative bigint
    """
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0 or limit > BIGINT_MAX:
        raise ValidationError("limit query parameter must be integer")
    return limit


class ReactionStore:
    """Accessor for reaction events."""

    def list_for_livestream(
        self,
        tx: Transaction,
        livestream_id: int,
        limit: Optional[int] = None
    ) -> List[ReactionModel]:
        """
        Reactions of a livestream, newest first.

        Args:
            tx: Open transaction
            livestream_id: Livestream to list
            limit: Optional maximum row count, bound as a parameter

        Returns:
            Reactions ordered by created_at descending; [] for an unknown
            livestream

        Raises:
            ValidationError: Malformed limit (no statement executed)
            FactQueryError: The listing query failed
        """
        limit = validate_limit(limit)

        sql = LIST_REACTIONS_SQL
        params = [livestream_id]
        if limit is not None:
            sql += "    LIMIT %s\n"
            params.append(limit)

        try:
            rows = tx.query(sql, params)
        except UnitOfWorkCancelled:
            raise
        except StoreError as e:
            raise FactQueryError(f"failed to get reactions: {e}") from e

        logger.debug(f"Listed {len(rows)} reactions for livestream {livestream_id}")
        return [ReactionModel.from_row(row) for row in rows]

    def insert(self, tx: Transaction, reaction: ReactionModel) -> ReactionModel:
        """
        Insert one reaction.

        Returns:
            The same reaction with its store-assigned id

        Raises:
            StoreError: Insert failed or returned no id
        """
        row = tx.execute(
            INSERT_REACTION_SQL,
            (reaction.user_id, reaction.livestream_id, reaction.emoji_name, reaction.created_at)
        )
        if not row or row.get('id') is None:
            raise StoreError("failed to get last inserted reaction id")

        logger.debug(f"Inserted reaction {row['id']} on livestream {reaction.livestream_id}")
        return replace(reaction, id=row['id'])
