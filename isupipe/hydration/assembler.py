"""
isupipe - Response assembler

Joins raw reactions with resolved users and livestreams. Exactly one
response per input row, in input order. A key missing from its map becomes
the zero entity; rows are never dropped and misses never raise.
"""

from typing import Callable, Dict, List, Mapping, Sequence, TypeVar
import logging

from isupipe.hydration.schemas import Livestream, Reaction, User
from isupipe.storage.models import ReactionModel

logger = logging.getLogger(__name__)

K = TypeVar('K')
V = TypeVar('V')


def lookup_or_zero(resolved: Mapping[K, V], key: K, zero: Callable[[], V]) -> V:
    """Resolved entity for key, or a fresh zero value on a miss."""
    entity = resolved.get(key)
    if entity is None:
        logger.debug(f"Hydration gap: no {getattr(zero, '__name__', 'entity')} for key {key}")
        return zero()
    return entity


def assemble_reactions(
    reactions: Sequence[ReactionModel],
    users: Dict[int, User],
    livestreams: Dict[int, Livestream]
) -> List[Reaction]:
    """
    Build reaction responses.

    Args:
        reactions: Raw reactions, in the order to return them
        users: Hydrated users by id
        livestreams: Hydrated livestreams by id

    Returns:
        One Reaction per input row, same order
    """
    return [
        Reaction(
            id=reaction.id,
            emoji_name=reaction.emoji_name,
            user=lookup_or_zero(users, reaction.user_id, User),
            livestream=lookup_or_zero(livestreams, reaction.livestream_id, Livestream),
            created_at=reaction.created_at
        )
        for reaction in reactions
    ]
