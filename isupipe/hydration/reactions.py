"""
isupipe - Reaction hydration

Reaction rows -> Reaction responses. For any number of reactions this issues
a fixed number of batched queries: users (plus their themes and icons) and
livestreams (plus owners, owner themes and icons, and tags).
"""

from typing import List, Sequence
import logging

from isupipe.hydration.assembler import assemble_reactions
from isupipe.hydration.livestreams import LivestreamHydrator
from isupipe.hydration.schemas import Reaction
from isupipe.hydration.users import UserHydrator
from isupipe.storage.models import ReactionModel
from isupipe.storage.unit_of_work import Transaction

logger = logging.getLogger(__name__)


class ReactionHydrator:

    def __init__(self, user_hydrator: UserHydrator, livestream_hydrator: LivestreamHydrator):
        self.user_hydrator = user_hydrator
        self.livestream_hydrator = livestream_hydrator

    @classmethod
    def build(cls, fallback_icon_hash: str) -> 'ReactionHydrator':
        """Hydrator wired with the default resolvers."""
        users = UserHydrator(fallback_icon_hash)
        return cls(users, LivestreamHydrator(users))

    def hydrate(self, tx: Transaction, reactions: Sequence[ReactionModel]) -> List[Reaction]:
        """
        Fill reaction responses.

        Args:
            tx: Transaction that read or wrote the reactions
            reactions: Raw reactions

        Returns:
            One Reaction per input row, same order

        Raises:
            StoreError: Any lookup failed
        """
        if not reactions:
            return []

        users = self.user_hydrator.resolve(tx, [r.user_id for r in reactions])
        livestreams = self.livestream_hydrator.resolve(tx, [r.livestream_id for r in reactions])

        logger.debug(
            f"Hydrating {len(reactions)} reactions "
            f"({len(users)} users, {len(livestreams)} livestreams resolved)"
        )

        return assemble_reactions(reactions, users, livestreams)
