"""
isupipe - Livestream hydration

livestreams row -> Livestream {owner, tags}. The owner goes through
UserHydrator (a dependent lookup), tags through a grouped lookup.
"""

from typing import Dict, Iterable, List, Optional, Sequence
import logging

from isupipe.hydration.assembler import lookup_or_zero
from isupipe.hydration.resolver import GroupResolver, ReferenceResolver
from isupipe.hydration.schemas import Livestream, Tag, User
from isupipe.hydration.users import UserHydrator
from isupipe.storage.models import LivestreamModel, TagModel
from isupipe.storage.unit_of_work import Transaction

logger = logging.getLogger(__name__)

LIVESTREAMS_BY_ID = ReferenceResolver(
    'livestreams',
    """
    SELECT id, user_id, title, description, playlist_url, thumbnail_url, start_at, end_at
    FROM livestreams
    WHERE id = ANY(%s)
    """,
    LivestreamModel.from_row,
    lambda livestream: livestream.id
)

TAGS_BY_LIVESTREAM = GroupResolver(
    'livestream_tags',
    """
    SELECT lt.livestream_id, t.id, t.name
    FROM livestream_tags lt
    JOIN tags t ON t.id = lt.tag_id
    WHERE lt.livestream_id = ANY(%s)
    ORDER BY lt.id
    """,
    TagModel.from_row,
    lambda tag: tag.livestream_id
)


class LivestreamHydrator:
    """Hydrates livestream rows with their owner and tags."""

    def __init__(
        self,
        user_hydrator: UserHydrator,
        livestreams: Optional[ReferenceResolver] = None,
        tags: Optional[GroupResolver] = None
    ):
        self.user_hydrator = user_hydrator
        self.livestreams = livestreams or LIVESTREAMS_BY_ID
        self.tags = tags or TAGS_BY_LIVESTREAM

    def hydrate_map(self, tx: Transaction, livestreams: Sequence[LivestreamModel]) -> Dict[int, Livestream]:
        """
        Hydrate livestream rows, keyed by livestream id.

        A missing owner hydrates to the zero User; no tags to [].
        """
        if not livestreams:
            return {}

        owners = self.user_hydrator.resolve(tx, [ls.user_id for ls in livestreams])
        tags = self.tags.resolve(tx, [ls.id for ls in livestreams])

        return {
            ls.id: Livestream(
                id=ls.id,
                owner=lookup_or_zero(owners, ls.user_id, User),
                title=ls.title,
                description=ls.description,
                playlist_url=ls.playlist_url,
                thumbnail_url=ls.thumbnail_url,
                tags=[Tag(id=tag.id, name=tag.name) for tag in tags.get(ls.id, [])],
                start_at=ls.start_at,
                end_at=ls.end_at
            )
            for ls in livestreams
        }

    def hydrate(self, tx: Transaction, livestreams: Sequence[LivestreamModel]) -> List[Livestream]:
        by_id = self.hydrate_map(tx, livestreams)
        return [by_id[ls.id] for ls in livestreams]

    def resolve(self, tx: Transaction, livestream_ids: Iterable[int]) -> Dict[int, Livestream]:
        """Look up livestreams by id and hydrate them. Unknown ids are absent."""
        rows = self.livestreams.resolve(tx, livestream_ids)
        return self.hydrate_map(tx, list(rows.values()))
