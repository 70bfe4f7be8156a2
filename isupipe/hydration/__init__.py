"""
isupipe - Hydration

Batched resolution of reaction foreign keys into response objects:
- ReferenceResolver / GroupResolver: one query per key set
- UserHydrator / LivestreamHydrator: nested aggregates
- assemble_reactions: order-preserving join with zero values on misses
- ReactionHydrator: all of the above for reaction rows
"""

from isupipe.hydration.assembler import assemble_reactions, lookup_or_zero
from isupipe.hydration.livestreams import LivestreamHydrator
from isupipe.hydration.reactions import ReactionHydrator
from isupipe.hydration.resolver import GroupResolver, ReferenceResolver, distinct_keys
from isupipe.hydration.schemas import Livestream, Reaction, Tag, Theme, User
from isupipe.hydration.users import UserHydrator

__all__ = [
    'assemble_reactions',
    'lookup_or_zero',
    'distinct_keys',
    'GroupResolver',
    'ReferenceResolver',
    'UserHydrator',
    'LivestreamHydrator',
    'ReactionHydrator',
    'Livestream',
    'Reaction',
    'Tag',
    'Theme',
    'User'
]
