"""
isupipe - Storage

Postgres access for the reactions service:
- Database / UnitOfWork / Transaction: one transaction per request
- ReactionStore: reads and writes on the reactions table
- Row models as they come out of Postgres
"""

from isupipe.storage.database import Database
from isupipe.storage.models import (
    ReactionModel,
    UserModel,
    ThemeModel,
    IconModel,
    LivestreamModel,
    TagModel
)
from isupipe.storage.reaction_store import ReactionStore
from isupipe.storage.unit_of_work import (
    Cancellation,
    Transaction,
    UnitOfWork,
    UnitOfWorkState
)

__all__ = [
    'Database',
    'Cancellation',
    'Transaction',
    'UnitOfWork',
    'UnitOfWorkState',
    'ReactionStore',
    'ReactionModel',
    'UserModel',
    'ThemeModel',
    'IconModel',
    'LivestreamModel',
    'TagModel'
]
