"""
isupipe - User hydration

users row -> User {theme, icon_hash}. Themes and icons are two independent
batched lookups keyed by user id.
"""

from typing import Dict, Iterable, List, Optional, Sequence
import logging

from isupipe.hydration.resolver import ReferenceResolver
from isupipe.hydration.schemas import Theme, User
from isupipe.storage.models import IconModel, ThemeModel, UserModel
from isupipe.storage.unit_of_work import Transaction

logger = logging.getLogger(__name__)

USERS_BY_ID = ReferenceResolver(
    'users',
    """
    SELECT id, name, display_name, description
    FROM users
    WHERE id = ANY(%s)
    """,
    UserModel.from_row,
    lambda user: user.id
)

THEMES_BY_USER = ReferenceResolver(
    'themes',
    """
    SELECT id, user_id, dark_mode
    FROM themes
    WHERE user_id = ANY(%s)
    ORDER BY id
    """,
    ThemeModel.from_row,
    lambda theme: theme.user_id
)

# Latest icon per user; only the digest leaves the database.
ICONS_BY_USER = ReferenceResolver(
    'icons',
    """
    SELECT DISTINCT ON (user_id) user_id, encode(sha256(image), 'hex') AS icon_hash
    FROM icons
    WHERE user_id = ANY(%s)
    ORDER BY user_id, id DESC
    """,
    IconModel.from_row,
    lambda icon: icon.user_id
)


class UserHydrator:
    """
    Hydrates user rows.

    Args:
        fallback_icon_hash: icon_hash for users without an icon
    """

    def __init__(
        self,
        fallback_icon_hash: str,
        users: Optional[ReferenceResolver] = None,
        themes: Optional[ReferenceResolver] = None,
        icons: Optional[ReferenceResolver] = None
    ):
        self.fallback_icon_hash = fallback_icon_hash
        self.users = users or USERS_BY_ID
        self.themes = themes or THEMES_BY_USER
        self.icons = icons or ICONS_BY_USER

    def hydrate_map(self, tx: Transaction, users: Sequence[UserModel]) -> Dict[int, User]:
        """
        Hydrate user rows, keyed by user id.

        Args:
            tx: Caller's transaction
            users: Raw user rows

        Returns:
            Mapping of user id to User
        """
        if not users:
            return {}

        user_ids = [user.id for user in users]
        themes = self.themes.resolve(tx, user_ids)
        icons = self.icons.resolve(tx, user_ids)

        hydrated: Dict[int, User] = {}
        for user in users:
            theme = themes.get(user.id)
            icon = icons.get(user.id)
            hydrated[user.id] = User(
                id=user.id,
                name=user.name,
                display_name=user.display_name,
                description=user.description,
                theme=Theme(id=theme.id, dark_mode=theme.dark_mode) if theme else Theme(),
                icon_hash=icon.icon_hash if icon else self.fallback_icon_hash
            )

        return hydrated

    def hydrate(self, tx: Transaction, users: Sequence[UserModel]) -> List[User]:
        """Hydrate user rows, preserving their order."""
        by_id = self.hydrate_map(tx, users)
        return [by_id[user.id] for user in users]

    def resolve(self, tx: Transaction, user_ids: Iterable[int]) -> Dict[int, User]:
        """Look up users by id and hydrate them. Unknown ids are absent."""
        rows = self.users.resolve(tx, user_ids)
        return self.hydrate_map(tx, list(rows.values()))
