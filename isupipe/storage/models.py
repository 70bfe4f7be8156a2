"""
isupipe - Row models

Plain rows as they come out of Postgres, before hydration. Response shapes
live in isupipe.hydration.schemas.
"""

from typing import Any, Dict
from dataclasses import dataclass


@dataclass(frozen=True)
class ReactionModel:
    """One reaction event. id is 0 until the store assigns one."""
    emoji_name: str
    user_id: int
    livestream_id: int
    created_at: int           # epoch seconds
    id: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'ReactionModel':
        return cls(
            id=row['id'],
            emoji_name=row['emoji_name'],
            user_id=row['user_id'],
            livestream_id=row['livestream_id'],
            created_at=row['created_at'],
        )


@dataclass(frozen=True)
class UserModel:
    id: int
    name: str
    display_name: str
    description: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'UserModel':
        return cls(
            id=row['id'],
            name=row['name'],
            display_name=row['display_name'] or '',
            description=row['description'] or '',
        )


@dataclass(frozen=True)
class ThemeModel:
    id: int
    user_id: int
    dark_mode: bool

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'ThemeModel':
        return cls(id=row['id'], user_id=row['user_id'], dark_mode=row['dark_mode'])


@dataclass(frozen=True)
class IconModel:
    """Latest icon of a user, reduced to its hex SHA-256."""
    user_id: int
    icon_hash: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'IconModel':
        return cls(user_id=row['user_id'], icon_hash=row['icon_hash'])


@dataclass(frozen=True)
class LivestreamModel:
    id: int
    user_id: int              # owner
    title: str
    description: str
    playlist_url: str
    thumbnail_url: str
    start_at: int
    end_at: int

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'LivestreamModel':
        return cls(
            id=row['id'],
            user_id=row['user_id'],
            title=row['title'],
            description=row['description'] or '',
            playlist_url=row['playlist_url'] or '',
            thumbnail_url=row['thumbnail_url'] or '',
            start_at=row['start_at'],
            end_at=row['end_at'],
        )


@dataclass(frozen=True)
class TagModel:
    """Tag attached to a livestream (one row per livestream_tags entry)."""
    livestream_id: int
    id: int
    name: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'TagModel':
        return cls(livestream_id=row['livestream_id'], id=row['id'], name=row['name'])
