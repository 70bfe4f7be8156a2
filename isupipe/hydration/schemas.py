"""
isupipe - Response models

Field defaults are the zero values used when a referenced row is missing:
User() and Livestream() are the zero entities.
"""

from typing import List

from pydantic import BaseModel, Field


class Theme(BaseModel):
    """User theme."""
    id: int = 0
    dark_mode: bool = False


class User(BaseModel):
    """Hydrated user."""
    id: int = 0
    name: str = ""
    display_name: str = ""
    description: str = ""
    theme: Theme = Field(default_factory=Theme)
    icon_hash: str = ""


class Tag(BaseModel):
    id: int = 0
    name: str = ""


class Livestream(BaseModel):
    """Hydrated livestream with its owner and tags."""
    id: int = 0
    owner: User = Field(default_factory=User)
    title: str = ""
    description: str = ""
    playlist_url: str = ""
    thumbnail_url: str = ""
    tags: List[Tag] = Field(default_factory=list)
    start_at: int = 0
    end_at: int = 0


class Reaction(BaseModel):
    """Hydrated reaction (response of both reaction endpoints)."""
    id: int
    emoji_name: str
    user: User
    livestream: Livestream
    created_at: int


class PostReactionRequest(BaseModel):
    emoji_name: str
