"""
User model.
"""
from sqlmodel import SQLModel, Field, Relationship
from typing import List
from datetime import datetime

from cardwise.utils.time_utils import utc_now


class User(SQLModel, table=True):
    """User table - owner of a deck of cards, created lazily on first card."""
    __tablename__ = "user"

    id: str = Field(primary_key=True)  # Opaque external identifier
    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    cards: List["Card"] = Relationship(back_populates="user", cascade_delete=True)
