"""
Card model.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, Index, Integer, func
from typing import Optional, List
from datetime import datetime

from cardwise.models.enums import CardState
from cardwise.utils.time_utils import utc_now


class Card(SQLModel, table=True):
    """Card table - a vocabulary item and its scheduling state."""
    __tablename__ = "card"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="user.id", ondelete="CASCADE", index=True)

    # Learning content
    word: str
    translation: str = Field(default="")
    context: str = Field(default="")  # Sample sentences, newline-delimited

    # Scheduling state
    state: int = Field(default=CardState.LEARNING.value, sa_column=Column(Integer, nullable=False))
    due: datetime = Field(default_factory=utc_now, index=True)
    stability: float = Field(default=0.0)
    difficulty: float = Field(default=0.0)
    elapsed_days: float = Field(default=0.0)
    scheduled_days: float = Field(default=0.0)
    reps: int = Field(default=0)
    lapses: int = Field(default=0)

    created_at: datetime = Field(default_factory=utc_now)
    last_reviewed_at: Optional[datetime] = None
    version: int = Field(default=1)  # Bumped on every write, used for compare-and-swap

    # Relationships
    user: Optional["User"] = Relationship(back_populates="cards")

    @property
    def sentences(self) -> List[str]:
        """Sample sentences in order, blank lines dropped."""
        return [line.strip() for line in (self.context or "").split("\n") if line.strip()]

    def clone(self) -> "Card":
        """Detached copy carrying the same column values."""
        return Card(**self.model_dump())


# One card per user for a given word and translation, ignoring case and surrounding spaces
Index(
    "uq_card_user_word_translation_ci",
    Card.__table__.c.user_id,
    func.lower(func.trim(Card.__table__.c.word)),
    func.lower(func.trim(Card.__table__.c.translation)),
    unique=True,
)
