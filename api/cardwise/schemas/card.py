"""
Card schemas.
"""
from pydantic import BaseModel, Field
from typing import Any, List, Optional
from datetime import datetime
from cardwise.models.enums import CardState


class CardResponse(BaseModel):
    """Card response schema."""
    id: int
    user_id: str
    word: str
    translation: str = ""
    context: str = ""
    sentences: List[str] = []
    state: CardState
    due: datetime
    stability: float
    difficulty: float
    elapsed_days: float
    scheduled_days: float
    reps: int
    lapses: int
    created_at: datetime
    last_reviewed_at: Optional[datetime] = None
    version: int

    class Config:
        from_attributes = True


class CreateCardRequest(BaseModel):
    """Request schema for creating a card.

    Fields are untyped so malformed content reaches the engine and is reported
    as InvalidCardData (400) rather than a schema error.
    """
    word: Any = None
    translation: Any = None
    context: Any = Field(None, description="Sample sentences, newline-delimited text or a list")
    labels: Any = Field(None, description="Ids of labels to attach")


class UpdateCardRequest(BaseModel):
    """Request schema for editing card content. Omitted translation or context keep their value."""
    word: Any = None
    translation: Any = None
    context: Any = None


class AnswerCardRequest(BaseModel):
    """Request schema for answering a card."""
    rating: Any = Field(None, description="1=Again, 2=Hard, 3=Good, 4=Easy, 5=Perfect")


class CardPageResponse(BaseModel):
    """Response schema for a page of cards."""
    cards: List[CardResponse]
    total: int
    limit: Optional[int] = None
    offset: int = 0
    has_more: bool = False


class CardStatsResponse(BaseModel):
    """Card counts for a user."""
    total: int
    due: int
    learning: int
    review: int
    relearning: int


class DeleteUserResponse(BaseModel):
    """Response schema for deleting a user."""
    user_id: str
    cards_deleted: int
