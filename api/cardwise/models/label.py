"""
Label models.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from typing import Optional
from datetime import datetime

from cardwise.utils.time_utils import utc_now

LABEL_TYPE_SYSTEM = "system"
LABEL_TYPE_USER = "user"
DEFAULT_LABEL_COLOR = "#3B82F6"

# Built-in labels shared by every user
SYSTEM_LABELS = (
    {"name": "word", "color": "#3B82F6", "description": "Cards created from individual words"},
    {"name": "sentence", "color": "#10B981", "description": "Cards created from sentences"},
)


class Label(SQLModel, table=True):
    """Label table - a tag for grouping cards. System labels have no owner."""
    __tablename__ = "label"
    __table_args__ = (
        UniqueConstraint("user_id", "name", "type", name="uq_label_user_name_type"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[str] = Field(default=None, foreign_key="user.id", ondelete="CASCADE", index=True)
    name: str
    type: str = Field(default=LABEL_TYPE_USER)  # 'system' or 'user'
    color: str = Field(default=DEFAULT_LABEL_COLOR)
    description: str = Field(default="")
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_system(self) -> bool:
        return self.type == LABEL_TYPE_SYSTEM

    def clone(self) -> "Label":
        """Detached copy carrying the same column values."""
        return Label(**self.model_dump())


class CardLabel(SQLModel, table=True):
    """Association table - a label attached to a card."""
    __tablename__ = "card_label"

    card_id: int = Field(foreign_key="card.id", ondelete="CASCADE", primary_key=True)
    label_id: int = Field(foreign_key="label.id", ondelete="CASCADE", primary_key=True, index=True)
    created_at: datetime = Field(default_factory=utc_now)
