"""
Label schemas.
"""
from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime


class LabelResponse(BaseModel):
    """Label response schema."""
    id: int
    name: str
    type: str
    user_id: Optional[str] = None
    color: str
    description: str = ""
    created_at: datetime

    class Config:
        from_attributes = True


class CreateLabelRequest(BaseModel):
    """Request schema for creating a user label."""
    name: Any = None
    color: Any = Field(None, description="Display color, defaults to #3B82F6")
    description: Any = None


class UpdateLabelRequest(BaseModel):
    """Request schema for editing a label. Omitted fields keep their value."""
    name: Any = None
    color: Any = None
    description: Any = None


class AddCardLabelRequest(BaseModel):
    """Request schema for attaching a label to a card."""
    label_id: Any = None
