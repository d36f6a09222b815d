"""
Label endpoints.
"""
from fastapi import APIRouter, Depends, Query, Response, status
from typing import List
import logging

from cardwise.api.v1.dependencies import get_scheduling_engine
from cardwise.schemas.card import CardResponse
from cardwise.schemas.label import CreateLabelRequest, LabelResponse, UpdateLabelRequest
from cardwise.services.scheduling_service import SchedulingEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/labels", tags=["labels"])


@router.get("", response_model=List[LabelResponse])
def list_labels(
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Get the system labels and the user's own labels."""
    return [LabelResponse.model_validate(label) for label in engine.list_labels(user)]


@router.get("/system", response_model=List[LabelResponse])
def list_system_labels(
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Get the built-in labels shared by every user."""
    return [LabelResponse.model_validate(label) for label in engine.list_system_labels()]


@router.post("", response_model=LabelResponse, status_code=status.HTTP_201_CREATED)
def create_label(
    request: CreateLabelRequest,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Create a label for a user. The user is created on first use."""
    label = engine.create_label(
        user,
        name=request.name,
        color=request.color,
        description=request.description,
    )
    return LabelResponse.model_validate(label)


@router.put("/{label_id}", response_model=LabelResponse)
def update_label(
    label_id: int,
    request: UpdateLabelRequest,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Edit one of the user's labels. System labels cannot be edited."""
    label = engine.update_label(
        user,
        label_id,
        name=request.name,
        color=request.color,
        description=request.description,
    )
    return LabelResponse.model_validate(label)


@router.delete("/{label_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_label(
    label_id: int,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Delete one of the user's labels and detach it from every card."""
    engine.delete_label(user, label_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{label_id}/cards", response_model=List[CardResponse])
def get_cards_by_label(
    label_id: int,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Get the user's cards carrying a label, oldest first."""
    return [CardResponse.model_validate(card) for card in engine.get_cards_by_label(user, label_id)]
