"""
Card endpoints.
"""
from fastapi import APIRouter, Depends, Query, Response, status
from typing import List, Optional
import logging

from cardwise.api.v1.dependencies import get_scheduling_engine
from cardwise.schemas.card import (
    AnswerCardRequest,
    CardPageResponse,
    CardResponse,
    CardStatsResponse,
    CreateCardRequest,
    UpdateCardRequest,
)
from cardwise.schemas.label import AddCardLabelRequest, LabelResponse
from cardwise.services.scheduling_service import SchedulingEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cards", tags=["cards"])


@router.post("", response_model=CardResponse, status_code=status.HTTP_201_CREATED)
def create_card(
    request: CreateCardRequest,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """
    Create a card for a user. The user is created on first use.

    New cards start in the Learning state and are due immediately.
    """
    card = engine.create_card(
        user,
        word=request.word,
        translation=request.translation,
        context=request.context,
        labels=request.labels,
    )
    return CardResponse.model_validate(card)


@router.get("/due", response_model=List[CardResponse])
def get_due_cards(
    user: str = Query(..., description="User ID"),
    label_id: Optional[int] = Query(None, description="Only cards carrying this label"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Get the cards due for review, most overdue first."""
    cards = engine.get_due_cards(user, label_id=label_id)
    return [CardResponse.model_validate(card) for card in cards]


@router.get("/stats", response_model=CardStatsResponse)
def get_card_stats(
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Get total, due and per-state card counts."""
    stats = engine.get_stats(user)
    return CardStatsResponse(
        total=stats.total,
        due=stats.due,
        learning=stats.learning,
        review=stats.review,
        relearning=stats.relearning,
    )


@router.get("/search", response_model=List[CardResponse])
def search_cards(
    user: str = Query(..., description="User ID"),
    q: str = Query("", description="Text to look for in word or translation"),
    limit: Optional[int] = Query(None, ge=1, description="Maximum results (capped by server setting)"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """
    Search a user's cards by word or translation.

    Exact matches first, then prefix matches, then the most recent others.
    """
    return [CardResponse.model_validate(card) for card in engine.search_similar(user, q, limit)]


@router.get("", response_model=CardPageResponse)
def list_cards(
    user: str = Query(..., description="User ID"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    order_by: str = Query("word", description="word, created_at, due or state"),
    order_dir: str = Query("asc", description="asc or desc"),
    search: Optional[str] = Query(None, description="Filter by word"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Get all of a user's cards with optional pagination, sorting and word filter."""
    page = engine.list_cards(
        user,
        limit=limit,
        offset=offset,
        order_by=order_by,
        descending=order_dir.lower() == "desc",
        search=search,
    )
    return CardPageResponse(
        cards=[CardResponse.model_validate(card) for card in page.cards],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )


@router.get("/{card_id}", response_model=CardResponse)
def get_card(
    card_id: int,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Get a single card."""
    return CardResponse.model_validate(engine.get_card(user, card_id))


@router.post("/{card_id}/answer", response_model=CardResponse)
def answer_card(
    card_id: int,
    request: AnswerCardRequest,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """
    Answer a card with a rating from 1 (Again) to 5 (Perfect).

    Returns the rescheduled card. A 409 means another answer for the same card
    was recorded first; reload the card before answering again.
    """
    card = engine.answer_card(user, card_id, request.rating)
    return CardResponse.model_validate(card)


@router.put("/{card_id}", response_model=CardResponse)
def update_card(
    card_id: int,
    request: UpdateCardRequest,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Edit a card's word, translation or sample sentences. Scheduling is unchanged."""
    card = engine.update_card_content(
        user,
        card_id,
        word=request.word,
        translation=request.translation,
        context=request.context,
    )
    return CardResponse.model_validate(card)


@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_card(
    card_id: int,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Delete a card."""
    engine.delete_card(user, card_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{card_id}/labels", response_model=List[LabelResponse])
def get_card_labels(
    card_id: int,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Get the labels attached to a card."""
    return [LabelResponse.model_validate(label) for label in engine.get_card_labels(user, card_id)]


@router.post("/{card_id}/labels", response_model=List[LabelResponse])
def add_label_to_card(
    card_id: int,
    request: AddCardLabelRequest,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Attach a label to a card and return the card's labels."""
    labels = engine.add_label_to_card(user, card_id, request.label_id)
    return [LabelResponse.model_validate(label) for label in labels]


@router.delete("/{card_id}/labels/{label_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_label_from_card(
    card_id: int,
    label_id: int,
    user: str = Query(..., description="User ID"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Detach a label from a card."""
    engine.remove_label_from_card(user, card_id, label_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
