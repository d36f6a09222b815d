"""
Card state machine.

Learning -> Review once stability clears the graduation threshold, Review ->
Relearning on a lapse, Relearning -> Review again after recovery. There is no
terminal state. Every transition runs the memory model first and decides
graduation from the new stability.
"""
import math
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Union

from cardwise.core.exceptions import CorruptCardState
from cardwise.models.card import Card
from cardwise.models.enums import CardState, Rating
from cardwise.services.memory_model import SchedulerParameters, compute_memory_state
from cardwise.utils.time_utils import days_between

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewOutcome:
    """Scheduling fields produced by one review."""
    state: CardState
    stability: float
    difficulty: float
    elapsed_days: float
    scheduled_days: float
    due: datetime
    reps: int
    lapses: int
    last_reviewed_at: datetime
    retrievability: float

    def apply_to(self, card: Card) -> Card:
        """Return a copy of card carrying this outcome; the input is not modified."""
        updated = card.clone()
        updated.state = self.state.value
        updated.stability = self.stability
        updated.difficulty = self.difficulty
        updated.elapsed_days = self.elapsed_days
        updated.scheduled_days = self.scheduled_days
        updated.due = self.due
        updated.reps = self.reps
        updated.lapses = self.lapses
        updated.last_reviewed_at = self.last_reviewed_at
        return updated


def next_state(
    state: CardState,
    rating: Rating,
    new_stability: float,
    params: SchedulerParameters,
) -> CardState:
    """
    Resolve the state a card moves to after a rating.

    Args:
        state: State before the review
        rating: Submitted rating
        new_stability: Stability computed by the memory model for this review
        params: Scheduler parameters (graduation threshold)

    Returns:
        The next CardState
    """
    graduated = new_stability >= params.graduation_stability

    if state == CardState.LEARNING:
        if rating == Rating.AGAIN:
            return CardState.LEARNING
        return CardState.REVIEW if graduated else CardState.LEARNING

    if state == CardState.REVIEW:
        if rating == Rating.AGAIN:
            return CardState.RELEARNING
        return CardState.REVIEW

    # Relearning
    if rating == Rating.AGAIN:
        return CardState.RELEARNING
    return CardState.REVIEW if graduated else CardState.RELEARNING


def _is_non_negative(value) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and value >= 0


def validate_stored_state(card: Card, params: SchedulerParameters) -> CardState:
    """
    Check a stored card satisfies the scheduling invariants.

    Stored data is never repaired here; any violation is reported.

    Args:
        card: Card as loaded from the repository
        params: Scheduler parameters (difficulty bounds)

    Returns:
        The card's state as a CardState

    Raises:
        CorruptCardState: If the stored state violates an invariant
    """
    try:
        state = CardState(card.state)
    except ValueError:
        raise CorruptCardState(card.id, f"unknown state {card.state!r}") from None

    for name in ("stability", "difficulty", "elapsed_days", "scheduled_days"):
        value = getattr(card, name)
        if not _is_non_negative(value):
            raise CorruptCardState(card.id, f"{name} must be a finite non-negative number, got {value!r}")

    for name in ("reps", "lapses"):
        value = getattr(card, name)
        if not isinstance(value, int) or value < 0:
            raise CorruptCardState(card.id, f"{name} must be a non-negative integer, got {value!r}")

    if card.due is None:
        raise CorruptCardState(card.id, "due is missing")

    if card.reps > 0 and card.stability == 0:
        raise CorruptCardState(card.id, "reviewed card has zero stability")

    # New cards keep difficulty 0 until their first review
    if card.reps > 0 and not params.difficulty_min <= card.difficulty <= params.difficulty_max:
        raise CorruptCardState(
            card.id,
            f"difficulty {card.difficulty!r} outside [{params.difficulty_min}, {params.difficulty_max}]",
        )

    return state


def elapsed_days_since_review(card: Card, now: datetime) -> float:
    """Days between the card's last review and now; 0 if never reviewed or if now precedes it."""
    if card.last_reviewed_at is None:
        return 0.0
    return max(0.0, days_between(card.last_reviewed_at, now))


def apply_review(
    card: Card,
    rating: Union[Rating, int],
    now: datetime,
    params: SchedulerParameters,
) -> ReviewOutcome:
    """
    Compute the scheduling outcome of answering a card.

    Pure: the card is only read. Cards that stay in (or drop into) a learning
    state come back after the short learning/relearning step; cards in Review
    come back after the interval chosen by the memory model.

    Args:
        card: Card before the review
        rating: Submitted rating
        now: Review instant (naive UTC)
        params: Scheduler parameters

    Returns:
        ReviewOutcome with every field to persist

    Raises:
        InvalidRating: If rating is outside 1..5
        CorruptCardState: If the stored card violates an invariant
    """
    rating = Rating.parse(rating)
    state = validate_stored_state(card, params)
    elapsed = elapsed_days_since_review(card, now)

    memory = compute_memory_state(
        state=state,
        stability=card.stability,
        difficulty=card.difficulty,
        elapsed_days=elapsed,
        rating=rating,
        params=params,
    )

    new_state = next_state(state, rating, memory.stability, params)
    if new_state == CardState.REVIEW:
        scheduled_days = memory.scheduled_days
    else:
        scheduled_days = params.step_days(new_state)

    logger.debug(
        f"Card {card.id}: {state.name} -> {new_state.name} (rating={rating.name}, "
        f"elapsed={elapsed:.3f}d, r={memory.retrievability:.3f}, "
        f"stability {card.stability:.3f} -> {memory.stability:.3f})"
    )

    return ReviewOutcome(
        state=new_state,
        stability=memory.stability,
        difficulty=memory.difficulty,
        elapsed_days=elapsed,
        scheduled_days=scheduled_days,
        due=now + timedelta(days=scheduled_days),
        reps=card.reps + 1,
        lapses=card.lapses + (1 if rating == Rating.AGAIN else 0),
        last_reviewed_at=now,
        retrievability=memory.retrievability,
    )
