"""Tests for card state transitions."""
import math
from datetime import timedelta

import pytest

from cardwise.core.exceptions import CorruptCardState, InvalidRating
from cardwise.models.card import Card
from cardwise.models.enums import CardState, Rating
from cardwise.services.card_state_machine import (
    apply_review,
    elapsed_days_since_review,
    next_state,
    validate_stored_state,
)


def make_card(now, **overrides):
    values = dict(
        id=1,
        user_id="alice",
        word="hello",
        translation="hola",
        state=CardState.LEARNING.value,
        due=now,
        created_at=now,
    )
    values.update(overrides)
    return Card(**values)


def review_card(now, stability=10.0, difficulty=5.0, elapsed=12.0, **overrides):
    return make_card(
        now,
        state=overrides.pop("state", CardState.REVIEW.value),
        stability=stability,
        difficulty=difficulty,
        reps=overrides.pop("reps", 4),
        lapses=overrides.pop("lapses", 0),
        scheduled_days=10.0,
        last_reviewed_at=now - timedelta(days=elapsed),
        **overrides,
    )


class TestNextState:
    @pytest.mark.parametrize(
        "state,rating,stability,expected",
        [
            (CardState.LEARNING, Rating.AGAIN, 50.0, CardState.LEARNING),
            (CardState.LEARNING, Rating.HARD, 1.0, CardState.LEARNING),
            (CardState.LEARNING, Rating.GOOD, 3.7, CardState.REVIEW),
            (CardState.LEARNING, Rating.PERFECT, 21.0, CardState.REVIEW),
            (CardState.REVIEW, Rating.AGAIN, 2.0, CardState.RELEARNING),
            (CardState.REVIEW, Rating.HARD, 0.5, CardState.REVIEW),
            (CardState.REVIEW, Rating.EASY, 80.0, CardState.REVIEW),
            (CardState.RELEARNING, Rating.AGAIN, 9.0, CardState.RELEARNING),
            (CardState.RELEARNING, Rating.HARD, 1.5, CardState.RELEARNING),
            (CardState.RELEARNING, Rating.GOOD, 5.0, CardState.REVIEW),
        ],
    )
    def test_transition_table(self, params, state, rating, stability, expected):
        assert next_state(state, rating, stability, params) == expected


class TestApplyReview:
    def test_new_card_rated_perfect_graduates(self, params, t0):
        card = make_card(t0)

        outcome = apply_review(card, Rating.PERFECT, t0, params)

        assert outcome.state == CardState.REVIEW
        assert outcome.stability == pytest.approx(21.0)
        assert outcome.scheduled_days == pytest.approx(21.0)
        assert outcome.due == t0 + timedelta(days=outcome.scheduled_days)
        assert outcome.reps == 1
        assert outcome.lapses == 0
        assert outcome.elapsed_days == 0.0
        assert outcome.last_reviewed_at == t0

    def test_new_card_rated_again_stays_in_learning_with_short_step(self, params, t0):
        outcome = apply_review(make_card(t0), Rating.AGAIN, t0, params)

        assert outcome.state == CardState.LEARNING
        assert outcome.due == t0 + timedelta(minutes=params.learning_step_minutes)
        assert outcome.lapses == 1

    def test_hard_then_good_graduates_learning_card(self, params, t0):
        card = make_card(t0)
        first = apply_review(card, Rating.HARD, t0, params)
        assert first.state == CardState.LEARNING

        later = first.due
        second = apply_review(first.apply_to(card), Rating.GOOD, later, params)

        assert second.state == CardState.REVIEW
        assert second.stability > first.stability
        assert second.scheduled_days >= 1.0
        assert second.reps == 2

    def test_review_lapse_moves_to_relearning(self, params, t0):
        card = review_card(t0, stability=10.0, difficulty=5.0, elapsed=12.0)

        outcome = apply_review(card, Rating.AGAIN, t0, params)

        assert outcome.state == CardState.RELEARNING
        assert outcome.stability < 10.0
        assert outcome.lapses == 1
        assert outcome.reps == 5
        assert outcome.elapsed_days == pytest.approx(12.0)
        assert outcome.due == t0 + timedelta(minutes=params.relearning_step_minutes)

    def test_relearning_recovers_to_review(self, params, t0):
        card = review_card(
            t0, stability=2.6, difficulty=6.2, elapsed=10 / 1440, state=CardState.RELEARNING.value, lapses=1
        )

        outcome = apply_review(card, Rating.GOOD, t0, params)

        assert outcome.state == CardState.REVIEW
        assert outcome.lapses == 1
        assert outcome.due >= t0 + timedelta(days=1)

    def test_successful_review_stays_in_review(self, params, t0):
        card = review_card(t0, elapsed=10.0)

        outcome = apply_review(card, Rating.GOOD, t0, params)

        assert outcome.state == CardState.REVIEW
        assert outcome.stability > 10.0
        assert outcome.due == t0 + timedelta(days=outcome.scheduled_days)

    def test_input_card_is_not_modified(self, params, t0):
        card = review_card(t0)
        before = card.model_dump()

        outcome = apply_review(card, Rating.EASY, t0, params)
        updated = outcome.apply_to(card)

        assert card.model_dump() == before
        assert updated.state == outcome.state.value
        assert updated.version == card.version

    def test_invalid_rating(self, params, t0):
        with pytest.raises(InvalidRating):
            apply_review(make_card(t0), 7, t0, params)


class TestStoredStateValidation:
    def test_new_card_is_valid(self, params, t0):
        assert validate_stored_state(make_card(t0), params) == CardState.LEARNING

    def test_reviewed_card_difficulty_out_of_bounds(self, params, t0):
        card = review_card(t0, difficulty=50.0)

        with pytest.raises(CorruptCardState) as exc_info:
            validate_stored_state(card, params)
        assert "difficulty" in exc_info.value.reason

    def test_reviewed_card_difficulty_at_bounds(self, params, t0):
        assert validate_stored_state(review_card(t0, difficulty=params.difficulty_max), params) == CardState.REVIEW
        assert validate_stored_state(review_card(t0, difficulty=params.difficulty_min), params) == CardState.REVIEW

    @pytest.mark.parametrize(
        "overrides",
        [
            {"state": 9},
            {"stability": -1.0},
            {"stability": math.nan},
            {"difficulty": math.inf},
            {"elapsed_days": -0.5},
            {"scheduled_days": -3.0},
            {"reps": -1},
            {"lapses": -2},
            {"due": None},
            {"reps": 3, "stability": 0.0},
            {"reps": 3, "stability": 4.0, "difficulty": 50.0},
            {"reps": 1, "stability": 2.0, "difficulty": 0.5},
        ],
    )
    def test_corrupt_state_rejected(self, params, t0, overrides):
        card = make_card(t0, **overrides)

        with pytest.raises(CorruptCardState) as exc_info:
            apply_review(card, Rating.GOOD, t0, params)
        assert exc_info.value.card_id == 1


class TestElapsedDays:
    def test_never_reviewed(self, t0):
        assert elapsed_days_since_review(make_card(t0), t0) == 0.0

    def test_fractional_days(self, t0):
        card = make_card(t0, last_reviewed_at=t0 - timedelta(hours=36))
        assert elapsed_days_since_review(card, t0) == pytest.approx(1.5)

    def test_clock_skew_clamped_to_zero(self, t0):
        card = make_card(t0, last_reviewed_at=t0 + timedelta(hours=2))
        assert elapsed_days_since_review(card, t0) == 0.0
