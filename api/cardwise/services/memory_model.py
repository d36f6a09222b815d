"""
Memory model for spaced repetition scheduling.

Pure functions mapping (state, stability, difficulty, elapsed_days, rating) to
the next stability, difficulty and interval. The formulas follow the shape of
the FSRS family: retrievability decays exponentially with elapsed time
relative to stability, a lapse shrinks stability, and a successful recall
grows it by an amount that is larger the more the card had been forgotten.

Nothing in here reads the clock or touches storage; every constant comes from
SchedulerParameters.
"""
import math
from dataclasses import dataclass, field
from typing import Tuple, Union

from cardwise.models.enums import CardState, Rating

# Rating-indexed tables are ordered Again, Hard, Good, Easy, Perfect
RATING_COUNT = len(Rating)

SHORT_TERM_STATES = (CardState.LEARNING, CardState.RELEARNING)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class SchedulerParameters:
    """
    Tunable constants of the memory model and state machine.

    Defaults are calibrated on the published FSRS-4.5 preset, extended with a
    fifth (Perfect) rating.
    """

    initial_stability: Tuple[float, ...] = (0.4872, 1.4003, 3.7145, 13.8206, 21.0)
    initial_difficulty: Tuple[float, ...] = (7.2, 6.4, 5.3, 4.1, 3.2)
    difficulty_delta: Tuple[float, ...] = (1.2, 0.6, 0.0, -0.6, -1.0)
    growth_multiplier: Tuple[float, ...] = (0.0, 0.2272, 1.0, 2.8755, 3.6)

    difficulty_min: float = 1.0
    difficulty_max: float = 10.0
    min_stability: float = 0.1
    max_stability: float = 36500.0

    target_retention: float = 0.9
    desired_retention: float = 0.9
    max_interval_days: float = 36500.0

    lapse_factor: float = 2.1072
    lapse_difficulty_exponent: float = 0.0793
    lapse_stability_exponent: float = 0.3246
    lapse_retrievability_weight: float = 1.587

    recall_factor: float = 1.6474
    recall_stability_exponent: float = 0.1367
    recall_retrievability_weight: float = 1.0461
    short_term_growth: float = 1.0
    review_min_growth: float = 0.05

    graduation_stability: float = 2.0
    learning_step_minutes: float = 10.0
    relearning_step_minutes: float = 10.0

    @classmethod
    def from_settings(cls, settings) -> "SchedulerParameters":
        """
        Build parameters from application settings.

        Args:
            settings: Settings instance exposing srs_* fields

        Returns:
            Validated SchedulerParameters
        """
        params = cls(
            initial_stability=tuple(settings.srs_initial_stability),
            initial_difficulty=tuple(settings.srs_initial_difficulty),
            difficulty_delta=tuple(settings.srs_difficulty_delta),
            growth_multiplier=tuple(settings.srs_growth_multiplier),
            difficulty_min=settings.srs_difficulty_min,
            difficulty_max=settings.srs_difficulty_max,
            min_stability=settings.srs_min_stability,
            max_stability=settings.srs_max_stability,
            target_retention=settings.srs_target_retention,
            desired_retention=settings.srs_desired_retention,
            max_interval_days=settings.srs_max_interval_days,
            lapse_factor=settings.srs_lapse_factor,
            lapse_difficulty_exponent=settings.srs_lapse_difficulty_exponent,
            lapse_stability_exponent=settings.srs_lapse_stability_exponent,
            lapse_retrievability_weight=settings.srs_lapse_retrievability_weight,
            recall_factor=settings.srs_recall_factor,
            recall_stability_exponent=settings.srs_recall_stability_exponent,
            recall_retrievability_weight=settings.srs_recall_retrievability_weight,
            short_term_growth=settings.srs_short_term_growth,
            review_min_growth=settings.srs_review_min_growth,
            graduation_stability=settings.srs_graduation_stability,
            learning_step_minutes=settings.srs_learning_step_minutes,
            relearning_step_minutes=settings.srs_relearning_step_minutes,
        )
        return params.validate()

    def validate(self) -> "SchedulerParameters":
        """
        Check the parameter set is internally consistent.

        Returns:
            self, to allow chaining

        Raises:
            ValueError: If any constraint is violated
        """
        for name in ("initial_stability", "initial_difficulty", "difficulty_delta", "growth_multiplier"):
            table = getattr(self, name)
            if len(table) != RATING_COUNT:
                raise ValueError(f"{name} needs {RATING_COUNT} entries, got {len(table)}")
            if not all(math.isfinite(v) for v in table):
                raise ValueError(f"{name} must contain finite numbers")

        if not 0 < self.difficulty_min < self.difficulty_max:
            raise ValueError("difficulty bounds must satisfy 0 < difficulty_min < difficulty_max")
        if not 0 < self.min_stability <= self.max_stability:
            raise ValueError("stability bounds must satisfy 0 < min_stability <= max_stability")
        if not 0 < self.target_retention < 1:
            raise ValueError("target_retention must be between 0 and 1")
        if not 0 < self.desired_retention < 1:
            raise ValueError("desired_retention must be between 0 and 1")
        if self.max_interval_days < 1:
            raise ValueError("max_interval_days must be at least 1")
        if self.graduation_stability < 0:
            raise ValueError("graduation_stability cannot be negative")
        if self.learning_step_minutes <= 0 or self.relearning_step_minutes <= 0:
            raise ValueError("learning steps must be positive")
        if self.short_term_growth < 0:
            raise ValueError("short_term_growth cannot be negative")
        if self.review_min_growth < 0:
            raise ValueError("review_min_growth cannot be negative")

        if any(s <= 0 for s in self.initial_stability):
            raise ValueError("initial_stability entries must be positive")
        if any(b <= a for a, b in zip(self.initial_stability, self.initial_stability[1:])):
            raise ValueError("initial_stability must increase with rating")
        if any(b > a for a, b in zip(self.initial_difficulty, self.initial_difficulty[1:])):
            raise ValueError("initial_difficulty must not increase with rating")
        if any(b > a for a, b in zip(self.difficulty_delta, self.difficulty_delta[1:])):
            raise ValueError("difficulty_delta must not increase with rating")
        if self.difficulty_delta[Rating.AGAIN - 1] <= 0 or self.difficulty_delta[Rating.PERFECT - 1] >= 0:
            raise ValueError("difficulty_delta must be positive for Again and negative for Perfect")

        # Only Hard..Perfect grow stability; Again uses the lapse formula
        growth = self.growth_multiplier[Rating.HARD - 1:]
        if growth[0] < 0 or any(b <= a for a, b in zip(growth, growth[1:])):
            raise ValueError("growth_multiplier must be non-negative and increase from Hard to Perfect")

        return self

    def step_days(self, state: CardState) -> float:
        """Short interval in days used while a card stays in a learning state."""
        minutes = self.relearning_step_minutes if state == CardState.RELEARNING else self.learning_step_minutes
        return minutes / (24 * 60)


@dataclass(frozen=True)
class MemoryState:
    """Result of a single memory-model evaluation."""
    stability: float
    difficulty: float
    scheduled_days: float
    retrievability: float = field(default=1.0)


def retrievability(elapsed_days: float, stability: float, params: SchedulerParameters) -> float:
    """
    Estimated probability of recall after elapsed_days.

    Equals target_retention when elapsed_days == stability and decreases
    monotonically with elapsed time. A never-reviewed card (stability 0)
    is treated as fully retrievable.

    Args:
        elapsed_days: Days since the previous review (>= 0)
        stability: Current stability in days (>= 0)
        params: Scheduler parameters

    Returns:
        Retrievability in (0, 1]
    """
    if stability <= 0:
        return 1.0
    return params.target_retention ** (max(elapsed_days, 0.0) / stability)


def next_difficulty(difficulty: float, rating: Rating, params: SchedulerParameters) -> float:
    """Shift difficulty by the rating's delta and clamp it to the configured bounds."""
    return _clamp(
        difficulty + params.difficulty_delta[rating - 1],
        params.difficulty_min,
        params.difficulty_max,
    )


def lapse_stability(
    stability: float,
    difficulty: float,
    recall_probability: float,
    params: SchedulerParameters,
) -> float:
    """
    Stability after the card was forgotten (rated Again).

    Harder cards fall further. The result never exceeds the stability before
    the lapse and never drops below min_stability.
    """
    difficulty = _clamp(difficulty, params.difficulty_min, params.difficulty_max)
    forgotten = (
        params.lapse_factor
        * math.pow(difficulty, -params.lapse_difficulty_exponent)
        * (math.pow(stability + 1.0, params.lapse_stability_exponent) - 1.0)
        * math.exp(params.lapse_retrievability_weight * (1.0 - recall_probability))
    )
    return _clamp(min(forgotten, stability), params.min_stability, params.max_stability)


def recall_stability(
    stability: float,
    difficulty: float,
    recall_probability: float,
    rating: Rating,
    params: SchedulerParameters,
    short_term: bool = False,
) -> float:
    """
    Stability after a successful recall (rated Hard or better).

    Growth is larger for easier cards, for cards that were closer to being
    forgotten, and for higher ratings. Stability never decreases on success.
    The growth factor is floored (short_term_growth in learning states,
    review_min_growth in Review) so ratings still separate when the card is
    reviewed again almost immediately.

    Args:
        stability: Current stability (> 0)
        difficulty: Current difficulty
        recall_probability: Retrievability at the time of review
        rating: Hard, Good, Easy or Perfect
        params: Scheduler parameters
        short_term: True while the card is in a learning state, where reviews
            are minutes apart and retrievability alone would barely move it

    Returns:
        New stability within [min_stability, max_stability]
    """
    stability = max(stability, params.min_stability)
    difficulty = _clamp(difficulty, params.difficulty_min, params.difficulty_max)
    growth = (
        math.exp(params.recall_factor)
        * (params.difficulty_max + 1.0 - difficulty)
        * math.pow(stability, -params.recall_stability_exponent)
        * (math.exp((1.0 - recall_probability) * params.recall_retrievability_weight) - 1.0)
    )
    floor = params.short_term_growth if short_term else params.review_min_growth
    growth = max(growth, floor)
    grown = stability * (1.0 + growth * params.growth_multiplier[rating - 1])
    return _clamp(max(grown, stability), params.min_stability, params.max_stability)


def next_interval(stability: float, params: SchedulerParameters) -> float:
    """
    Days until the next review for a given stability.

    Picks the interval at which retrievability falls to desired_retention,
    bounded to [1, max_interval_days].
    """
    raw = stability * math.log(params.desired_retention) / math.log(params.target_retention)
    return _clamp(raw, 1.0, params.max_interval_days)


def compute_memory_state(
    state: Union[CardState, int],
    stability: float,
    difficulty: float,
    elapsed_days: float,
    rating: Union[Rating, int],
    params: SchedulerParameters,
) -> MemoryState:
    """
    Compute the next memory state for one review.

    A first-ever review (stability == 0) takes stability and difficulty from
    the rating-indexed base tables. Later reviews estimate retrievability from
    elapsed time, shift difficulty, and apply the lapse formula for Again or
    the growth formula otherwise.

    Args:
        state: Card state before the review
        stability: Current stability (>= 0)
        difficulty: Current difficulty
        elapsed_days: Days since the previous review (>= 0)
        rating: Rating on the 1..5 scale
        params: Scheduler parameters

    Returns:
        MemoryState with the new stability, difficulty and interval

    Raises:
        InvalidRating: If rating is outside 1..5
        ValueError: If numeric inputs are negative or not finite
    """
    rating = Rating.parse(rating)
    state = CardState(state)
    for name, value in (("stability", stability), ("difficulty", difficulty), ("elapsed_days", elapsed_days)):
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"{name} must be a finite non-negative number, got {value}")

    if stability == 0:
        new_stability = _clamp(
            params.initial_stability[rating - 1], params.min_stability, params.max_stability
        )
        new_difficulty = _clamp(
            params.initial_difficulty[rating - 1], params.difficulty_min, params.difficulty_max
        )
        recall_probability = 1.0
    else:
        recall_probability = retrievability(elapsed_days, stability, params)
        new_difficulty = next_difficulty(difficulty, rating, params)
        if rating == Rating.AGAIN:
            new_stability = lapse_stability(stability, difficulty, recall_probability, params)
        else:
            new_stability = recall_stability(
                stability,
                difficulty,
                recall_probability,
                rating,
                params,
                short_term=state in SHORT_TERM_STATES,
            )

    return MemoryState(
        stability=new_stability,
        difficulty=new_difficulty,
        scheduled_days=next_interval(new_stability, params),
        retrievability=recall_probability,
    )
