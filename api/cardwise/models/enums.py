"""
Model enums.
"""
from enum import Enum


class CardState(int, Enum):
    """Scheduling state of a card."""
    LEARNING = 0
    REVIEW = 1
    RELEARNING = 2


class Rating(int, Enum):
    """Recall quality submitted when answering a card."""
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4
    PERFECT = 5

    @classmethod
    def parse(cls, value) -> "Rating":
        """
        Convert caller input into a Rating.

        Booleans, floats with a fractional part and anything outside 1..5
        are rejected rather than coerced.

        Raises:
            InvalidRating: If the value is not a rating on the 1..5 scale
        """
        from cardwise.core.exceptions import InvalidRating

        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidRating(value)
        if isinstance(value, float):
            if not value.is_integer():
                raise InvalidRating(value)
            value = int(value)
        try:
            return cls(value)
        except (ValueError, TypeError):
            raise InvalidRating(value) from None
