"""
Custom exceptions for the application.
"""


class CardwiseException(Exception):
    """Base exception for all Cardwise application exceptions."""
    pass


class ValidationError(CardwiseException):
    """Raised when validation fails."""
    pass


class NotFoundError(CardwiseException):
    """Raised when a requested resource is not found."""
    pass


class ConflictError(CardwiseException):
    """Raised when there's a conflict (e.g., duplicate entry)."""
    pass


class InvalidCardData(ValidationError):
    """Raised when card content is missing or malformed."""
    pass


class InvalidRating(ValidationError):
    """Raised when a rating is outside the 1..5 scale."""

    def __init__(self, rating) -> None:
        self.rating = rating
        super().__init__(f"Rating must be an integer between 1 and 5, got {rating!r}")


class CardNotFound(NotFoundError):
    """Raised when a card does not exist or belongs to another user."""

    def __init__(self, user_id: str, card_id: int) -> None:
        self.user_id = user_id
        self.card_id = card_id
        super().__init__(f"Card {card_id} not found for user {user_id}")


class DuplicateCard(ConflictError):
    """Raised when the user already has a card with the same word and translation."""

    def __init__(self, word: str, existing_card_id: int) -> None:
        self.word = word
        self.existing_card_id = existing_card_id
        super().__init__(f"Card for '{word}' already exists (id={existing_card_id})")


class ConcurrentUpdate(ConflictError):
    """Raised when a card was modified between read and write."""

    def __init__(self, card_id: int) -> None:
        self.card_id = card_id
        super().__init__(f"Card {card_id} was modified concurrently; reload and retry")


class CorruptCardState(CardwiseException):
    """Raised when a stored card violates scheduling invariants."""

    def __init__(self, card_id, reason: str) -> None:
        self.card_id = card_id
        self.reason = reason
        super().__init__(f"Card {card_id} has invalid stored state: {reason}")


class RepositoryUnavailable(CardwiseException):
    """Raised when the persistence layer cannot be reached. Safe to retry."""
    pass


class InvalidLabelData(ValidationError):
    """Raised when label input is missing or malformed."""
    pass


class LabelNotFound(NotFoundError):
    """Raised when a label does not exist or is not visible to the user."""

    def __init__(self, user_id: str, label_id) -> None:
        self.user_id = user_id
        self.label_id = label_id
        super().__init__(f"Label {label_id} not found for user {user_id}")


class DuplicateLabel(ConflictError):
    """Raised when the user already has a label with the same name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Label '{name}' already exists")
