"""
Scheduling service - the card scheduling engine.

Orchestrates card creation, due-set selection and reviews on top of a
CardRepository. All scheduling math lives in the memory model and the card
state machine; this module validates input at the boundary, runs them, and
writes the result back with a compare-and-swap update.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Union

from cardwise.core.exceptions import (
    CardNotFound,
    CorruptCardState,
    DuplicateCard,
    InvalidCardData,
    InvalidLabelData,
    LabelNotFound,
    NotFoundError,
)
from cardwise.models.card import Card
from cardwise.models.label import DEFAULT_LABEL_COLOR, LABEL_TYPE_USER, Label
from cardwise.models.enums import CardState, Rating
from cardwise.repositories.card_repository import CardRepository
from cardwise.services.card_state_machine import apply_review
from cardwise.services.memory_model import SchedulerParameters
from cardwise.utils.text_utils import normalize_context, normalize_field
from cardwise.utils.time_utils import to_naive_utc

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 10

ContextInput = Union[str, Sequence[str], None]


@dataclass(frozen=True)
class CardStats:
    """Card counts for one user at one instant."""
    total: int = 0
    due: int = 0
    learning: int = 0
    review: int = 0
    relearning: int = 0


@dataclass(frozen=True)
class CardPage:
    """One page of a user's cards."""
    cards: List[Card]
    total: int
    limit: Optional[int]
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.cards) < self.total


def summarize_cards(cards: Sequence[Card], now: datetime) -> CardStats:
    """
    Aggregate counts over a snapshot of cards.

    Args:
        cards: All cards of one user
        now: Instant used to decide which cards are due

    Returns:
        CardStats with total, due and per-state counts
    """
    states = [card.state for card in cards]
    return CardStats(
        total=len(cards),
        due=sum(1 for card in cards if card.due <= now),
        learning=states.count(CardState.LEARNING),
        review=states.count(CardState.REVIEW),
        relearning=states.count(CardState.RELEARNING),
    )


class SchedulingEngine:
    """Entry point for every card operation of the application."""

    def __init__(
        self,
        repository: CardRepository,
        parameters: Optional[SchedulerParameters] = None,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> None:
        self.repository = repository
        self.parameters = (parameters or SchedulerParameters()).validate()
        self.search_limit = search_limit

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _require_user(user_id: Optional[str]) -> str:
        user_id = normalize_field(user_id)
        if not user_id:
            raise InvalidCardData("user is required")
        return user_id

    @staticmethod
    def _validate_content(word, translation, context):
        """Normalize card content; raise InvalidCardData when it is unusable."""
        if word is not None and not isinstance(word, str):
            raise InvalidCardData("word must be a string")
        if translation is not None and not isinstance(translation, str):
            raise InvalidCardData("translation must be a string")

        word = normalize_field(word)
        if not word:
            raise InvalidCardData("word cannot be empty")

        try:
            context = normalize_context(context)
        except ValueError as e:
            raise InvalidCardData(str(e)) from e

        return word, normalize_field(translation), context

    def _load(self, user_id: str, card_id: int) -> Card:
        card = self.repository.get_by_id(user_id, card_id)
        if card is None:
            raise CardNotFound(user_id, card_id)
        return card

    @staticmethod
    def _require_label_id(label_id) -> int:
        if isinstance(label_id, bool) or not isinstance(label_id, int):
            raise InvalidLabelData(f"label_id must be an integer, got {label_id!r}")
        return label_id

    def _load_label(self, user_id: str, label_id) -> Label:
        label = self.repository.get_label(user_id, self._require_label_id(label_id))
        if label is None:
            raise LabelNotFound(user_id, label_id)
        return label

    @staticmethod
    def _validate_label_fields(name, color, description):
        for field_name, value in (("name", name), ("color", color), ("description", description)):
            if value is not None and not isinstance(value, str):
                raise InvalidLabelData(f"{field_name} must be a string")
        return normalize_field(name), normalize_field(color), normalize_field(description)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def create_card(
        self,
        user_id: str,
        word: str,
        translation: Optional[str] = None,
        context: ContextInput = None,
        now: Optional[datetime] = None,
        labels: Optional[Sequence[int]] = None,
    ) -> Card:
        """
        Create a new card in the Learning state, due immediately.

        Args:
            user_id: Owner of the card; created on first use
            word: Word or phrase to learn (required, trimmed)
            translation: Optional translation
            context: Sample sentences as newline-delimited text or a list
            now: Creation instant, defaults to the current time
            labels: Ids of labels to attach to the new card

        Returns:
            The stored card

        Raises:
            InvalidCardData: If user or word is empty, or context is malformed
            InvalidLabelData: If labels is not a list of label ids
            LabelNotFound: If a label is not visible to the user
            DuplicateCard: If the user already has the same word and translation
        """
        user_id = self._require_user(user_id)
        word, translation, context = self._validate_content(word, translation, context)
        now = to_naive_utc(now)
        if labels is not None and not isinstance(labels, (list, tuple)):
            raise InvalidLabelData("labels must be a list of label ids")
        label_ids = [self._load_label(user_id, label_id).id for label_id in labels or ()]

        existing = self.repository.find_duplicate(user_id, word, translation)
        if existing is not None:
            raise DuplicateCard(word, existing.id)

        self.repository.ensure_user(user_id)
        card = self.repository.create(
            Card(
                user_id=user_id,
                word=word,
                translation=translation,
                context=context,
                state=CardState.LEARNING.value,
                due=now,
                stability=0.0,
                difficulty=0.0,
                elapsed_days=0.0,
                scheduled_days=0.0,
                reps=0,
                lapses=0,
                created_at=now,
                last_reviewed_at=None,
            )
        )
        for label_id in label_ids:
            self.repository.add_label_to_card(card.id, label_id)
        logger.info(f"Created card {card.id} ('{word}') for user {user_id}")
        return card

    def answer_card(
        self,
        user_id: str,
        card_id: int,
        rating: Union[Rating, int],
        now: Optional[datetime] = None,
    ) -> Card:
        """
        Record a review and reschedule the card.

        Runs as read-modify-write guarded by the repository's compare-and-swap:
        if another answer for the same card was written after this one read
        it, ConcurrentUpdate is raised and nothing is written. The engine does
        not retry.

        Args:
            user_id: Owner of the card
            card_id: Card to answer
            rating: Rating on the 1..5 scale
            now: Review instant, defaults to the current time

        Returns:
            The updated card

        Raises:
            InvalidRating: If rating is outside 1..5
            CardNotFound: If the card does not exist for this user
            CorruptCardState: If the stored card violates scheduling invariants
            ConcurrentUpdate: If the card changed between read and write
        """
        rating = Rating.parse(rating)
        user_id = self._require_user(user_id)
        now = to_naive_utc(now)

        card = self._load(user_id, card_id)
        try:
            outcome = apply_review(card, rating, now, self.parameters)
        except CorruptCardState as e:
            logger.error(f"Refusing to schedule card {card_id} for user {user_id}: {e.reason}")
            raise

        updated = self.repository.update(user_id, card_id, outcome.apply_to(card))
        logger.info(
            f"Answered card {card_id} for user {user_id}: rating={rating.name}, "
            f"state {CardState(card.state).name} -> {outcome.state.name}, "
            f"stability={outcome.stability:.2f}, due={outcome.due.isoformat()}"
        )
        return updated

    def update_card_content(
        self,
        user_id: str,
        card_id: int,
        word: str,
        translation: Optional[str] = None,
        context: ContextInput = None,
    ) -> Card:
        """
        Edit the learning content of a card without touching its schedule.

        Omitted translation or context keep their current values.

        Raises:
            InvalidCardData: If word is empty or context is malformed
            CardNotFound: If the card does not exist for this user
            ConcurrentUpdate: If the card changed between read and write
        """
        user_id = self._require_user(user_id)
        card = self._load(user_id, card_id)
        word, new_translation, new_context = self._validate_content(word, translation, context)

        edited = card.clone()
        edited.word = word
        if translation is not None:
            edited.translation = new_translation
        if context is not None:
            edited.context = new_context

        updated = self.repository.update(user_id, card_id, edited)
        logger.info(f"Updated content of card {card_id} for user {user_id}")
        return updated

    def delete_card(self, user_id: str, card_id: int) -> None:
        """
        Delete a card.

        Raises:
            CardNotFound: If the card does not exist for this user
        """
        user_id = self._require_user(user_id)
        if not self.repository.delete(user_id, card_id):
            raise CardNotFound(user_id, card_id)
        logger.info(f"Deleted card {card_id} for user {user_id}")

    def delete_user(self, user_id: str) -> int:
        """
        Delete a user together with all of their cards.

        Returns:
            Number of cards deleted

        Raises:
            NotFoundError: If the user does not exist
        """
        user_id = self._require_user(user_id)
        deleted = self.repository.delete_user(user_id)
        if deleted is None:
            raise NotFoundError(f"User {user_id} not found")
        logger.info(f"Deleted user {user_id} and {deleted} card(s)")
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_card(self, user_id: str, card_id: int) -> Card:
        """Fetch one card, raising CardNotFound if it does not exist for this user."""
        return self._load(self._require_user(user_id), card_id)

    def get_due_cards(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        label_id: Optional[int] = None,
    ) -> List[Card]:
        """
        Cards whose review time has arrived.

        Most overdue first: ordered by due ascending, ties by creation order.
        With label_id, only cards carrying that label.

        Raises:
            LabelNotFound: If label_id is not visible to the user
        """
        user_id = self._require_user(user_id)
        if label_id is not None:
            label_id = self._load_label(user_id, label_id).id
        return self.repository.get_due(user_id, to_naive_utc(now), label_id=label_id)

    def get_stats(self, user_id: str, now: Optional[datetime] = None) -> CardStats:
        """Total, due and per-state card counts from a single snapshot read."""
        user_id = self._require_user(user_id)
        cards, _ = self.repository.list_cards(user_id)
        return summarize_cards(cards, to_naive_utc(now))

    def search_similar(self, user_id: str, query: str, limit: Optional[int] = None) -> List[Card]:
        """
        Cards whose word or translation contains query (case-insensitive).

        Exact word matches rank first, then exact translations, then word
        prefixes, then translation prefixes, then other matches; most recent
        first within a rank. The
        result is capped at the configured search limit.
        """
        user_id = self._require_user(user_id)
        if limit is None or limit <= 0 or limit > self.search_limit:
            limit = self.search_limit
        return self.repository.search(user_id, query or "", limit)

    def list_cards(
        self,
        user_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: str = "word",
        descending: bool = False,
        search: Optional[str] = None,
    ) -> CardPage:
        """Page through all of a user's cards, optionally filtered by word."""
        user_id = self._require_user(user_id)
        offset = max(0, offset)
        cards, total = self.repository.list_cards(
            user_id, limit=limit, offset=offset, order_by=order_by, descending=descending, search=search
        )
        return CardPage(cards=cards, total=total, limit=limit, offset=offset)

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------
    def list_labels(self, user_id: str) -> List[Label]:
        """System labels followed by the user's own labels, each group by name."""
        return self.repository.list_labels(self._require_user(user_id))

    def list_system_labels(self) -> List[Label]:
        """The built-in labels shared by every user."""
        return self.repository.list_labels(None)

    def create_label(
        self,
        user_id: str,
        name: str,
        color: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Label:
        """
        Create a user label.

        Args:
            user_id: Owner of the label; created on first use
            name: Label name (required, trimmed)
            color: Display color, defaults to DEFAULT_LABEL_COLOR
            description: Optional description

        Returns:
            The stored label

        Raises:
            InvalidLabelData: If name is empty or a field is not a string
            DuplicateLabel: If the user already has a label with that name
        """
        user_id = self._require_user(user_id)
        name, color, description = self._validate_label_fields(name, color, description)
        if not name:
            raise InvalidLabelData("name is required")

        self.repository.ensure_user(user_id)
        label = self.repository.create_label(
            Label(
                user_id=user_id,
                name=name,
                type=LABEL_TYPE_USER,
                color=color or DEFAULT_LABEL_COLOR,
                description=description,
            )
        )
        logger.info(f"Created label {label.id} ('{name}') for user {user_id}")
        return label

    def update_label(
        self,
        user_id: str,
        label_id: int,
        name: Optional[str] = None,
        color: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Label:
        """
        Edit one of the user's labels. Omitted fields keep their value.

        System labels are read-only and are reported as not found.

        Raises:
            InvalidLabelData: If name is blank or a field is not a string
            LabelNotFound: If the user has no such label
            DuplicateLabel: If the new name is taken
        """
        user_id = self._require_user(user_id)
        label = self._load_label(user_id, label_id)
        if label.is_system:
            raise LabelNotFound(user_id, label_id)

        new_name, new_color, new_description = self._validate_label_fields(name, color, description)
        if name is not None and not new_name:
            raise InvalidLabelData("name cannot be empty")

        updated = self.repository.update_label(
            user_id,
            label.id,
            name=new_name if name is not None else label.name,
            color=new_color if color else label.color,
            description=new_description if description is not None else label.description,
        )
        if updated is None:
            raise LabelNotFound(user_id, label_id)
        logger.info(f"Updated label {label_id} for user {user_id}")
        return updated

    def delete_label(self, user_id: str, label_id: int) -> None:
        """
        Delete one of the user's labels; it is detached from every card.

        Raises:
            LabelNotFound: If the user has no such label (system labels included)
        """
        user_id = self._require_user(user_id)
        if not self.repository.delete_label(user_id, self._require_label_id(label_id)):
            raise LabelNotFound(user_id, label_id)
        logger.info(f"Deleted label {label_id} for user {user_id}")

    def add_label_to_card(self, user_id: str, card_id: int, label_id: int) -> List[Label]:
        """
        Attach a label to a card. Attaching a label twice is a no-op.

        Returns:
            The card's labels afterwards

        Raises:
            CardNotFound: If the card does not exist for this user
            LabelNotFound: If the label is not visible to the user
        """
        user_id = self._require_user(user_id)
        label = self._load_label(user_id, label_id)
        card = self._load(user_id, card_id)
        if self.repository.add_label_to_card(card.id, label.id):
            logger.info(f"Added label {label.id} to card {card.id} for user {user_id}")
        return self.repository.get_card_labels(user_id, card.id)

    def remove_label_from_card(self, user_id: str, card_id: int, label_id: int) -> None:
        """
        Detach a label from a card.

        Raises:
            CardNotFound: If the card does not exist for this user
            NotFoundError: If the label is not attached to the card
        """
        user_id = self._require_user(user_id)
        label_id = self._require_label_id(label_id)
        card = self._load(user_id, card_id)
        if not self.repository.remove_label_from_card(card.id, label_id):
            raise NotFoundError(f"Label {label_id} is not attached to card {card_id}")
        logger.info(f"Removed label {label_id} from card {card_id} for user {user_id}")

    def get_card_labels(self, user_id: str, card_id: int) -> List[Label]:
        """Labels attached to a card, raising CardNotFound if it does not exist for this user."""
        user_id = self._require_user(user_id)
        card = self._load(user_id, card_id)
        return self.repository.get_card_labels(user_id, card.id)

    def get_cards_by_label(self, user_id: str, label_id: int) -> List[Card]:
        """The user's cards carrying a label, oldest first."""
        user_id = self._require_user(user_id)
        label = self._load_label(user_id, label_id)
        return self.repository.get_cards_by_label(user_id, label.id)
