"""CardRepository contract - the persistence interface the scheduling engine depends on."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from cardwise.models.card import Card
from cardwise.models.label import Label

# Columns list_cards may sort by; anything else falls back to "word"
CARD_ORDER_FIELDS = ("word", "created_at", "due", "state")


class CardRepository(ABC):
    """Storage-agnostic access to users and their cards.

    Every method returns detached Card copies: mutating a returned card never
    changes stored state until it is passed back through ``update``.
    Connectivity failures surface as ``RepositoryUnavailable``.
    """

    @abstractmethod
    def ensure_user(self, user_id: str) -> None:
        """Create the user if it does not exist yet."""

    @abstractmethod
    def delete_user(self, user_id: str) -> Optional[int]:
        """Delete a user with all of their cards and labels.

        Returns:
            Number of cards removed, or None if the user did not exist.
        """

    @abstractmethod
    def create(self, card: Card) -> Card:
        """Insert a new card and return it with its assigned id.

        Raises:
            DuplicateCard: If the user already has a card with the same
                trimmed, case-insensitive word and translation.
        """

    @abstractmethod
    def get_by_id(self, user_id: str, card_id: int) -> Optional[Card]:
        """Fetch one card owned by user_id, or None."""

    @abstractmethod
    def get_due(self, user_id: str, now: datetime, label_id: Optional[int] = None) -> List[Card]:
        """Cards with due <= now, ordered by due, then created_at, then id.

        With label_id, only cards carrying that label.
        """

    @abstractmethod
    def update(self, user_id: str, card_id: int, card: Card) -> Card:
        """Compare-and-swap write of a card.

        The write succeeds only if the stored version still equals
        ``card.version``; the stored version is then incremented.

        Returns:
            The stored card with its new version.

        Raises:
            CardNotFound: If the card no longer exists for this user.
            ConcurrentUpdate: If another write happened since ``card`` was read.
            DuplicateCard: If the new content collides with another card.
        """

    @abstractmethod
    def delete(self, user_id: str, card_id: int) -> bool:
        """Delete one card and its label links. Returns False if it did not exist."""

    @abstractmethod
    def search(self, user_id: str, query: str, limit: int) -> List[Card]:
        """Case-insensitive substring search over word and translation.

        Ranked: exact word, exact translation, word prefix, translation
        prefix, any other match; ties broken by most recently created first.
        """

    @abstractmethod
    def list_cards(
        self,
        user_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: str = "word",
        descending: bool = False,
        search: Optional[str] = None,
    ) -> Tuple[List[Card], int]:
        """Page through a user's cards.

        Returns:
            (cards on this page, total number of matching cards)
        """

    @abstractmethod
    def find_duplicate(self, user_id: str, word: str, translation: str) -> Optional[Card]:
        """Card with the same trimmed, case-insensitive word and translation, if any."""


    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------
    @abstractmethod
    def create_label(self, label: Label) -> Label:
        """Insert a user label and return it with its assigned id.

        Raises:
            DuplicateLabel: If the user already has a label with that name.
        """

    @abstractmethod
    def get_label(self, user_id: Optional[str], label_id: int) -> Optional[Label]:
        """A system label or one of the user's labels, or None."""

    @abstractmethod
    def list_labels(self, user_id: Optional[str]) -> List[Label]:
        """System labels plus the user's labels, ordered by type then name.

        With user_id None, only the system labels.
        """

    @abstractmethod
    def update_label(self, user_id: str, label_id: int, name: str, color: str, description: str) -> Optional[Label]:
        """Rewrite one of the user's own labels. Returns None if there is no such label."""

    @abstractmethod
    def delete_label(self, user_id: str, label_id: int) -> bool:
        """Delete one of the user's own labels and its card links. System labels are never deleted."""

    @abstractmethod
    def add_label_to_card(self, card_id: int, label_id: int) -> bool:
        """Attach a label to a card. Returns False if it was already attached."""

    @abstractmethod
    def remove_label_from_card(self, card_id: int, label_id: int) -> bool:
        """Detach a label from a card. Returns False if it was not attached."""

    @abstractmethod
    def get_card_labels(self, user_id: str, card_id: int) -> List[Label]:
        """Labels attached to one of the user's cards, ordered by type then name."""

    @abstractmethod
    def get_cards_by_label(self, user_id: str, label_id: int) -> List[Card]:
        """The user's cards carrying a label, oldest first."""
