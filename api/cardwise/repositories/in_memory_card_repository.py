"""In-memory implementation of CardRepository."""

import itertools
import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from cardwise.core.exceptions import CardNotFound, ConcurrentUpdate, DuplicateCard, DuplicateLabel
from cardwise.models.card import Card
from cardwise.models.label import LABEL_TYPE_SYSTEM, LABEL_TYPE_USER, SYSTEM_LABELS, Label
from cardwise.repositories.card_repository import CARD_ORDER_FIELDS, CardRepository
from cardwise.utils.text_utils import comparison_key
from cardwise.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def search_rank(card: Card, needle: str) -> int:
    """Rank bucket for a lowercased query: exact word, exact translation, word prefix, translation prefix, other."""
    word = (card.word or "").lower()
    translation = (card.translation or "").lower()
    if word == needle:
        return 1
    if translation == needle:
        return 2
    if word.startswith(needle):
        return 3
    if translation.startswith(needle):
        return 4
    return 5


def label_sort_key(label: Label):
    return (label.type, label.name, label.id)


class InMemoryCardRepository(CardRepository):
    """Dict-backed CardRepository.

    Stored cards are private copies. One re-entrant lock guards every index,
    and each write runs its check and its mutation under that lock in a single
    section, so a compare-and-swap cannot interleave with a delete.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: Dict[str, datetime] = {}
        self._cards: Dict[int, Card] = {}
        self._labels: Dict[int, Label] = {}
        self._card_labels: Set[Tuple[int, int]] = set()
        self._ids = itertools.count(1)
        self._label_ids = itertools.count(1)

        for values in SYSTEM_LABELS:
            label = Label(id=next(self._label_ids), type=LABEL_TYPE_SYSTEM, user_id=None, **values)
            self._labels[label.id] = label

    def _owned(self, user_id: str, card_id: int) -> Optional[Card]:
        card = self._cards.get(card_id)
        if card is None or card.user_id != user_id:
            return None
        return card

    def _user_cards(self, user_id: str) -> List[Card]:
        with self._lock:
            return [card.clone() for card in self._cards.values() if card.user_id == user_id]

    def _duplicate_of(self, card: Card, ignore_id: Optional[int] = None) -> Optional[Card]:
        word_key = comparison_key(card.word)
        translation_key = comparison_key(card.translation)
        for stored in self._cards.values():
            if stored.id == ignore_id or stored.user_id != card.user_id:
                continue
            if comparison_key(stored.word) == word_key and comparison_key(stored.translation) == translation_key:
                return stored
        return None

    def _visible_label(self, user_id: Optional[str], label_id: int) -> Optional[Label]:
        label = self._labels.get(label_id)
        if label is None:
            return None
        if label.type == LABEL_TYPE_SYSTEM or (user_id is not None and label.user_id == user_id):
            return label
        return None

    def _own_label(self, user_id: str, label_id: int) -> Optional[Label]:
        label = self._labels.get(label_id)
        if label is None or label.type != LABEL_TYPE_USER or label.user_id != user_id:
            return None
        return label

    def _unlink(self, predicate) -> None:
        self._card_labels = {link for link in self._card_labels if not predicate(link)}

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def ensure_user(self, user_id: str) -> None:
        with self._lock:
            if user_id not in self._users:
                self._users[user_id] = utc_now()
                logger.info(f"Created user {user_id}")

    def delete_user(self, user_id: str) -> Optional[int]:
        with self._lock:
            if user_id not in self._users:
                return None
            doomed = {card_id for card_id, card in self._cards.items() if card.user_id == user_id}
            doomed_labels = {label_id for label_id, label in self._labels.items() if label.user_id == user_id}
            for card_id in doomed:
                del self._cards[card_id]
            for label_id in doomed_labels:
                del self._labels[label_id]
            self._unlink(lambda link: link[0] in doomed or link[1] in doomed_labels)
            del self._users[user_id]
            return len(doomed)

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------
    def create(self, card: Card) -> Card:
        with self._lock:
            if card.user_id not in self._users:
                raise ValueError(f"User {card.user_id} does not exist")
            existing = self._duplicate_of(card)
            if existing is not None:
                raise DuplicateCard(card.word, existing.id)
            stored = card.clone()
            stored.id = next(self._ids)
            self._cards[stored.id] = stored
            return stored.clone()

    def get_by_id(self, user_id: str, card_id: int) -> Optional[Card]:
        with self._lock:
            card = self._owned(user_id, card_id)
            return card.clone() if card is not None else None

    def get_due(self, user_id: str, now: datetime, label_id: Optional[int] = None) -> List[Card]:
        with self._lock:
            cards = self._user_cards(user_id)
            if label_id is not None:
                cards = [card for card in cards if (card.id, label_id) in self._card_labels]
        due = [card for card in cards if card.due <= now]
        due.sort(key=lambda c: (c.due, c.created_at, c.id))
        return due

    def update(self, user_id: str, card_id: int, card: Card) -> Card:
        with self._lock:
            current = self._owned(user_id, card_id)
            if current is None:
                raise CardNotFound(user_id, card_id)
            if current.version != card.version:
                logger.warning(f"Version conflict updating card {card_id} (expected version {card.version})")
                raise ConcurrentUpdate(card_id)

            stored = card.clone()
            stored.id = card_id
            stored.user_id = user_id
            stored.created_at = current.created_at
            stored.version = current.version + 1

            existing = self._duplicate_of(stored, ignore_id=card_id)
            if existing is not None:
                raise DuplicateCard(stored.word, existing.id)

            self._cards[card_id] = stored
            return stored.clone()

    def delete(self, user_id: str, card_id: int) -> bool:
        with self._lock:
            if self._owned(user_id, card_id) is None:
                return False
            del self._cards[card_id]
            self._unlink(lambda link: link[0] == card_id)
            return True

    def search(self, user_id: str, query: str, limit: int) -> List[Card]:
        needle = comparison_key(query)
        if not needle:
            return []
        matches = [
            card
            for card in self._user_cards(user_id)
            if needle in (card.word or "").lower() or needle in (card.translation or "").lower()
        ]
        # Most recent first within a rank: sort by recency, then stable-sort by rank
        matches.sort(key=lambda c: (c.created_at, c.id), reverse=True)
        matches.sort(key=lambda c: search_rank(c, needle))
        return matches[:limit]

    def list_cards(
        self,
        user_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: str = "word",
        descending: bool = False,
        search: Optional[str] = None,
    ) -> Tuple[List[Card], int]:
        field = order_by if order_by in CARD_ORDER_FIELDS else "word"
        cards = self._user_cards(user_id)
        needle = comparison_key(search)
        if needle:
            cards = [card for card in cards if needle in (card.word or "").lower()]

        cards.sort(key=lambda c: c.id)
        cards.sort(key=lambda c: getattr(c, field), reverse=descending)
        total = len(cards)
        end = None if limit is None else offset + limit
        return cards[offset:end], total

    def find_duplicate(self, user_id: str, word: str, translation: str) -> Optional[Card]:
        with self._lock:
            existing = self._duplicate_of(Card(user_id=user_id, word=word, translation=translation))
            return existing.clone() if existing is not None else None

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------
    def create_label(self, label: Label) -> Label:
        with self._lock:
            if label.user_id not in self._users:
                raise ValueError(f"User {label.user_id} does not exist")
            for stored in self._labels.values():
                if stored.user_id == label.user_id and stored.type == label.type and stored.name == label.name:
                    raise DuplicateLabel(label.name)
            stored = label.clone()
            stored.id = next(self._label_ids)
            self._labels[stored.id] = stored
            return stored.clone()

    def get_label(self, user_id: Optional[str], label_id: int) -> Optional[Label]:
        with self._lock:
            label = self._visible_label(user_id, label_id)
            return label.clone() if label is not None else None

    def list_labels(self, user_id: Optional[str]) -> List[Label]:
        with self._lock:
            labels = [
                label.clone()
                for label in self._labels.values()
                if label.type == LABEL_TYPE_SYSTEM or (user_id is not None and label.user_id == user_id)
            ]
        return sorted(labels, key=label_sort_key)

    def update_label(self, user_id: str, label_id: int, name: str, color: str, description: str) -> Optional[Label]:
        with self._lock:
            label = self._own_label(user_id, label_id)
            if label is None:
                return None
            for stored in self._labels.values():
                if stored.id != label_id and stored.user_id == user_id and stored.type == label.type and stored.name == name:
                    raise DuplicateLabel(name)
            label.name = name
            label.color = color
            label.description = description
            return label.clone()

    def delete_label(self, user_id: str, label_id: int) -> bool:
        with self._lock:
            if self._own_label(user_id, label_id) is None:
                return False
            del self._labels[label_id]
            self._unlink(lambda link: link[1] == label_id)
            return True

    def add_label_to_card(self, card_id: int, label_id: int) -> bool:
        with self._lock:
            if card_id not in self._cards or label_id not in self._labels:
                return False
            if (card_id, label_id) in self._card_labels:
                return False
            self._card_labels.add((card_id, label_id))
            return True

    def remove_label_from_card(self, card_id: int, label_id: int) -> bool:
        with self._lock:
            if (card_id, label_id) not in self._card_labels:
                return False
            self._card_labels.discard((card_id, label_id))
            return True

    def get_card_labels(self, user_id: str, card_id: int) -> List[Label]:
        with self._lock:
            if self._owned(user_id, card_id) is None:
                return []
            labels = [
                self._labels[label_id].clone()
                for linked_card, label_id in self._card_labels
                if linked_card == card_id and label_id in self._labels
            ]
        return sorted(labels, key=label_sort_key)

    def get_cards_by_label(self, user_id: str, label_id: int) -> List[Card]:
        with self._lock:
            cards = [card for card in self._user_cards(user_id) if (card.id, label_id) in self._card_labels]
        cards.sort(key=lambda c: (c.created_at, c.id))
        return cards
