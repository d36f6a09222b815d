"""Caching decorator for CardRepository."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from cardwise.models.card import Card
from cardwise.models.label import Label
from cardwise.repositories.card_repository import CardRepository
from cardwise.repositories.db_cache import DbCache

logger = logging.getLogger(__name__)


class CachedCardRepository(CardRepository):
    """Wraps a CardRepository and memoizes single-card lookups.

    Only ``get_by_id`` is cached, keyed by (user_id, card_id). Every
    ``create``, ``update``, ``delete`` and ``delete_user`` clears the whole
    cache after the wrapped call, whether or not the entry was affected.
    Everything else, labels included, goes straight to the wrapped
    repository; cards carry no label data, so label writes leave cached
    cards valid.

    A lookup that raced with a write never repopulates the cache: the entry
    is stored only if no invalidation happened while it was being read.
    """

    def __init__(self, repository: CardRepository, cache: Optional[DbCache] = None) -> None:
        self.repository = repository
        self.cache = cache if cache is not None else DbCache()

    def invalidate_cache(self) -> None:
        """Manually invalidate the entire cache."""
        self.cache.clear()

    def cache_stats(self) -> Dict[str, Any]:
        return {"size": self.cache.size(), "keys": self.cache.keys()}

    # Memoized lookup
    def get_by_id(self, user_id: str, card_id: int) -> Optional[Card]:
        key = (user_id, card_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached.clone()

        generation = self.cache.generation()
        card = self.repository.get_by_id(user_id, card_id)
        if card is not None and not self.cache.set_if_generation(key, card.clone(), generation):
            logger.debug(f"Skipped caching card {card_id} for user {user_id}: cache invalidated during read")
        return card

    # Writes invalidate
    def create(self, card: Card) -> Card:
        try:
            return self.repository.create(card)
        finally:
            self.cache.clear()

    def update(self, user_id: str, card_id: int, card: Card) -> Card:
        try:
            return self.repository.update(user_id, card_id, card)
        finally:
            self.cache.clear()

    def delete(self, user_id: str, card_id: int) -> bool:
        try:
            return self.repository.delete(user_id, card_id)
        finally:
            self.cache.clear()

    def delete_user(self, user_id: str) -> Optional[int]:
        try:
            return self.repository.delete_user(user_id)
        finally:
            self.cache.clear()

    # Pass-through
    def ensure_user(self, user_id: str) -> None:
        self.repository.ensure_user(user_id)

    def get_due(self, user_id: str, now: datetime, label_id: Optional[int] = None) -> List[Card]:
        return self.repository.get_due(user_id, now, label_id=label_id)

    def search(self, user_id: str, query: str, limit: int) -> List[Card]:
        return self.repository.search(user_id, query, limit)

    def list_cards(
        self,
        user_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: str = "word",
        descending: bool = False,
        search: Optional[str] = None,
    ) -> Tuple[List[Card], int]:
        return self.repository.list_cards(
            user_id, limit=limit, offset=offset, order_by=order_by, descending=descending, search=search
        )

    def find_duplicate(self, user_id: str, word: str, translation: str) -> Optional[Card]:
        return self.repository.find_duplicate(user_id, word, translation)

    def create_label(self, label: Label) -> Label:
        return self.repository.create_label(label)

    def get_label(self, user_id: Optional[str], label_id: int) -> Optional[Label]:
        return self.repository.get_label(user_id, label_id)

    def list_labels(self, user_id: Optional[str]) -> List[Label]:
        return self.repository.list_labels(user_id)

    def update_label(self, user_id: str, label_id: int, name: str, color: str, description: str) -> Optional[Label]:
        return self.repository.update_label(user_id, label_id, name, color, description)

    def delete_label(self, user_id: str, label_id: int) -> bool:
        return self.repository.delete_label(user_id, label_id)

    def add_label_to_card(self, card_id: int, label_id: int) -> bool:
        return self.repository.add_label_to_card(card_id, label_id)

    def remove_label_from_card(self, card_id: int, label_id: int) -> bool:
        return self.repository.remove_label_from_card(card_id, label_id)

    def get_card_labels(self, user_id: str, card_id: int) -> List[Label]:
        return self.repository.get_card_labels(user_id, card_id)

    def get_cards_by_label(self, user_id: str, label_id: int) -> List[Card]:
        return self.repository.get_cards_by_label(user_id, label_id)
