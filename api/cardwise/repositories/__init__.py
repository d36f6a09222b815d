from .card_repository import CardRepository
from .cached_card_repository import CachedCardRepository
from .db_cache import DbCache
from .in_memory_card_repository import InMemoryCardRepository
from .sqlmodel_card_repository import SqlModelCardRepository

__all__ = [
    "CardRepository",
    "CachedCardRepository",
    "DbCache",
    "InMemoryCardRepository",
    "SqlModelCardRepository",
]
