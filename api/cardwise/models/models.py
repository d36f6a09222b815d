"""
Models module - re-exports all table models.

Importing this module registers every table with SQLModel metadata.
"""
from cardwise.models.enums import CardState, Rating
from cardwise.models.user import User
from cardwise.models.card import Card
from cardwise.models.label import Label, CardLabel

__all__ = [
    'CardState',
    'Rating',
    'User',
    'Card',
    'Label',
    'CardLabel',
]
