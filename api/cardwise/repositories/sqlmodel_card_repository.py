"""SQLModel implementation of CardRepository."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import case, func, or_
from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlmodel import Session, select

from cardwise.core.exceptions import (
    CardNotFound,
    ConcurrentUpdate,
    DuplicateCard,
    DuplicateLabel,
    RepositoryUnavailable,
)
from cardwise.models.label import LABEL_TYPE_SYSTEM, LABEL_TYPE_USER
from cardwise.models.models import Card, CardLabel, Label, User
from cardwise.repositories.card_repository import CARD_ORDER_FIELDS, CardRepository
from cardwise.utils.text_utils import comparison_key

logger = logging.getLogger(__name__)

# Columns a card update may change; id, user_id and created_at are write-once
UPDATABLE_COLUMNS = (
    "word",
    "translation",
    "context",
    "state",
    "due",
    "stability",
    "difficulty",
    "elapsed_days",
    "scheduled_days",
    "reps",
    "lapses",
    "last_reviewed_at",
)




def _duplicate_query(user_id: str, word: str, translation: str):
    return select(Card).where(
        Card.user_id == user_id,
        func.lower(func.trim(Card.word)) == comparison_key(word),
        func.lower(func.trim(Card.translation)) == comparison_key(translation),
    )


def _visible_to(user_id: Optional[str]):
    """Labels a user may see: the system labels and their own."""
    if user_id is None:
        return Label.type == LABEL_TYPE_SYSTEM
    return or_(Label.type == LABEL_TYPE_SYSTEM, Label.user_id == user_id)


class SqlModelCardRepository(CardRepository):
    """Concrete CardRepository backed by SQLModel sessions.

    Each call runs in its own short session. Card updates are a single
    conditional UPDATE on (id, user_id, version), so two writers that read the
    same version cannot both succeed. Duplicate cards are rejected by a unique
    index on the lowercased, trimmed word and translation.
    """

    def __init__(self, engine) -> None:
        self._engine = engine

    @contextmanager
    def _session(self):
        try:
            with Session(self._engine, expire_on_commit=False) as session:
                yield session
        except (OperationalError, InterfaceError, PoolTimeoutError) as e:
            logger.error(f"Database unavailable: {type(e).__name__}: {e}", exc_info=True)
            raise RepositoryUnavailable(f"Database unavailable: {type(e).__name__}") from e

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def ensure_user(self, user_id: str) -> None:
        with self._session() as session:
            if session.get(User, user_id) is not None:
                return
            session.add(User(id=user_id))
            try:
                session.commit()
                logger.info(f"Created user {user_id}")
            except IntegrityError:
                # Another request created the same user first
                session.rollback()

    def delete_user(self, user_id: str) -> Optional[int]:
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            card_count = session.exec(
                select(func.count()).select_from(Card).where(Card.user_id == user_id)
            ).one()

            user_cards = select(Card.id).where(Card.user_id == user_id)
            user_labels = select(Label.id).where(Label.user_id == user_id)
            session.execute(
                sa_delete(CardLabel)
                .where(CardLabel.card_id.in_(user_cards) | CardLabel.label_id.in_(user_labels))
                .execution_options(synchronize_session=False)
            )
            session.execute(
                sa_delete(Label)
                .where(Label.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            session.delete(user)  # Cards cascade
            session.commit()
            return card_count

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------
    def create(self, card: Card) -> Card:
        with self._session() as session:
            session.add(card)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                existing = session.exec(_duplicate_query(card.user_id, card.word, card.translation)).first()
                if existing is None:
                    raise
                logger.warning(f"Rejected duplicate card '{card.word}' for user {card.user_id}")
                raise DuplicateCard(card.word, existing.id) from e
            session.refresh(card)
            return card

    def get_by_id(self, user_id: str, card_id: int) -> Optional[Card]:
        with self._session() as session:
            return session.exec(
                select(Card).where(Card.id == card_id, Card.user_id == user_id)
            ).first()

    def get_due(self, user_id: str, now: datetime, label_id: Optional[int] = None) -> List[Card]:
        query = select(Card).where(Card.user_id == user_id, Card.due <= now)
        if label_id is not None:
            query = query.join(CardLabel, CardLabel.card_id == Card.id).where(CardLabel.label_id == label_id)

        with self._session() as session:
            return list(session.exec(query.order_by(Card.due, Card.created_at, Card.id)).all())

    def update(self, user_id: str, card_id: int, card: Card) -> Card:
        values = {column: getattr(card, column) for column in UPDATABLE_COLUMNS}
        values["state"] = int(values["state"])
        values["version"] = card.version + 1

        with self._session() as session:
            try:
                result = session.execute(
                    sa_update(Card)
                    .where(
                        Card.id == card_id,
                        Card.user_id == user_id,
                        Card.version == card.version,
                    )
                    .values(**values)
                )
            except IntegrityError as e:
                session.rollback()
                existing = session.exec(
                    _duplicate_query(user_id, card.word, card.translation).where(Card.id != card_id)
                ).first()
                if existing is None:
                    raise
                raise DuplicateCard(card.word, existing.id) from e

            if result.rowcount == 0:
                session.rollback()
                exists = session.exec(
                    select(Card.id).where(Card.id == card_id, Card.user_id == user_id)
                ).first()
                if exists is None:
                    raise CardNotFound(user_id, card_id)
                logger.warning(f"Version conflict updating card {card_id} (expected version {card.version})")
                raise ConcurrentUpdate(card_id)
            session.commit()

            stored = session.exec(
                select(Card)
                .where(Card.id == card_id, Card.user_id == user_id)
                .execution_options(populate_existing=True)
            ).one()
            return stored

    def delete(self, user_id: str, card_id: int) -> bool:
        with self._session() as session:
            result = session.execute(
                sa_delete(Card).where(Card.id == card_id, Card.user_id == user_id)
            )
            if result.rowcount == 0:
                session.rollback()
                return False
            session.execute(
                sa_delete(CardLabel)
                .where(CardLabel.card_id == card_id)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return True

    def search(self, user_id: str, query: str, limit: int) -> List[Card]:
        needle = comparison_key(query)
        if not needle:
            return []

        word = func.lower(Card.word)
        translation = func.lower(Card.translation)
        rank = case(
            (word == needle, 1),
            (translation == needle, 2),
            (word.startswith(needle, autoescape=True), 3),
            (translation.startswith(needle, autoescape=True), 4),
            else_=5,
        )

        with self._session() as session:
            return list(
                session.exec(
                    select(Card)
                    .where(
                        Card.user_id == user_id,
                        word.contains(needle, autoescape=True)
                        | translation.contains(needle, autoescape=True),
                    )
                    .order_by(rank, Card.created_at.desc(), Card.id.desc())
                    .limit(limit)
                ).all()
            )

    def list_cards(
        self,
        user_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: str = "word",
        descending: bool = False,
        search: Optional[str] = None,
    ) -> Tuple[List[Card], int]:
        column = getattr(Card, order_by if order_by in CARD_ORDER_FIELDS else "word")
        conditions = [Card.user_id == user_id]
        needle = comparison_key(search)
        if needle:
            conditions.append(func.lower(Card.word).contains(needle, autoescape=True))

        query = select(Card).where(*conditions).order_by(
            column.desc() if descending else column, Card.id
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        with self._session() as session:
            # Both reads share one transaction so the page and its total agree
            cards = list(session.exec(query).all())
            total = session.exec(
                select(func.count()).select_from(Card).where(*conditions)
            ).one()
            return cards, total

    def find_duplicate(self, user_id: str, word: str, translation: str) -> Optional[Card]:
        with self._session() as session:
            return session.exec(_duplicate_query(user_id, word, translation)).first()

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------
    def create_label(self, label: Label) -> Label:
        with self._session() as session:
            session.add(label)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                clash = session.exec(
                    select(Label.id).where(
                        Label.user_id == label.user_id, Label.type == label.type, Label.name == label.name
                    )
                ).first()
                if clash is None:
                    raise
                raise DuplicateLabel(label.name) from e
            session.refresh(label)
            return label

    def get_label(self, user_id: Optional[str], label_id: int) -> Optional[Label]:
        with self._session() as session:
            return session.exec(select(Label).where(Label.id == label_id, _visible_to(user_id))).first()

    def list_labels(self, user_id: Optional[str]) -> List[Label]:
        with self._session() as session:
            return list(
                session.exec(
                    select(Label).where(_visible_to(user_id)).order_by(Label.type, Label.name, Label.id)
                ).all()
            )

    def update_label(self, user_id: str, label_id: int, name: str, color: str, description: str) -> Optional[Label]:
        with self._session() as session:
            label = session.exec(
                select(Label).where(
                    Label.id == label_id, Label.user_id == user_id, Label.type == LABEL_TYPE_USER
                )
            ).first()
            if label is None:
                return None
            label.name = name
            label.color = color
            label.description = description
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateLabel(name) from e
            return label

    def delete_label(self, user_id: str, label_id: int) -> bool:
        with self._session() as session:
            result = session.execute(
                sa_delete(Label).where(
                    Label.id == label_id, Label.user_id == user_id, Label.type == LABEL_TYPE_USER
                )
            )
            if result.rowcount == 0:
                session.rollback()
                return False
            session.execute(
                sa_delete(CardLabel)
                .where(CardLabel.label_id == label_id)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return True

    def add_label_to_card(self, card_id: int, label_id: int) -> bool:
        with self._session() as session:
            if session.get(CardLabel, (card_id, label_id)) is not None:
                return False
            session.add(CardLabel(card_id=card_id, label_id=label_id))
            try:
                session.commit()
            except IntegrityError:
                # Attached concurrently, or the card or label is gone
                session.rollback()
                return False
            return True

    def remove_label_from_card(self, card_id: int, label_id: int) -> bool:
        with self._session() as session:
            result = session.execute(
                sa_delete(CardLabel).where(CardLabel.card_id == card_id, CardLabel.label_id == label_id)
            )
            session.commit()
            return result.rowcount > 0

    def get_card_labels(self, user_id: str, card_id: int) -> List[Label]:
        with self._session() as session:
            return list(
                session.exec(
                    select(Label)
                    .join(CardLabel, CardLabel.label_id == Label.id)
                    .join(Card, Card.id == CardLabel.card_id)
                    .where(Card.id == card_id, Card.user_id == user_id)
                    .order_by(Label.type, Label.name, Label.id)
                ).all()
            )

    def get_cards_by_label(self, user_id: str, label_id: int) -> List[Card]:
        with self._session() as session:
            return list(
                session.exec(
                    select(Card)
                    .join(CardLabel, CardLabel.card_id == Card.id)
                    .where(Card.user_id == user_id, CardLabel.label_id == label_id)
                    .order_by(Card.created_at, Card.id)
                ).all()
            )
