"""CardRepository contract tests, run against every implementation."""
import threading
from datetime import timedelta

import pytest

from cardwise.core.database import build_engine
from cardwise.core.exceptions import (
    CardNotFound,
    ConcurrentUpdate,
    DuplicateCard,
    DuplicateLabel,
    RepositoryUnavailable,
)
from cardwise.models.card import Card
from cardwise.models.label import Label
from cardwise.models.enums import CardState
from cardwise.repositories import InMemoryCardRepository, SqlModelCardRepository


def new_card(user_id, word, now, translation="", **overrides):
    values = dict(user_id=user_id, word=word, translation=translation, due=now, created_at=now)
    values.update(overrides)
    return Card(**values)


def add(repository, user_id, word, now, **kwargs):
    repository.ensure_user(user_id)
    return repository.create(new_card(user_id, word, now, **kwargs))


def add_label(repository, user_id, name, **kwargs):
    repository.ensure_user(user_id)
    return repository.create_label(Label(user_id=user_id, name=name, type="user", **kwargs))


class TestUsers:
    def test_ensure_user_is_idempotent(self, repository, t0):
        repository.ensure_user("alice")
        repository.ensure_user("alice")
        add(repository, "alice", "hello", t0)

        assert repository.delete_user("alice") == 1

    def test_delete_unknown_user(self, repository):
        assert repository.delete_user("ghost") is None

    def test_delete_user_without_cards(self, repository):
        repository.ensure_user("alice")
        assert repository.delete_user("alice") == 0


class TestCards:
    def test_create_assigns_distinct_ids(self, repository, t0):
        first = add(repository, "alice", "hello", t0)
        second = add(repository, "alice", "world", t0)

        assert first.id is not None and second.id is not None
        assert first.id != second.id
        assert first.version == 1

    def test_get_by_id_is_scoped_to_user(self, repository, t0):
        card = add(repository, "alice", "hello", t0)
        repository.ensure_user("bob")

        assert repository.get_by_id("alice", card.id).word == "hello"
        assert repository.get_by_id("bob", card.id) is None
        assert repository.get_by_id("alice", card.id + 100) is None

    def test_returned_cards_are_detached(self, repository, t0):
        card = add(repository, "alice", "hello", t0)

        loaded = repository.get_by_id("alice", card.id)
        loaded.word = "changed"

        assert repository.get_by_id("alice", card.id).word == "hello"

    def test_update_bumps_version(self, repository, t0):
        card = add(repository, "alice", "hello", t0)

        edited = repository.get_by_id("alice", card.id)
        edited.state = CardState.REVIEW.value
        edited.stability = 3.5
        edited.reps = 1
        stored = repository.update("alice", card.id, edited)

        assert stored.version == 2
        assert stored.state == CardState.REVIEW
        assert stored.stability == 3.5
        assert repository.get_by_id("alice", card.id).version == 2

    def test_update_keeps_write_once_fields(self, repository, t0):
        card = add(repository, "alice", "hello", t0)

        edited = repository.get_by_id("alice", card.id)
        edited.created_at = t0 + timedelta(days=5)
        stored = repository.update("alice", card.id, edited)

        assert stored.created_at == t0
        assert stored.user_id == "alice"

    def test_update_with_stale_version(self, repository, t0):
        card = add(repository, "alice", "hello", t0)
        first = repository.get_by_id("alice", card.id)
        second = repository.get_by_id("alice", card.id)

        repository.update("alice", card.id, first)

        with pytest.raises(ConcurrentUpdate):
            repository.update("alice", card.id, second)

    def test_update_missing_card(self, repository, t0):
        card = add(repository, "alice", "hello", t0)
        repository.delete("alice", card.id)

        with pytest.raises(CardNotFound):
            repository.update("alice", card.id, card)

    def test_update_other_users_card(self, repository, t0):
        card = add(repository, "alice", "hello", t0)
        repository.ensure_user("bob")

        with pytest.raises(CardNotFound):
            repository.update("bob", card.id, card)

    def test_delete(self, repository, t0):
        card = add(repository, "alice", "hello", t0)

        assert repository.delete("bob", card.id) is False
        assert repository.delete("alice", card.id) is True
        assert repository.delete("alice", card.id) is False

    def test_get_due_ordering(self, repository, t0):
        late = add(repository, "alice", "late", t0 + timedelta(hours=2))
        tie_b = add(repository, "alice", "tie-b", t0 + timedelta(minutes=1), due=t0)
        tie_a = add(repository, "alice", "tie-a", t0, due=t0)
        add(repository, "alice", "future", t0, due=t0 + timedelta(days=1))

        due = repository.get_due("alice", t0 + timedelta(hours=3))

        assert [c.id for c in due] == [tie_a.id, tie_b.id, late.id]

    def test_find_duplicate(self, repository, t0):
        card = add(repository, "alice", "Hello", t0, translation="Hola")

        assert repository.find_duplicate("alice", "hello", "hola").id == card.id
        assert repository.find_duplicate("alice", "hello", "") is None
        assert repository.find_duplicate("bob", "hello", "hola") is None

    def test_list_cards_orders_and_counts(self, repository, t0):
        add(repository, "alice", "b", t0 + timedelta(minutes=1))
        add(repository, "alice", "a", t0 + timedelta(minutes=2))
        add(repository, "alice", "c", t0)

        by_created, total = repository.list_cards("alice", order_by="created_at")
        assert [c.word for c in by_created] == ["c", "b", "a"]
        assert total == 3

        fallback, _ = repository.list_cards("alice", order_by="nonsense", descending=True)
        assert [c.word for c in fallback] == ["c", "b", "a"]

        page, total = repository.list_cards("alice", limit=1, offset=1)
        assert [c.word for c in page] == ["b"]
        assert total == 3

    def test_search_is_scoped_to_user(self, repository, t0):
        add(repository, "alice", "language", t0)
        add(repository, "bob", "language", t0)

        results = repository.search("alice", "lang", 10)

        assert [c.user_id for c in results] == ["alice"]

    def test_search_ranks_exact_translation_before_prefixes(self, repository, t0):
        translation_prefix = add(repository, "alice", "felino", t0 + timedelta(minutes=4), translation="cats")
        prefix = add(repository, "alice", "catalog", t0 + timedelta(minutes=3))
        exact_translation = add(repository, "alice", "gato", t0, translation="cat")
        exact = add(repository, "alice", "cat", t0 - timedelta(minutes=1))

        results = repository.search("alice", "cat", 10)

        assert [c.id for c in results] == [exact.id, exact_translation.id, prefix.id, translation_prefix.id]

    def test_search_folds_non_ascii_case(self, repository, t0):
        card = add(repository, "alice", "Über", t0, translation="Ärger")

        assert [c.id for c in repository.search("alice", "über", 10)] == [card.id]
        assert [c.id for c in repository.search("alice", "ÄRG", 10)] == [card.id]
        assert repository.list_cards("alice", search="ÜB")[1] == 1

    def test_find_duplicate_folds_non_ascii_case(self, repository, t0):
        card = add(repository, "alice", "Straße", t0, translation="Calle")

        assert repository.find_duplicate("alice", "STRASSE", "calle") is None
        assert repository.find_duplicate("alice", "STRAßE", "calle").id == card.id

    def test_create_rejects_duplicate(self, repository, t0):
        card = add(repository, "alice", "Hello", t0, translation="Hola")

        with pytest.raises(DuplicateCard) as exc_info:
            add(repository, "alice", " hello", t0, translation="HOLA ")

        assert exc_info.value.existing_card_id == card.id
        assert repository.list_cards("alice")[1] == 1

    def test_create_allows_same_card_for_other_user(self, repository, t0):
        add(repository, "alice", "hello", t0, translation="hola")
        assert add(repository, "bob", "hello", t0, translation="hola").user_id == "bob"

    def test_update_into_duplicate_rejected(self, repository, t0):
        add(repository, "alice", "hello", t0, translation="hola")
        other = add(repository, "alice", "world", t0, translation="mundo")

        edited = repository.get_by_id("alice", other.id)
        edited.word = "HELLO"
        edited.translation = "hola"
        with pytest.raises(DuplicateCard):
            repository.update("alice", other.id, edited)

        assert repository.get_by_id("alice", other.id).word == "world"


class TestInMemorySpecifics:
    def test_create_requires_user(self, t0):
        repository = InMemoryCardRepository()
        with pytest.raises(ValueError):
            repository.create(new_card("alice", "hello", t0))

    def test_delete_cannot_interleave_with_update(self, t0):
        repository = InMemoryCardRepository()
        card = add(repository, "alice", "hello", t0)
        outcome = {}

        def delete_card():
            outcome["deleted"] = repository.delete("alice", card.id)

        class DeleteDuringCopy:
            """Card stand-in that starts a delete while update is copying it."""
            version = card.version

            def clone(self):
                thread = threading.Thread(target=delete_card)
                thread.start()
                thread.join(timeout=0.2)
                outcome["thread"] = thread
                return card.clone()

        stored = repository.update("alice", card.id, DeleteDuringCopy())
        outcome["thread"].join(timeout=5)

        assert stored.version == 2
        assert outcome["deleted"] is True
        assert repository.get_by_id("alice", card.id) is None


class TestSqlModelSpecifics:
    def test_connectivity_failure_maps_to_repository_unavailable(self, tmp_path, t0):
        # SQLite cannot open a database file in a directory that does not exist
        engine = build_engine(f"sqlite:///{tmp_path / 'missing' / 'cards.db'}")
        repository = SqlModelCardRepository(engine)

        with pytest.raises(RepositoryUnavailable):
            repository.get_due("alice", t0)

    def test_delete_user_cascades_in_database(self, sql_repository, sql_engine, t0):
        from sqlmodel import Session, select

        add(sql_repository, "alice", "hello", t0)
        add(sql_repository, "alice", "world", t0)

        assert sql_repository.delete_user("alice") == 2

        with Session(sql_engine) as session:
            assert session.exec(select(Card)).all() == []

    def test_unique_index_rejects_duplicates_written_directly(self, sql_repository, sql_engine, t0):
        from sqlalchemy.exc import IntegrityError
        from sqlmodel import Session

        add(sql_repository, "alice", "hello", t0, translation="hola")

        with Session(sql_engine) as session:
            session.add(new_card("alice", "HELLO ", t0, translation="Hola"))
            with pytest.raises(IntegrityError):
                session.commit()

    def test_label_links_removed_with_user(self, sql_repository, sql_engine, t0):
        from sqlmodel import Session, select

        from cardwise.models.label import CardLabel

        card = add(sql_repository, "alice", "hello", t0)
        label = add_label(sql_repository, "alice", "verbs")
        sql_repository.add_label_to_card(card.id, label.id)
        sql_repository.add_label_to_card(card.id, sql_repository.list_labels(None)[0].id)

        sql_repository.delete_user("alice")

        with Session(sql_engine) as session:
            assert session.exec(select(CardLabel)).all() == []
            assert session.exec(select(Label).where(Label.type == "user")).all() == []
            assert len(session.exec(select(Label)).all()) == 2


class TestLabels:
    def test_system_labels_are_seeded(self, repository):
        labels = repository.list_labels(None)

        assert [label.name for label in labels] == ["sentence", "word"]
        assert all(label.type == "system" and label.user_id is None for label in labels)

    def test_user_labels_listed_after_system_labels(self, repository):
        add_label(repository, "alice", "verbs")
        add_label(repository, "alice", "animals", color="#10B981")
        add_label(repository, "bob", "food")

        labels = repository.list_labels("alice")

        assert [label.name for label in labels] == ["sentence", "word", "animals", "verbs"]
        assert labels[2].color == "#10B981"
        assert labels[3].color == "#3B82F6"

    def test_duplicate_label_name_rejected(self, repository):
        add_label(repository, "alice", "verbs")
        add_label(repository, "bob", "verbs")

        with pytest.raises(DuplicateLabel):
            add_label(repository, "alice", "verbs")

    def test_get_label_visibility(self, repository):
        own = add_label(repository, "alice", "verbs")
        system = repository.list_labels(None)[0]

        assert repository.get_label("alice", own.id).name == "verbs"
        assert repository.get_label("bob", own.id) is None
        assert repository.get_label("bob", system.id).name == system.name
        assert repository.get_label(None, own.id) is None

    def test_update_label(self, repository):
        own = add_label(repository, "alice", "verbs")
        system = repository.list_labels(None)[0]

        updated = repository.update_label("alice", own.id, "actions", "#000000", "Doing words")

        assert updated.name == "actions"
        assert repository.get_label("alice", own.id).description == "Doing words"
        assert repository.update_label("bob", own.id, "x", "#000000", "") is None
        assert repository.update_label("alice", system.id, "x", "#000000", "") is None

    def test_delete_label_detaches_cards(self, repository, t0):
        card = add(repository, "alice", "hello", t0)
        own = add_label(repository, "alice", "verbs")
        system = repository.list_labels(None)[0]
        repository.add_label_to_card(card.id, own.id)

        assert repository.delete_label("alice", system.id) is False
        assert repository.delete_label("bob", own.id) is False
        assert repository.delete_label("alice", own.id) is True

        assert repository.get_card_labels("alice", card.id) == []
        assert repository.get_label("alice", own.id) is None

    def test_card_labels(self, repository, t0):
        card = add(repository, "alice", "hello", t0)
        own = add_label(repository, "alice", "greetings")
        word = [label for label in repository.list_labels(None) if label.name == "word"][0]

        assert repository.add_label_to_card(card.id, word.id) is True
        assert repository.add_label_to_card(card.id, own.id) is True
        assert repository.add_label_to_card(card.id, own.id) is False

        assert [label.name for label in repository.get_card_labels("alice", card.id)] == ["word", "greetings"]
        assert repository.get_card_labels("bob", card.id) == []

        assert repository.remove_label_from_card(card.id, own.id) is True
        assert repository.remove_label_from_card(card.id, own.id) is False
        assert [label.name for label in repository.get_card_labels("alice", card.id)] == ["word"]

    def test_cards_by_label_and_due_by_label(self, repository, t0):
        first = add(repository, "alice", "hello", t0)
        second = add(repository, "alice", "world", t0 + timedelta(minutes=1))
        future = add(repository, "alice", "later", t0, due=t0 + timedelta(days=3))
        add(repository, "alice", "plain", t0)
        own = add_label(repository, "alice", "greetings")
        for card in (second, future, first):
            repository.add_label_to_card(card.id, own.id)

        tagged = repository.get_cards_by_label("alice", own.id)
        due = repository.get_due("alice", t0 + timedelta(hours=1), label_id=own.id)

        assert [c.id for c in tagged] == [first.id, future.id, second.id]
        assert [c.id for c in due] == [first.id, second.id]
        assert repository.get_cards_by_label("bob", own.id) == []

    def test_deleting_card_drops_its_links(self, repository, t0):
        card = add(repository, "alice", "hello", t0)
        own = add_label(repository, "alice", "greetings")
        repository.add_label_to_card(card.id, own.id)

        repository.delete("alice", card.id)

        assert repository.get_cards_by_label("alice", own.id) == []
        assert repository.remove_label_from_card(card.id, own.id) is False

    def test_delete_user_removes_labels(self, repository, t0):
        own = add_label(repository, "alice", "verbs")

        repository.delete_user("alice")

        assert repository.get_label("alice", own.id) is None
        assert [label.name for label in repository.list_labels("alice")] == ["sentence", "word"]
