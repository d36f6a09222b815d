"""Tests for the HTTP API."""
import pytest

from cardwise.core.exceptions import RepositoryUnavailable
from cardwise.main import status_code_for

API = "/api/v1"


def create(client, word, translation="", user="alice", **extra):
    payload = {"word": word, "translation": translation, **extra}
    return client.post(f"{API}/cards", params={"user": user}, json=payload)


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestCreate:
    def test_create_card(self, client):
        response = create(client, "hello", "hola", context=["Hello there!", "Hello again."])

        assert response.status_code == 201
        body = response.json()
        assert body["word"] == "hello"
        assert body["state"] == 0
        assert body["sentences"] == ["Hello there!", "Hello again."]
        assert body["context"] == "Hello there!\nHello again."
        assert body["reps"] == 0
        assert body["version"] == 1

    def test_empty_word(self, client):
        response = create(client, "   ")
        assert response.status_code == 400
        assert response.json()["type"] == "InvalidCardData"

    def test_missing_word(self, client):
        response = client.post(f"{API}/cards", params={"user": "alice"}, json={"translation": "hola"})
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "payload",
        [
            {"word": 5},
            {"word": ["hello"]},
            {"word": "hello", "translation": 3},
            {"word": "hello", "context": {"a": 1}},
        ],
    )
    def test_malformed_fields(self, client, payload):
        response = client.post(f"{API}/cards", params={"user": "alice"}, json=payload)

        assert response.status_code == 400
        assert response.json()["type"] == "InvalidCardData"

    def test_missing_user(self, client):
        response = client.post(f"{API}/cards", json={"word": "hello"})
        assert response.status_code == 422

    def test_duplicate(self, client):
        create(client, "hello", "hola")
        response = create(client, "HELLO", "hola")

        assert response.status_code == 409
        assert response.json()["type"] == "DuplicateCard"


class TestAnswer:
    def test_answer_card(self, client):
        card = create(client, "hello", "hola").json()

        response = client.post(f"{API}/cards/{card['id']}/answer", params={"user": "alice"}, json={"rating": 5})

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == 1
        assert body["reps"] == 1
        assert body["version"] == 2
        assert body["scheduled_days"] == pytest.approx(21.0)

    @pytest.mark.parametrize("rating", [0, 6, 3.5, "easy", None, True])
    def test_invalid_rating(self, client, rating):
        card = create(client, "hello", "hola").json()

        response = client.post(
            f"{API}/cards/{card['id']}/answer", params={"user": "alice"}, json={"rating": rating}
        )

        assert response.status_code == 400
        assert response.json()["type"] == "InvalidRating"

    def test_unknown_card(self, client):
        response = client.post(f"{API}/cards/999/answer", params={"user": "alice"}, json={"rating": 3})
        assert response.status_code == 404
        assert response.json()["type"] == "CardNotFound"

    def test_other_users_card(self, client):
        card = create(client, "hello", "hola").json()
        response = client.post(f"{API}/cards/{card['id']}/answer", params={"user": "bob"}, json={"rating": 3})
        assert response.status_code == 404


class TestReads:
    def test_due_cards(self, client):
        first = create(client, "hello", "hola").json()
        second = create(client, "world", "mundo").json()
        client.post(f"{API}/cards/{first['id']}/answer", params={"user": "alice"}, json={"rating": 5})

        response = client.get(f"{API}/cards/due", params={"user": "alice"})

        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [second["id"]]

    def test_stats(self, client):
        first = create(client, "hello", "hola").json()
        create(client, "world", "mundo")
        client.post(f"{API}/cards/{first['id']}/answer", params={"user": "alice"}, json={"rating": 4})

        response = client.get(f"{API}/cards/stats", params={"user": "alice"})

        assert response.json() == {"total": 2, "due": 1, "learning": 1, "review": 1, "relearning": 0}

    def test_search(self, client):
        create(client, "language", "idioma")
        create(client, "slang", "jerga")
        create(client, "orange", "naranja")

        response = client.get(f"{API}/cards/search", params={"user": "alice", "q": "lang"})

        assert [c["word"] for c in response.json()] == ["language", "slang"]

    def test_list_cards(self, client):
        for word in ("delta", "alpha", "charlie"):
            create(client, word)

        response = client.get(
            f"{API}/cards", params={"user": "alice", "limit": 2, "order_by": "word", "order_dir": "desc"}
        )

        body = response.json()
        assert [c["word"] for c in body["cards"]] == ["delta", "charlie"]
        assert body["total"] == 3
        assert body["has_more"] is True

    def test_get_card(self, client):
        card = create(client, "hello", "hola").json()

        assert client.get(f"{API}/cards/{card['id']}", params={"user": "alice"}).json()["word"] == "hello"
        assert client.get(f"{API}/cards/{card['id']}", params={"user": "bob"}).status_code == 404


class TestEditAndDelete:
    def test_update_with_non_string_word(self, client):
        card = create(client, "hello", "hola").json()

        response = client.put(f"{API}/cards/{card['id']}", params={"user": "alice"}, json={"word": 5})

        assert response.status_code == 400
        assert response.json()["type"] == "InvalidCardData"

    def test_update_card(self, client):
        card = create(client, "hello", "hola").json()

        response = client.put(
            f"{API}/cards/{card['id']}",
            params={"user": "alice"},
            json={"word": "hello", "translation": "buenas", "context": "Hi!"},
        )

        assert response.status_code == 200
        assert response.json()["translation"] == "buenas"
        assert response.json()["sentences"] == ["Hi!"]
        assert response.json()["due"] == card["due"]

    def test_delete_card(self, client):
        card = create(client, "hello", "hola").json()

        response = client.delete(f"{API}/cards/{card['id']}", params={"user": "alice"})

        assert response.status_code == 204
        assert client.delete(f"{API}/cards/{card['id']}", params={"user": "alice"}).status_code == 404

    def test_delete_user(self, client):
        create(client, "hello", "hola")
        create(client, "world", "mundo")

        response = client.delete(f"{API}/users/alice")

        assert response.status_code == 200
        assert response.json() == {"user_id": "alice", "cards_deleted": 2}
        assert client.delete(f"{API}/users/alice").status_code == 404


class TestErrorMapping:
    def test_repository_unavailable_is_503(self):
        assert status_code_for(RepositoryUnavailable("down")) == 503


class TestLabels:
    def create_label(self, client, name, user="alice", **extra):
        return client.post(f"{API}/labels", params={"user": user}, json={"name": name, **extra})

    def test_system_labels(self, client):
        response = client.get(f"{API}/labels/system")

        assert response.status_code == 200
        body = response.json()
        assert [label["name"] for label in body] == ["sentence", "word"]
        assert all(label["type"] == "system" for label in body)

    def test_create_and_list(self, client):
        response = self.create_label(client, "verbs", color="#10B981")

        assert response.status_code == 201
        assert response.json()["color"] == "#10B981"
        names = [label["name"] for label in client.get(f"{API}/labels", params={"user": "alice"}).json()]
        assert names == ["sentence", "word", "verbs"]

    def test_create_requires_name(self, client):
        response = client.post(f"{API}/labels", params={"user": "alice"}, json={"color": "#000000"})
        assert response.status_code == 400
        assert response.json()["type"] == "InvalidLabelData"

    def test_duplicate_name(self, client):
        self.create_label(client, "verbs")
        response = self.create_label(client, "verbs")
        assert response.status_code == 409
        assert response.json()["type"] == "DuplicateLabel"

    def test_update_and_delete(self, client):
        label = self.create_label(client, "verbs").json()

        updated = client.put(f"{API}/labels/{label['id']}", params={"user": "alice"}, json={"name": "actions"})
        assert updated.status_code == 200
        assert updated.json()["name"] == "actions"

        assert client.put(f"{API}/labels/{label['id']}", params={"user": "bob"}, json={"name": "x"}).status_code == 404
        assert client.delete(f"{API}/labels/{label['id']}", params={"user": "alice"}).status_code == 204
        assert client.delete(f"{API}/labels/{label['id']}", params={"user": "alice"}).status_code == 404

    def test_card_labels(self, client):
        label = self.create_label(client, "greetings").json()
        card = create(client, "hello", "hola").json()

        response = client.post(
            f"{API}/cards/{card['id']}/labels", params={"user": "alice"}, json={"label_id": label["id"]}
        )
        assert response.status_code == 200
        assert [item["name"] for item in response.json()] == ["greetings"]

        listed = client.get(f"{API}/cards/{card['id']}/labels", params={"user": "alice"})
        assert [item["id"] for item in listed.json()] == [label["id"]]

        removed = client.delete(f"{API}/cards/{card['id']}/labels/{label['id']}", params={"user": "alice"})
        assert removed.status_code == 204
        again = client.delete(f"{API}/cards/{card['id']}/labels/{label['id']}", params={"user": "alice"})
        assert again.status_code == 404

    @pytest.mark.parametrize("label_id", [None, "greetings", True])
    def test_add_label_requires_label_id(self, client, label_id):
        card = create(client, "hello", "hola").json()

        response = client.post(
            f"{API}/cards/{card['id']}/labels", params={"user": "alice"}, json={"label_id": label_id}
        )

        assert response.status_code == 400
        assert response.json()["type"] == "InvalidLabelData"

    def test_create_card_with_labels_and_due_by_label(self, client):
        label = self.create_label(client, "greetings").json()
        tagged = create(client, "hello", "hola", labels=[label["id"]]).json()
        create(client, "world", "mundo")

        due = client.get(f"{API}/cards/due", params={"user": "alice", "label_id": label["id"]})
        by_label = client.get(f"{API}/labels/{label['id']}/cards", params={"user": "alice"})

        assert [c["id"] for c in due.json()] == [tagged["id"]]
        assert [c["id"] for c in by_label.json()] == [tagged["id"]]
        assert client.get(f"{API}/cards/due", params={"user": "alice", "label_id": 999}).status_code == 404
