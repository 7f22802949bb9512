from uuid import uuid4

from flashbot.services.user_service import UserService

from conftest import OWNER, OTHER_OWNER


class TestUsers:
    """UserService"""

    def test_find_or_create_creates_once(self, users: UserService):
        """Пользователь создаётся один раз."""
        first = users.find_or_create(OWNER, {"username": "alice"})
        second = users.find_or_create(OWNER, {"first_name": "Alice"})

        assert first.id == second.id
        assert second.username == "alice"
        assert second.first_name == "Alice"
        assert second.last_activity >= first.last_activity

    def test_find_by_owner_key(self, users: UserService):
        """Поиск по owner_key."""
        assert users.find_by_owner_key(OWNER) is None
        users.find_or_create(OWNER)
        assert users.find_by_owner_key(OWNER).owner_key == OWNER


class TestDecks:
    """DeckService"""

    def test_list_by_owner_only_returns_own_decks(self, decks, users, test_user):
        """Только свои колоды."""
        other = users.find_or_create(OTHER_OWNER)
        decks.create("Mine", test_user.id, OWNER)
        decks.create("Theirs", other.id, OTHER_OWNER)

        assert [d.name for d in decks.list_by_owner(OWNER)] == ["Mine"]

    def test_rename(self, decks, test_deck):
        """Переименование."""
        renamed = decks.rename(test_deck.id, "Español")

        assert renamed.name == "Español"
        assert decks.find_by_id(test_deck.id).name == "Español"

    def test_rename_missing_deck(self, decks):
        """Переименование несуществующей колоды."""
        assert decks.rename(uuid4(), "Nope") is None

    def test_delete_is_idempotent(self, decks, test_deck):
        """Повторное удаление не ошибка."""
        assert decks.delete(test_deck.id) is True
        assert decks.delete(test_deck.id) is False
        assert decks.find_by_id(test_deck.id) is None
