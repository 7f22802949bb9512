from uuid import UUID

from flashbot.db.session import SessionLocal, session_scope
from flashbot.models.deck import Deck


class DeckService:
    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def create(self, name: str, user_id: UUID, owner_key: int) -> Deck:
        with session_scope(self.session_factory) as db:
            deck = Deck(name=name, user_id=user_id, owner_key=owner_key)
            db.add(deck)
            db.flush()
            return deck

    def list_by_owner(self, owner_key: int) -> list[Deck]:
        """Колоды пользователя, новые первыми."""
        with session_scope(self.session_factory) as db:
            return (
                db.query(Deck)
                .filter(Deck.owner_key == owner_key)
                .order_by(Deck.created_at.desc(), Deck.id)
                .all()
            )

    def find_by_id(self, deck_id: UUID) -> Deck | None:
        with session_scope(self.session_factory) as db:
            return db.get(Deck, deck_id)

    def rename(self, deck_id: UUID, name: str) -> Deck | None:
        with session_scope(self.session_factory) as db:
            deck = db.get(Deck, deck_id)
            if deck is None:
                return None
            deck.name = name
            db.flush()
            return deck

    def delete(self, deck_id: UUID) -> bool:
        """False, если колоды уже нет. Карточки удаляет вызывающий код."""
        with session_scope(self.session_factory) as db:
            deck = db.get(Deck, deck_id)
            if deck is None:
                return False
            db.delete(deck)
            return True
