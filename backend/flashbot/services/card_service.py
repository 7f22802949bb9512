from datetime import datetime
from uuid import UUID

from sqlalchemy import func

from flashbot.core.enums import CardStatus
from flashbot.db.session import SessionLocal, session_scope
from flashbot.domain.review.policy import DUE_CARDS_LIMIT
from flashbot.models.card import Card


class CardService:
    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def create(self, front: str, back: str, deck_id: UUID, user_id: UUID, owner_key: int) -> Card:
        with session_scope(self.session_factory) as db:
            card = Card(
                front=front,
                back=back,
                deck_id=deck_id,
                user_id=user_id,
                owner_key=owner_key,
            )
            db.add(card)
            db.flush()
            return card

    def find_by_id(self, card_id: UUID) -> Card | None:
        with session_scope(self.session_factory) as db:
            return db.get(Card, card_id)

    def list_by_deck(self, deck_id: UUID) -> list[Card]:
        """Все карточки колоды, новые первыми."""
        with session_scope(self.session_factory) as db:
            return (
                db.query(Card)
                .filter(Card.deck_id == deck_id)
                .order_by(Card.created_at.desc(), Card.id)
                .all()
            )

    def list_due(self, deck_id: UUID, now: datetime, limit: int = DUE_CARDS_LIMIT) -> list[Card]:
        with session_scope(self.session_factory) as db:
            return (
                db.query(Card)
                .filter(Card.deck_id == deck_id)
                .filter(Card.due_date <= now)
                .order_by(Card.due_date.asc(), Card.id.asc())
                .limit(limit)
                .all()
            )

    def update(self, card_id: UUID, front: str | None = None, back: str | None = None) -> Card | None:
        with session_scope(self.session_factory) as db:
            card = db.get(Card, card_id)
            if card is None:
                return None
            if front is not None:
                card.front = front
            if back is not None:
                card.back = back
            db.flush()
            return card

    def delete(self, card_id: UUID) -> bool:
        with session_scope(self.session_factory) as db:
            card = db.get(Card, card_id)
            if card is None:
                return False
            db.delete(card)
            return True

    def save(self, card: Card) -> Card:
        """Сохранить изменения планировщика в отсоединённой карточке."""
        with session_scope(self.session_factory) as db:
            merged = db.merge(card)
            db.flush()
            return merged

    def aggregate_by_status(self, deck_id: UUID) -> dict[CardStatus, int]:
        with session_scope(self.session_factory) as db:
            rows = (
                db.query(Card.status, func.count(Card.id))
                .filter(Card.deck_id == deck_id)
                .group_by(Card.status)
                .all()
            )
            return {CardStatus(status): count for status, count in rows}
