import logging
from datetime import datetime
from typing import Iterator
from uuid import UUID

from flashbot.core.clock import utcnow
from flashbot.core.errors import NotFound
from flashbot.domain.review.dto import DeckStats
from flashbot.domain.review.entities import CardReviewState
from flashbot.domain.review.policy import DUE_CARDS_LIMIT, ReviewPolicy, aggregate, select_due
from flashbot.models.card import Card
from flashbot.services.card_service import CardService

logger = logging.getLogger(__name__)


class ReviewService:
    """Планировщик поверх хранилища карточек."""

    def __init__(self, cards: CardService, *, limit: int = DUE_CARDS_LIMIT, policy: ReviewPolicy | None = None):
        self.cards = cards
        self.limit = limit
        self.policy = policy or ReviewPolicy()

    def review(self, card_id: UUID, is_correct: bool, now: datetime | None = None) -> Card:
        card = self.cards.find_by_id(card_id)
        if card is None:
            raise NotFound("Card")

        now = now or utcnow()
        state = CardReviewState.from_card(card)
        updated = self.policy.apply_review(state=state, is_correct=is_correct, now=now)

        # применяем результат к ORM-карточке
        updated.apply_to(card)
        saved = self.cards.save(card)
        logger.debug(
            "Card %s reviewed (correct=%s): %s, interval=%s, due=%s",
            card_id, is_correct, saved.status, saved.interval, saved.due_date,
        )
        return saved

    def select_due_cards(self, deck_id: UUID, now: datetime | None = None) -> Iterator[Card]:
        now = now or utcnow()
        return select_due(self.cards.list_due(deck_id, now, limit=self.limit), now=now, limit=self.limit)

    def aggregate_stats(self, deck_id: UUID) -> DeckStats:
        return aggregate(self.cards.aggregate_by_status(deck_id))
