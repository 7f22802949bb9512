from flashbot.domain.review.dto import UserStats
from flashbot.services.deck_service import DeckService
from flashbot.services.review_service import ReviewService


class StatsService:
    def __init__(self, decks: DeckService, review: ReviewService):
        self.decks = decks
        self.review = review

    def user_stats(self, owner_key: int) -> UserStats:
        """Сводка по всем колодам пользователя."""
        decks = self.decks.list_by_owner(owner_key)
        per_deck = [self.review.aggregate_stats(deck.id) for deck in decks]
        return UserStats(
            total_decks=len(decks),
            total_cards=sum(s.total for s in per_deck),
            new_cards=sum(s.new for s in per_deck),
            learning_cards=sum(s.learning for s in per_deck),
            young_cards=sum(s.young for s in per_deck),
            mature_cards=sum(s.mature for s in per_deck),
        )
