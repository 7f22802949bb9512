from datetime import timedelta
from uuid import uuid4

import pytest

from flashbot.core.clock import utcnow
from flashbot.core.enums import CardStatus
from flashbot.core.errors import NotFound
from flashbot.services.stats_service import StatsService

from conftest import OWNER


def test_correct_review_is_persisted(review, cards, test_deck, test_user):
    """Верный ответ сохраняется в БД."""
    card = cards.create("hola", "hello", test_deck.id, test_user.id, OWNER)
    now = utcnow()

    review.review(card.id, True, now=now)

    stored = cards.find_by_id(card.id)
    assert stored.status == CardStatus.learning
    assert stored.interval == 1
    assert stored.times_reviewed == 1
    assert stored.times_correct == 1
    assert stored.due_date == now + timedelta(days=1)


def test_review_missing_card(review):
    """Оценка несуществующей карточки."""
    with pytest.raises(NotFound):
        review.review(uuid4(), True)


def test_reviewed_card_is_no_longer_due(review, cards, test_deck, test_user):
    """После ответа карточка уходит из очереди."""
    card = cards.create("hola", "hello", test_deck.id, test_user.id, OWNER)
    assert [c.id for c in review.select_due_cards(test_deck.id)] == [card.id]

    review.review(card.id, False)

    assert list(review.select_due_cards(test_deck.id)) == []


def test_aggregate_stats(review, cards, test_deck, test_user):
    """Статистика колоды."""
    first = cards.create("uno", "one", test_deck.id, test_user.id, OWNER)
    cards.create("dos", "two", test_deck.id, test_user.id, OWNER)
    review.review(first.id, True)

    stats = review.aggregate_stats(test_deck.id)

    assert stats.total == 2
    assert stats.new == 1
    assert stats.learning == 1


def test_user_stats_sum_over_decks(review, cards, decks, test_deck, test_user):
    """Статистика пользователя суммирует колоды."""
    other_deck = decks.create("German", test_user.id, OWNER)
    cards.create("hola", "hello", test_deck.id, test_user.id, OWNER)
    cards.create("hallo", "hello", other_deck.id, test_user.id, OWNER)

    stats = StatsService(decks, review).user_stats(OWNER)

    assert stats.total_decks == 2
    assert stats.total_cards == 2
    assert stats.new_cards == 2
