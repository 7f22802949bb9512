# backend/flashbot/domain/review/policy.py

import math
from dataclasses import replace
from datetime import datetime, timedelta
from itertools import islice
from typing import Iterable, Iterator

from flashbot.core.enums import CardStatus

from .dto import DeckStats
from .entities import MIN_EASE_FACTOR, CardReviewState

DUE_CARDS_LIMIT = 20


class ReviewPolicy:
    """
    Алгоритм расчёта следующего повторения.
    Чистая domain-логика: только «верно» / «неверно», без шкалы качества.
    """

    YOUNG_TO_MATURE_FACTOR = 2.5
    MIN_MATURE_INTERVAL = 10
    EASE_BONUS = 0.1
    EASE_PENALTY = 0.2

    def apply_review(self, *, state: CardReviewState, is_correct: bool, now: datetime) -> CardReviewState:
        # Порог Learning → Young считается по ответам ДО текущего
        correct_before = state.times_correct

        result = replace(state)
        result.record_answer(is_correct=is_correct)

        if is_correct:
            self._promote(result, correct_before)
        else:
            result.status = CardStatus.learning
            result.interval = 1
            result.ease_factor = max(state.ease_factor - self.EASE_PENALTY, MIN_EASE_FACTOR)

        result.due_date = self.due_date(now=now, interval=result.interval)
        result.validate()
        return result

    def _promote(self, state: CardReviewState, correct_before: int) -> None:
        if state.status == CardStatus.new:
            state.status = CardStatus.learning
            state.interval = 1
        elif state.status == CardStatus.learning:
            if correct_before >= 2:
                state.status = CardStatus.young
                state.interval = 4
            else:
                state.interval = 1
        elif state.status == CardStatus.young:
            state.status = CardStatus.mature
            state.interval = max(state.interval * self.YOUNG_TO_MATURE_FACTOR, self.MIN_MATURE_INTERVAL)
        else:
            state.interval = max(state.interval * state.ease_factor, state.interval + 1)
            state.ease_factor = max(state.ease_factor + self.EASE_BONUS, MIN_EASE_FACTOR)

    @staticmethod
    def due_date(*, now: datetime, interval: float) -> datetime:
        # В дату идут только целые дни: дробный интервал округляется вниз
        return now + timedelta(days=math.floor(interval))


def select_due(cards: Iterable, *, now: datetime, limit: int = DUE_CARDS_LIMIT) -> Iterator:
    """
    Карточки с due_date <= now, самые «просроченные» первыми.
    Генератор одноразовый: его нужно сразу сохранить в снимок сессии.
    """
    due = sorted(
        (card for card in cards if card.due_date <= now),
        key=lambda card: (card.due_date, str(card.id)),
    )
    yield from islice(due, limit)


def aggregate(counts: dict) -> DeckStats:
    """counts: {CardStatus: количество}."""
    by_status = {CardStatus(status): count for status, count in counts.items()}
    return DeckStats(
        total=sum(by_status.values()),
        new=by_status.get(CardStatus.new, 0),
        learning=by_status.get(CardStatus.learning, 0),
        young=by_status.get(CardStatus.young, 0),
        mature=by_status.get(CardStatus.mature, 0),
    )
