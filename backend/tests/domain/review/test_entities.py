from datetime import datetime
from types import SimpleNamespace

import pytest

from flashbot.core.enums import CardStatus
from flashbot.domain.review.entities import CardReviewState, StudyCard


def test_record_answer_counts_reviews_and_correct_answers():
    state = CardReviewState(
        status=CardStatus.new,
        interval=0,
        ease_factor=2.5,
        times_reviewed=0,
        times_correct=0,
    )

    state.record_answer(is_correct=True)
    state.record_answer(is_correct=False)

    assert state.times_reviewed == 2
    assert state.times_correct == 1


def test_negative_interval_is_rejected():
    state = CardReviewState(
        status=CardStatus.learning,
        interval=-1,
        ease_factor=2.5,
        times_reviewed=1,
        times_correct=1,
    )

    with pytest.raises(ValueError):
        state.validate()


def test_ease_factor_below_floor_is_rejected():
    state = CardReviewState(
        status=CardStatus.mature,
        interval=10,
        ease_factor=1.2,
        times_reviewed=3,
        times_correct=3,
    )

    with pytest.raises(ValueError):
        state.validate()


def test_correct_count_cannot_exceed_reviews():
    state = CardReviewState(
        status=CardStatus.young,
        interval=4,
        ease_factor=2.5,
        times_reviewed=1,
        times_correct=2,
    )

    with pytest.raises(ValueError):
        state.validate()


def test_state_round_trips_through_card_object():
    due = datetime(2026, 1, 1)
    card = SimpleNamespace(
        status="Young",
        interval=4,
        ease_factor=2.1,
        times_reviewed=3,
        times_correct=2,
        due_date=due,
    )

    state = CardReviewState.from_card(card)
    assert state.status == CardStatus.young

    state.status = CardStatus.mature
    state.apply_to(card)
    assert card.status == CardStatus.mature
    assert card.due_date == due


def test_study_card_is_a_frozen_snapshot():
    card = SimpleNamespace(id="c1", front="hola", back="hello")
    snapshot = StudyCard.from_card(card)

    card.front = "changed"

    assert snapshot.front == "hola"
    with pytest.raises(AttributeError):
        snapshot.front = "x"
