# backend/flashbot/domain/review/entities.py

from dataclasses import dataclass
from datetime import datetime

from flashbot.core.enums import CardStatus

MIN_EASE_FACTOR = 1.3


@dataclass
class CardReviewState:
    """
    Чистое domain-состояние расписания карточки.
    Не знает про БД, ORM и SQLAlchemy.
    """

    status: CardStatus
    interval: float
    ease_factor: float
    times_reviewed: int
    times_correct: int
    due_date: datetime | None = None

    @classmethod
    def from_card(cls, card) -> "CardReviewState":
        return cls(
            status=CardStatus(card.status),
            interval=card.interval,
            ease_factor=card.ease_factor,
            times_reviewed=card.times_reviewed,
            times_correct=card.times_correct,
            due_date=card.due_date,
        )

    def apply_to(self, card) -> None:
        card.status = self.status
        card.interval = self.interval
        card.ease_factor = self.ease_factor
        card.times_reviewed = self.times_reviewed
        card.times_correct = self.times_correct
        card.due_date = self.due_date

    # ----------------
    # Domain behaviour
    # ----------------

    def record_answer(self, *, is_correct: bool) -> None:
        self.times_reviewed += 1
        if is_correct:
            self.times_correct += 1

    # ---------
    # Invariants
    # ---------

    def validate(self) -> None:
        if self.interval < 0:
            raise ValueError("interval cannot be negative")

        if self.ease_factor < MIN_EASE_FACTOR:
            raise ValueError(f"ease_factor cannot drop below {MIN_EASE_FACTOR}")

        if self.times_correct > self.times_reviewed:
            raise ValueError("times_correct cannot exceed times_reviewed")


@dataclass(frozen=True)
class StudyCard:
    """Снимок карточки для учебной сессии: правки в БД его не меняют."""

    id: object
    front: str
    back: str

    @classmethod
    def from_card(cls, card) -> "StudyCard":
        return cls(id=card.id, front=card.front, back=card.back)
