"""
Состояния диалога.

Каждый шаг: отдельный dataclass, который несёт только свои поля;
``step`` совпадает с названием состояния в Session.
"""

from dataclasses import dataclass
from typing import ClassVar
from uuid import UUID

from flashbot.domain.review.entities import StudyCard


@dataclass(frozen=True)
class Idle:
    step: ClassVar[str] = "idle"


@dataclass(frozen=True)
class BrowsingDecks:
    step: ClassVar[str] = "browsing_decks"


@dataclass(frozen=True)
class DeckSelected:
    step: ClassVar[str] = "deck_selected"
    deck_id: UUID


@dataclass(frozen=True)
class AwaitingDeckName:
    step: ClassVar[str] = "awaiting_deck_name"


@dataclass(frozen=True)
class SelectingDeckForCard:
    step: ClassVar[str] = "selecting_deck_for_card"


@dataclass(frozen=True)
class AwaitingCardFront:
    step: ClassVar[str] = "awaiting_card_front"
    deck_id: UUID


@dataclass(frozen=True)
class AwaitingCardBack:
    step: ClassVar[str] = "awaiting_card_back"
    deck_id: UUID
    front: str


@dataclass(frozen=True)
class RenamingDeck:
    step: ClassVar[str] = "renaming_deck"
    deck_id: UUID


@dataclass(frozen=True)
class ConfirmingDeckDelete:
    step: ClassVar[str] = "confirming_deck_delete"
    deck_id: UUID


@dataclass(frozen=True)
class ViewingCards:
    step: ClassVar[str] = "viewing_cards"
    deck_id: UUID
    # порядок совпадает с нумерацией в последнем показанном списке
    card_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class CardSelected:
    step: ClassVar[str] = "card_selected"
    deck_id: UUID
    card_id: UUID


@dataclass(frozen=True)
class EditingCardFront:
    step: ClassVar[str] = "editing_card_front"
    deck_id: UUID
    card_id: UUID


@dataclass(frozen=True)
class EditingCardBack:
    step: ClassVar[str] = "editing_card_back"
    deck_id: UUID
    card_id: UUID


@dataclass(frozen=True)
class Studying:
    step: ClassVar[str] = "studying"
    deck_id: UUID
    cards: tuple[StudyCard, ...]
    current_card_index: int = 0
    # ответ уже оценён, следующая карточка ещё не показана
    awaiting_next: bool = False

    @property
    def current_card(self) -> StudyCard | None:
        if 0 <= self.current_card_index < len(self.cards):
            return self.cards[self.current_card_index]
        return None


# Шаги, где любой текст считается данными, даже если он совпал с кнопкой
DATA_CAPTURE_STATES = (
    AwaitingDeckName,
    AwaitingCardFront,
    AwaitingCardBack,
    RenamingDeck,
    EditingCardFront,
    EditingCardBack,
)
