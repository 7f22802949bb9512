from dataclasses import dataclass
from uuid import UUID

# Main menu
ADD = "➕ Add"
DECKS = "📚 Decks"
BROWSE = "🔍 Browse"
STATS = "📊 Stats"
ACCOUNT = "👤 Account"

# Add menu
NEW_DECK = "📦 New Deck"
NEW_CARD = "🃏 New Card"

# Study
SHOW_ANSWER = "👀 Show Answer"
YES = "✅ Yes"
NO = "❌ No"

# Deck management
RENAME_DECK = "✏️ Rename Deck"
DELETE_DECK = "🗑️ Delete Deck"
VIEW_CARDS = "📋 View Cards"
ADD_CARD = "🃏 Add Card"
CONFIRM_DELETE = "🗑️ Yes, Delete"

# Card management
EDIT_FRONT = "✏️ Edit Front"
EDIT_BACK = "✏️ Edit Back"
DELETE_CARD = "🗑️ Delete Card"

# Navigation
CANCEL = "❌ Cancel"
BACK_TO_MAIN = "⬅️ Back to Main Menu"
END_STUDY = "🔚 End Study"
BACK_TO_BROWSE = "⬅️ Back to Browse"
BACK_TO_DECK = "⬅️ Back to Deck"
BACK_TO_CARDS = "⬅️ Back to Cards"

# After create
ADD_CARDS_TO_DECK = "🃏 Add Cards to This Deck"
ADD_ANOTHER_CARD = "🃏 Add Another Card"
VIEW_MY_DECKS = "📚 View My Decks"

# Generated labels
STUDY_PREFIX = "🎯 Study: "
BROWSE_PREFIX = "📂 "
PICK_DECK_PREFIX = "📚 "
CARD_PREFIX = "🃏 "

RESET_LABELS = frozenset({CANCEL, BACK_TO_MAIN, END_STUDY})

PREVIEW_LENGTH = 30


@dataclass(frozen=True)
class Button:
    label: str
    # id колоды или карточки; пользователь его не видит
    token: UUID | None = None


Keyboard = list[list[Button]]


def rows(*labels: list[str]) -> Keyboard:
    return [[Button(label) for label in row] for row in labels]


def labels_of(keyboard: Keyboard) -> list[list[str]]:
    return [[button.label for button in row] for row in keyboard]


def choices_of(keyboard: Keyboard) -> dict[str, UUID | None]:
    return {button.label: button.token for row in keyboard for button in row}


def deck_buttons(prefix: str, decks) -> Keyboard:
    """По кнопке на колоду. Одинаковые имена получают суффикс (2), (3)…"""
    seen: dict[str, int] = {}
    keyboard: Keyboard = []
    for deck in decks:
        label = f"{prefix}{deck.name}"
        seen[label] = seen.get(label, 0) + 1
        if seen[label] > 1:
            label = f"{label} ({seen[label]})"
        keyboard.append([Button(label, deck.id)])
    return keyboard


def preview(text: str) -> str:
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


def card_button(position: int, card) -> Button:
    return Button(f"{CARD_PREFIX}{position}: {preview(card.front)}", card.id)


def main_menu() -> Keyboard:
    return rows(
        [ADD, DECKS],
        [BROWSE, STATS],
        [ACCOUNT],
    )


def cancel_only() -> Keyboard:
    return rows([CANCEL])


def no_decks() -> Keyboard:
    return rows([NEW_DECK], [BACK_TO_MAIN])


def add_menu() -> Keyboard:
    return rows([NEW_DECK, NEW_CARD], [BACK_TO_MAIN])


def deck_menu() -> Keyboard:
    return rows(
        [RENAME_DECK, DELETE_DECK],
        [VIEW_CARDS, ADD_CARD],
        [BACK_TO_BROWSE],
    )


def confirm_delete() -> Keyboard:
    return rows([CONFIRM_DELETE, CANCEL])


def card_menu() -> Keyboard:
    return rows(
        [EDIT_FRONT, EDIT_BACK],
        [DELETE_CARD],
        [BACK_TO_CARDS, BACK_TO_DECK],
    )


def question() -> Keyboard:
    return rows([SHOW_ANSWER], [END_STUDY])


def grading() -> Keyboard:
    return rows([YES, NO], [END_STUDY])
