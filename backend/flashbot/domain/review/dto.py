from dataclasses import dataclass


@dataclass(frozen=True)
class DeckStats:
    total: int = 0
    new: int = 0
    learning: int = 0
    young: int = 0
    mature: int = 0


@dataclass(frozen=True)
class UserStats:
    total_decks: int
    total_cards: int
    new_cards: int
    learning_cards: int
    young_cards: int
    mature_cards: int
