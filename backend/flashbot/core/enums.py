from enum import Enum


class CardStatus(str, Enum):
    """Лестница зрелости карточки: New → Learning → Young → Mature."""

    new = "New"
    learning = "Learning"
    young = "Young"
    mature = "Mature"
