from flashbot.models.user import User
from flashbot.models.deck import Deck
from flashbot.models.card import Card

__all__ = ["User", "Deck", "Card"]
