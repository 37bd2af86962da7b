"""Card table engine - 100% UI-agnostic."""

from core.auth import AuthOutcome, Authenticator
from core.cards import Card, Deck, DeckConfig, DeckPreset, Rank, Suit
from core.errors import InvalidStateError, UnknownPlayerError
from core.player import HandSortType, Player, PlayerColor

__all__ = [
    "AuthOutcome",
    "Authenticator",
    "Card",
    "Deck",
    "DeckConfig",
    "DeckPreset",
    "Rank",
    "Suit",
    "InvalidStateError",
    "UnknownPlayerError",
    "HandSortType",
    "Player",
    "PlayerColor",
]
