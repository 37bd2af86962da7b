"""Players and the hands they hold."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Iterator
from uuid import UUID, uuid4

from core.cards import Card


class HandSortType(Enum):
    """How a hand is ordered."""

    SUIT = auto()  # suit first, then rank
    RANK = auto()  # blackjack-style numeric value
    VALUE = auto()  # ace-high poker value


class PlayerColor(Enum):
    """Seat colors offered at game setup."""

    RED = "red"
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    PURPLE = "purple"
    ORANGE = "orange"
    PINK = "pink"
    TEAL = "teal"


AVATAR_OPTIONS = (
    "person.circle.fill",
    "star.circle.fill",
    "heart.circle.fill",
    "bolt.circle.fill",
    "flame.circle.fill",
    "crown.fill",
    "gamecontroller.fill",
    "diamond.fill",
)

_SORT_KEYS = {
    HandSortType.SUIT: lambda card: card.sort_value(),
    HandSortType.RANK: lambda card: card.blackjack_value,
    HandSortType.VALUE: lambda card: card.poker_value,
}


@dataclass
class Player:
    """A seat at the table with a private hand."""

    name: str
    hand: list[Card] = field(default_factory=list)
    avatar: str = AVATAR_OPTIONS[0]
    color: PlayerColor = PlayerColor.BLUE
    score: int = 0
    id: UUID = field(default_factory=uuid4)

    def add_card(self, card: Card) -> None:
        """Add a card to the end of the hand."""
        self.hand.append(card)

    def add_cards(self, cards: Iterable[Card]) -> None:
        """Add cards in the order given."""
        self.hand.extend(cards)

    def remove_card(self, card: Card) -> Card | None:
        """
        Remove a card by identity.

        Returns:
            The removed card, or None if it is not in this hand
        """
        return self.remove_card_by_id(card.id)

    def remove_card_by_id(self, card_id: UUID) -> Card | None:
        for index, held in enumerate(self.hand):
            if held.id == card_id:
                return self.hand.pop(index)
        return None

    def find_card(self, card_id: UUID) -> Card | None:
        return next((card for card in self.hand if card.id == card_id), None)

    def clear_hand(self) -> None:
        """Remove all cards from the hand."""
        self.hand.clear()

    def sort_hand(self, by: HandSortType = HandSortType.SUIT) -> None:
        """Sort the hand in place; ties keep their current order."""
        self.hand.sort(key=_SORT_KEYS[by])

    @property
    def hand_count(self) -> int:
        return len(self.hand)

    @property
    def is_empty(self) -> bool:
        return not self.hand

    def __len__(self) -> int:
        return len(self.hand)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.hand)

    def __str__(self) -> str:
        return f"{self.name} ({self.hand_count} cards)"

    def __repr__(self) -> str:
        return f"Player({self.name!r}, cards={self.hand_count}, score={self.score})"
