"""Card, Deck and preset deck configurations."""

from dataclasses import dataclass, field, replace
from enum import Enum
from random import Random
from typing import Iterable, Iterator
from uuid import UUID, uuid4


class Suit(Enum):
    """Card suits, in canonical sort order."""

    SPADES = "♠"
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"
    JOKER = "🃏"

    def __str__(self) -> str:
        return self.value

    @property
    def is_red(self) -> bool:
        """Check if this suit is printed in red."""
        return self in (Suit.HEARTS, Suit.DIAMONDS)

    @property
    def sort_index(self) -> int:
        """Position of the suit in canonical order."""
        return _SUIT_ORDER.index(self)


class Rank(Enum):
    """Card ranks, in canonical sort order."""

    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    ACE = "A"
    JOKER = "JOKER"

    def __str__(self) -> str:
        return self.value

    @property
    def sort_index(self) -> int:
        """Position of the rank in canonical order."""
        return _RANK_ORDER.index(self)

    @property
    def blackjack_value(self) -> int:
        """
        Return the blackjack point value.

        Face cards count 10, an ace counts 11 and a joker 0. Counting an
        ace as 1 is left to the hand evaluating it.
        """
        if self == Rank.JOKER:
            return 0
        if self == Rank.ACE:
            return 11
        if self in (Rank.JACK, Rank.QUEEN, Rank.KING):
            return 10
        return int(self.value)

    @property
    def poker_value(self) -> int:
        """Return the ace-high poker value (2-14, joker 0)."""
        high = {Rank.JACK: 11, Rank.QUEEN: 12, Rank.KING: 13, Rank.ACE: 14}
        return high.get(self, self.blackjack_value)

    @property
    def is_face(self) -> bool:
        """Check if this rank is a face card."""
        return self in (Rank.JACK, Rank.QUEEN, Rank.KING)


_SUIT_ORDER = list(Suit)
_RANK_ORDER = list(Rank)

STANDARD_SUITS = (Suit.SPADES, Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS)
STANDARD_RANKS = tuple(rank for rank in Rank if rank != Rank.JOKER)
ROYAL_RANKS = (Rank.JACK, Rank.QUEEN, Rank.KING, Rank.ACE)
NUMBER_RANKS = STANDARD_RANKS[:9]


@dataclass(frozen=True, eq=False)
class Card:
    """
    A playing card with a stable identity.

    Two cards are equal only if they share the same id; two aces of
    spades from a double deck are different cards.
    """

    suit: Suit
    rank: Rank
    is_face_up: bool = False
    position: tuple[float, float] = (0.0, 0.0)
    id: UUID = field(default_factory=uuid4)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Card):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return self.display_name

    def __repr__(self) -> str:
        return f"Card({self.rank.name}, {self.suit.name}, id={str(self.id)[:8]})"

    @property
    def display_name(self) -> str:
        """Short label such as 'Q♥'."""
        if self.suit == Suit.JOKER:
            return "🃏 Joker"
        return f"{self.rank}{self.suit}"

    @property
    def is_joker(self) -> bool:
        return self.rank == Rank.JOKER

    @property
    def blackjack_value(self) -> int:
        return self.rank.blackjack_value

    @property
    def poker_value(self) -> int:
        return self.rank.poker_value

    def sort_value(self) -> int:
        """Total order key used for suit-major hand sorting."""
        return self.suit.sort_index * 100 + self.rank.sort_index

    def with_face_up(self, face_up: bool = True) -> "Card":
        """Return the same card turned face up or down."""
        return replace(self, is_face_up=face_up)

    def moved_to(self, x: float, y: float) -> "Card":
        """Return the same card at a new table position."""
        return replace(self, position=(x, y))

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a card from a string like '2♣', 'AS', 'Kh' or 'JOKER'."""
        s = s.strip().upper()
        if s in ("JOKER", "🃏"):
            return cls(Suit.JOKER, Rank.JOKER)
        if len(s) < 2:
            raise ValueError(f"Invalid card string: {s}")

        rank_str = s[:-1]
        suit_str = s[-1]

        rank_map = {rank.value: rank for rank in STANDARD_RANKS}
        rank_map["T"] = Rank.TEN

        suit_map = {
            "S": Suit.SPADES,
            "♠": Suit.SPADES,
            "H": Suit.HEARTS,
            "♥": Suit.HEARTS,
            "D": Suit.DIAMONDS,
            "♦": Suit.DIAMONDS,
            "C": Suit.CLUBS,
            "♣": Suit.CLUBS,
        }

        if rank_str not in rank_map:
            raise ValueError(f"Invalid rank: {rank_str}")
        if suit_str not in suit_map:
            raise ValueError(f"Invalid suit: {suit_str}")

        return cls(suit_map[suit_str], rank_map[rank_str])


@dataclass(frozen=True)
class DeckConfig:
    """Composition of a deck built from standard sub-decks."""

    number_of_decks: int = 1
    include_jokers: bool = False
    ranks: tuple[Rank, ...] | None = None  # None = all standard ranks

    def __post_init__(self) -> None:
        if self.number_of_decks < 1:
            raise ValueError("number_of_decks must be at least 1")
        if self.ranks is not None and Rank.JOKER in self.ranks:
            raise ValueError("Jokers are added with include_jokers, not ranks")

    def build(self) -> list[Card]:
        """Generate the unshuffled card sequence for this configuration."""
        ranks = self.ranks if self.ranks is not None else STANDARD_RANKS
        cards: list[Card] = []
        for _ in range(self.number_of_decks):
            cards.extend(Card(suit, rank) for suit in STANDARD_SUITS for rank in ranks)
            if self.include_jokers:
                cards.append(Card(Suit.JOKER, Rank.JOKER))
                cards.append(Card(Suit.JOKER, Rank.JOKER))
        return cards

    @property
    def size(self) -> int:
        ranks = self.ranks if self.ranks is not None else STANDARD_RANKS
        jokers = 2 if self.include_jokers else 0
        return self.number_of_decks * (len(STANDARD_SUITS) * len(ranks) + jokers)


class DeckPreset(Enum):
    """Named deck compositions offered at game setup."""

    STANDARD = "standard"
    WITH_JOKERS = "with_jokers"
    DOUBLE = "double"
    ROYALS_ONLY = "royals_only"
    NUMBERS_ONLY = "numbers_only"

    @property
    def config(self) -> DeckConfig:
        return {
            DeckPreset.STANDARD: DeckConfig(),
            DeckPreset.WITH_JOKERS: DeckConfig(include_jokers=True),
            DeckPreset.DOUBLE: DeckConfig(number_of_decks=2, include_jokers=True),
            DeckPreset.ROYALS_ONLY: DeckConfig(ranks=ROYAL_RANKS),
            DeckPreset.NUMBERS_ONLY: DeckConfig(ranks=NUMBER_RANKS),
        }[self]


class Deck:
    """
    A draw sequence and a discard pile sharing one set of cards.

    The front of the draw sequence is the next card drawn; the last card
    of the discard pile is its top. Nothing here raises for an empty
    deck: draws come back as None or as shorter lists.
    """

    def __init__(
        self,
        config: DeckConfig | None = None,
        cards: Iterable[Card] | None = None,
        rng: Random | None = None,
    ) -> None:
        """
        Initialize a deck.

        Args:
            config: Composition to generate (standard 52 if omitted)
            cards: Explicit card list, used as-is instead of a config
            rng: Random number generator for shuffling
        """
        self._rng = rng or Random()
        self._config = config or DeckConfig()
        self._custom: list[tuple[Suit, Rank]] | None = None
        self._cards: list[Card] = []
        self._discard_pile: list[Card] = []

        if cards is not None:
            self._cards = list(cards)
            self._custom = [(card.suit, card.rank) for card in self._cards]
        else:
            self._cards = self._config.build()

    @classmethod
    def standard(cls, rng: Random | None = None) -> "Deck":
        """Standard 52-card deck."""
        return cls(DeckPreset.STANDARD.config, rng=rng)

    @classmethod
    def with_jokers(cls, rng: Random | None = None) -> "Deck":
        """52 cards plus 2 jokers."""
        return cls(DeckPreset.WITH_JOKERS.config, rng=rng)

    @classmethod
    def double_deck(cls, rng: Random | None = None) -> "Deck":
        """Two decks with jokers (108 cards), e.g. for Canasta."""
        return cls(DeckPreset.DOUBLE.config, rng=rng)

    @classmethod
    def royals_only(cls, rng: Random | None = None) -> "Deck":
        """Only J, Q, K and A of each suit."""
        return cls(DeckPreset.ROYALS_ONLY.config, rng=rng)

    @classmethod
    def number_cards_only(cls, rng: Random | None = None) -> "Deck":
        """Only 2 through 10 of each suit."""
        return cls(DeckPreset.NUMBERS_ONLY.config, rng=rng)

    @classmethod
    def from_preset(cls, preset: DeckPreset, rng: Random | None = None) -> "Deck":
        return cls(preset.config, rng=rng)

    def shuffle(self) -> None:
        """Shuffle the draw sequence in place (Fisher-Yates)."""
        cards = self._cards
        for i in range(len(cards) - 1, 0, -1):
            j = self._rng.randint(0, i)
            cards[i], cards[j] = cards[j], cards[i]

    def draw(self) -> Card | None:
        """Remove and return the front card, or None if the deck is empty."""
        if not self._cards:
            return None
        return self._cards.pop(0)

    def draw_many(self, count: int) -> list[Card]:
        """Draw up to `count` cards, fewer if the deck runs out."""
        drawn: list[Card] = []
        for _ in range(min(max(count, 0), len(self._cards))):
            drawn.append(self._cards.pop(0))
        return drawn

    def deal(self, player_count: int, cards_per_player: int) -> list[list[Card]]:
        """
        Deal round-robin to `player_count` hands.

        Each round gives one card to every slot in order. Hands stay
        partial if the deck runs out mid-deal.

        Returns:
            One list of cards per player slot
        """
        hands: list[list[Card]] = [[] for _ in range(max(player_count, 0))]
        for _ in range(max(cards_per_player, 0)):
            for hand in hands:
                card = self.draw()
                if card is None:
                    return hands
                hand.append(card)
        return hands

    def discard(self, card: Card) -> None:
        """Put a card on top of the discard pile."""
        self._discard_pile.append(card)

    def pop_discard(self) -> Card | None:
        """Take the top card off the discard pile."""
        if not self._discard_pile:
            return None
        return self._discard_pile.pop()

    def peek(self) -> Card | None:
        """Return the front card without drawing it."""
        return self._cards[0] if self._cards else None

    def reclaim_discard_pile(self) -> None:
        """Move the discard pile, in order, under the draw sequence. Does not shuffle."""
        self._cards.extend(self._discard_pile)
        self._discard_pile.clear()

    def reset(self, config: DeckConfig | None = None) -> None:
        """
        Throw away both piles and regenerate the draw sequence.

        Args:
            config: New composition; defaults to the deck's current one
        """
        self._cards.clear()
        self._discard_pile.clear()

        if config is not None:
            self._config = config
            self._custom = None

        if self._custom is not None:
            self._cards = [Card(suit, rank) for suit, rank in self._custom]
        else:
            self._cards = self._config.build()

    @property
    def config(self) -> DeckConfig | None:
        """Generating configuration, or None for a custom card list."""
        return None if self._custom is not None else self._config

    @property
    def cards(self) -> tuple[Card, ...]:
        return tuple(self._cards)

    @property
    def discard_pile(self) -> tuple[Card, ...]:
        return tuple(self._discard_pile)

    @property
    def remaining_count(self) -> int:
        return len(self._cards)

    @property
    def discard_count(self) -> int:
        return len(self._discard_pile)

    @property
    def top_discard_card(self) -> Card | None:
        return self._discard_pile[-1] if self._discard_pile else None

    @property
    def is_empty(self) -> bool:
        return not self._cards

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)
