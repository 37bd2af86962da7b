"""Pytest fixtures for card table tests."""

from random import Random

import pytest

from core.auth import AuthOutcome
from core.cards import Card, Deck, DeckConfig, Rank, Suit
from core.game import PassAndPlayCoordinator
from core.player import Player


class ScriptedAuthenticator:
    """Authenticator that replays a fixed sequence of outcomes."""

    def __init__(self, *outcomes: AuthOutcome) -> None:
        self._outcomes = list(outcomes)
        self.attempts = 0

    async def attempt_authentication(self) -> AuthOutcome:
        self.attempts += 1
        return self._outcomes.pop(0)


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def deck(rng):
    """An unshuffled standard deck."""
    return Deck(rng=rng)


@pytest.fixture
def shuffled_deck(rng):
    d = Deck(rng=rng)
    d.shuffle()
    return d


@pytest.fixture
def names():
    return ["Ana", "Ben", "Cleo", "Dev"]


@pytest.fixture
def table(names, rng):
    """A four-player table with a shuffled standard deck and no authentication."""
    deck = Deck(rng=rng)
    deck.shuffle()
    return PassAndPlayCoordinator(names, deck=deck, require_authentication=False)


@pytest.fixture
def secure_table(names, rng):
    """A four-player table that requires authentication."""
    return PassAndPlayCoordinator(names, deck=DeckConfig(), rng=rng, require_authentication=True)


@pytest.fixture
def mixed_hand():
    """A player holding cards out of order, including all four ten-value ranks."""
    player = Player("Mixed")
    player.add_cards(
        [
            Card(Suit.CLUBS, Rank.KING),
            Card(Suit.HEARTS, Rank.TEN),
            Card(Suit.SPADES, Rank.ACE),
            Card(Suit.DIAMONDS, Rank.TWO),
            Card(Suit.SPADES, Rank.JACK),
            Card(Suit.HEARTS, Rank.QUEEN),
            Card(Suit.JOKER, Rank.JOKER),
            Card(Suit.CLUBS, Rank.FIVE),
        ]
    )
    return player


@pytest.fixture
def scripted_auth():
    """Factory for authenticators that return the given outcomes in order."""
    return ScriptedAuthenticator
