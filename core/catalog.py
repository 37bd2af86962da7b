"""Game definition records from the bundled catalog document."""

import logging
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from core.cards import NUMBER_RANKS, ROYAL_RANKS, DeckConfig

logger = logging.getLogger(__name__)

SUBSET_RANKS = {
    "royals": ROYAL_RANKS,
    "numbers": NUMBER_RANKS,
}


class CatalogError(ValueError):
    """The catalog document could not be read or parsed."""


class GameCategory(str, Enum):
    CLASSICS = "Classics"
    PARTY = "Party"
    TRICK_TAKING = "Trick-Taking"
    SHEDDING = "Shedding"
    MATCHING = "Matching"
    SOLITAIRE = "Solitaire"
    CASINO = "Casino"
    REGIONAL = "Regional"


class GameDuration(str, Enum):
    QUICK = "quick"
    MEDIUM = "medium"
    LONG = "long"


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PlayerRange(_Record):
    """Supported player counts."""

    min: int = Field(..., ge=1)
    max: int = Field(..., ge=1)
    recommended: int | None = Field(default=None, alias="rec")

    def accepts(self, count: int) -> bool:
        return self.min <= count <= self.max

    @property
    def display_string(self) -> str:
        if self.recommended is not None:
            return f"{self.min}-{self.max} players (best: {self.recommended})"
        return f"{self.min}-{self.max} players"


class DeckRequirements(_Record):
    """Which deck a game is played with."""

    number_of_decks: int = Field(default=1, ge=1, alias="n")
    include_jokers: bool = Field(default=False, alias="j")
    custom_subset: str | None = Field(default=None, alias="s")

    def to_deck_config(self) -> DeckConfig:
        """
        Build the matching deck configuration.

        Subsets other than 'royals' and 'numbers' describe house variants
        the deck engine cannot build; they fall back to full sub-decks.
        """
        ranks = None
        if self.custom_subset is not None:
            ranks = SUBSET_RANKS.get(self.custom_subset.strip().lower())
            if ranks is None:
                logger.warning("Unknown deck subset %r, using full decks", self.custom_subset)
        return DeckConfig(
            number_of_decks=self.number_of_decks,
            include_jokers=self.include_jokers,
            ranks=ranks,
        )

    @property
    def display_string(self) -> str:
        desc = f"{self.number_of_decks} deck{'s' if self.number_of_decks > 1 else ''}"
        if self.include_jokers:
            desc += " with Jokers"
        if self.custom_subset:
            desc += f" ({self.custom_subset})"
        return desc


class DealPattern(_Record):
    """How many cards each player starts with."""

    cards_per_player: int | Literal["all"] = Field(..., alias="cpp")
    communal_cards: int | None = Field(default=None, alias="cm")

    @property
    def deals_whole_deck(self) -> bool:
        return self.cards_per_player == "all"


class GameDefinition(_Record):
    """One catalog entry."""

    id: str
    name: str
    aliases: list[str] | None = None
    category: GameCategory = Field(..., alias="cat")
    player_count: PlayerRange = Field(..., alias="p")
    deck_requirements: DeckRequirements = Field(..., alias="dk")
    deal_pattern: DealPattern = Field(..., alias="dl")
    rule_summary: str = Field(..., alias="rl")
    win_condition: str = Field(..., alias="win")
    difficulty: int | None = Field(default=None, ge=1, le=5)
    duration: GameDuration | None = None
    tags: list[str] | None = None


_definitions_adapter = TypeAdapter(list[GameDefinition])


def parse_game_definitions(document: str | bytes) -> list[GameDefinition]:
    """Parse a JSON array of game definitions, keeping document order."""
    try:
        return _definitions_adapter.validate_json(document)
    except ValidationError as exc:
        raise CatalogError(f"Invalid game catalog: {exc.error_count()} errors") from exc


def load_game_definitions(path: str | Path) -> list[GameDefinition]:
    """Load game definitions from a JSON document on disk."""
    path = Path(path)
    try:
        document = path.read_bytes()
    except OSError as exc:
        raise CatalogError(f"Cannot read game catalog {path}: {exc}") from exc

    games = parse_game_definitions(document)
    logger.info("Loaded %d games from %s", len(games), path.name)
    return games
