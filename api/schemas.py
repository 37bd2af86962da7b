"""Pydantic schemas for API requests and responses."""

from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from core.cards import DeckPreset
from core.player import HandSortType, PlayerColor


# Setup schemas
class PlayerSetup(BaseModel):
    """One seat at a new table."""

    name: str = Field(..., min_length=1, max_length=40)
    avatar: str | None = None
    color: PlayerColor | None = None
    passcode: str | None = Field(default=None, min_length=4, max_length=32)


class NewGameRequest(BaseModel):
    """Request to open a new pass-and-play table."""

    players: list[PlayerSetup] = Field(..., min_length=1)
    preset: DeckPreset | None = None
    number_of_decks: int | None = Field(default=None, ge=1, le=8)
    include_jokers: bool = False
    freedom_mode: bool | None = None
    require_authentication: bool | None = None
    shuffle: bool = True


class NewGameResponse(BaseModel):
    session_id: str


# Play schemas
class DealRequest(BaseModel):
    """Deal a fixed number of cards to everyone, or the whole deck."""

    cards_per_player: Annotated[int, Field(ge=0)] | Literal["all"] = 7


class DrawRequest(BaseModel):
    count: int = Field(default=1, ge=1, le=108)


class DiscardRequest(BaseModel):
    card_id: UUID


class PassCardRequest(BaseModel):
    to_player_id: UUID
    card_id: UUID


class SortRequest(BaseModel):
    by: Literal["suit", "rank", "value"] = "suit"

    @property
    def sort_type(self) -> HandSortType:
        return HandSortType[self.by.upper()]


class ReclaimRequest(BaseModel):
    shuffle: bool = False


class VisibilityRequest(BaseModel):
    """Privacy signal from the client (blur, inactivity)."""

    still_visible: bool


# Response schemas
class CardResponse(BaseModel):
    """Card representation."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    rank: str
    suit: str
    display_name: str
    is_face_up: bool


class PlayerResponse(BaseModel):
    """Public player information; never includes cards."""

    id: UUID
    name: str
    avatar: str
    color: PlayerColor
    score: int
    hand_count: int
    has_passcode: bool


class TableStateResponse(BaseModel):
    """What anyone looking at the device may see."""

    state: str
    game_in_progress: bool
    current_player_index: int
    current_player: PlayerResponse | None
    players: list[PlayerResponse]
    remaining_count: int
    discard_count: int
    top_discard_card: CardResponse | None
    freedom_mode: bool
    require_authentication: bool
    hand_revealed: bool


class HandResponse(BaseModel):
    player_id: UUID
    cards: list[CardResponse]


class AuthenticateResponse(BaseModel):
    granted: bool
    hand_revealed: bool


class DrawResponse(BaseModel):
    drawn: int
    remaining_count: int


class PreferencesModel(BaseModel):
    """Device preferences."""

    sound_enabled: bool = True
    haptics_enabled: bool = True
    volume: float = Field(default=0.7, ge=0.0, le=1.0)
    require_authentication: bool = True
    auto_blur_enabled: bool = True


class PreferencesUpdate(BaseModel):
    sound_enabled: bool | None = None
    haptics_enabled: bool | None = None
    volume: float | None = Field(default=None, ge=0.0, le=1.0)
    require_authentication: bool | None = None
    auto_blur_enabled: bool | None = None
