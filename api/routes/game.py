"""Pass-and-play table endpoints."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException

from api.schemas import (
    AuthenticateResponse,
    CardResponse,
    DealRequest,
    DiscardRequest,
    DrawRequest,
    DrawResponse,
    HandResponse,
    NewGameRequest,
    NewGameResponse,
    PassCardRequest,
    PlayerResponse,
    ReclaimRequest,
    SortRequest,
    TableStateResponse,
    VisibilityRequest,
)
from api.session import extract_session_id, get_session_store, new_session_token
from config import config
from core.auth import PasscodeAuthenticator, hash_passcode
from core.cards import Card, Deck, DeckConfig, DeckPreset, Rank, Suit
from core.game import EventType, PassAndPlayCoordinator, PlayerView
from core.player import Player, PlayerColor
from preferences import get_preferences_manager

logger = logging.getLogger(__name__)

router = APIRouter()

# Live tables (backed by the session store) and one lock per table
_tables: dict[str, PassAndPlayCoordinator] = {}
_passcodes: dict[str, dict[str, str]] = {}
_locks: dict[str, asyncio.Lock] = {}

SESSION_KEY_TABLE = "table"
SESSION_KEY_PASSCODES = "passcodes"
SESSION_KEY_CREATED_AT = "created_at"
SESSION_KEY_LAST_ACTIVITY = "last_activity"


def _serialize_card(card: Card) -> dict[str, Any]:
    return {
        "id": str(card.id),
        "suit": card.suit.name,
        "rank": card.rank.name,
        "face_up": card.is_face_up,
        "position": list(card.position),
    }


def _deserialize_card(data: dict[str, Any]) -> Card:
    return Card(
        suit=Suit[data["suit"]],
        rank=Rank[data["rank"]],
        is_face_up=data["face_up"],
        position=tuple(data["position"]),
        id=UUID(data["id"]),
    )


def _serialize_player(player: Player, hand: tuple[Card, ...]) -> dict[str, Any]:
    return {
        "id": str(player.id),
        "name": player.name,
        "avatar": player.avatar,
        "color": player.color.value,
        "score": player.score,
        "hand": [_serialize_card(c) for c in hand],
    }


def _serialize_table(table: PassAndPlayCoordinator) -> dict[str, Any]:
    """Serialize a table for session storage."""
    deck_config = table.deck_config or DeckConfig()
    return {
        "state": table._machine_state,
        "current_index": table.current_player_index,
        "turn_counter": table.turn_counter,
        "revealed_player_id": str(table._revealed_player_id) if table._revealed_player_id else None,
        "freedom_mode": table.freedom_mode,
        "require_authentication": table.require_authentication,
        "deck_config": {
            "number_of_decks": deck_config.number_of_decks,
            "include_jokers": deck_config.include_jokers,
            "ranks": [r.name for r in deck_config.ranks] if deck_config.ranks is not None else None,
        },
        "draw_pile": [_serialize_card(c) for c in table.draw_pile],
        "discard_pile": [_serialize_card(c) for c in table.discard_pile],
        "players": [_serialize_player(p, tuple(p.hand)) for p in table._players],
    }


def _deserialize_table(data: dict[str, Any]) -> PassAndPlayCoordinator:
    """Restore a table from session data."""
    deck_data = data["deck_config"]
    deck_config = DeckConfig(
        number_of_decks=deck_data["number_of_decks"],
        include_jokers=deck_data["include_jokers"],
        ranks=tuple(Rank[r] for r in deck_data["ranks"]) if deck_data["ranks"] is not None else None,
    )
    deck = Deck(deck_config)
    deck._cards = [_deserialize_card(c) for c in data["draw_pile"]]
    deck._discard_pile = [_deserialize_card(c) for c in data["discard_pile"]]

    players = [
        Player(
            name=p["name"],
            hand=[_deserialize_card(c) for c in p["hand"]],
            avatar=p["avatar"],
            color=PlayerColor(p["color"]),
            score=p["score"],
            id=UUID(p["id"]),
        )
        for p in data["players"]
    ]

    table = PassAndPlayCoordinator(
        players,
        deck=deck,
        freedom_mode=data["freedom_mode"],
        require_authentication=data["require_authentication"],
    )
    table._machine_state = data["state"]
    table._current_index = data["current_index"]
    table._turn_counter = data["turn_counter"]
    revealed = data["revealed_player_id"]
    table._revealed_player_id = UUID(revealed) if revealed else None
    return table


async def _save_table(session_id: str, table: PassAndPlayCoordinator) -> None:
    store = await get_session_store()
    session_data = await store.load(session_id) or {}
    session_data[SESSION_KEY_TABLE] = _serialize_table(table)
    session_data[SESSION_KEY_PASSCODES] = _passcodes.get(session_id, {})
    session_data[SESSION_KEY_LAST_ACTIVITY] = int(time.time())
    session_data.setdefault(SESSION_KEY_CREATED_AT, int(time.time()))
    await store.save(session_id, session_data)


async def _load_table(session_id: str) -> PassAndPlayCoordinator:
    """Get the live table for a session, restoring it from the store if needed."""
    if session_id in _tables:
        return _tables[session_id]

    store = await get_session_store()
    session_data = await store.load(session_id)
    if not session_data or SESSION_KEY_TABLE not in session_data:
        raise HTTPException(status_code=404, detail="No table for this session")

    table = _deserialize_table(session_data[SESSION_KEY_TABLE])
    _tables[session_id] = table
    _passcodes[session_id] = session_data.get(SESSION_KEY_PASSCODES, {})
    return table


async def session_id_from_header(
    token: Annotated[str, Header(alias="X-Session-ID")],
) -> str:
    """Verify the signed session token sent by the client."""
    session_id = extract_session_id(token)
    if session_id is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return session_id


SessionId = Annotated[str, Depends(session_id_from_header)]


@asynccontextmanager
async def _table_session(session_id: str, save: bool = True) -> AsyncIterator[PassAndPlayCoordinator]:
    """Serialize requests against one table and persist it afterwards."""
    lock = _locks.setdefault(session_id, asyncio.Lock())
    async with lock:
        table = await _load_table(session_id)
        table.events.clear_history()
        yield table
        if save:
            await _save_table(session_id, table)


def _rejected(table: PassAndPlayCoordinator) -> HTTPException:
    """Turn the latest INVALID_ACTION event into a 400 response."""
    for event in reversed(table.events.history):
        if event.event_type == EventType.INVALID_ACTION:
            return HTTPException(status_code=400, detail=event.data.get("message", "Invalid action"))
    return HTTPException(status_code=400, detail="Invalid action")


def _card_response(card: Card) -> CardResponse:
    return CardResponse(
        id=card.id,
        rank=str(card.rank),
        suit=str(card.suit),
        display_name=card.display_name,
        is_face_up=card.is_face_up,
    )


def _player_response(view: PlayerView, passcodes: dict[str, str]) -> PlayerResponse:
    return PlayerResponse(
        id=view.id,
        name=view.name,
        avatar=view.avatar,
        color=view.color,
        score=view.score,
        hand_count=view.hand_count,
        has_passcode=str(view.id) in passcodes,
    )


def _state_response(session_id: str, table: PassAndPlayCoordinator) -> TableStateResponse:
    snapshot = table.snapshot()
    passcodes = _passcodes.get(session_id, {})
    top = snapshot.top_discard_card
    return TableStateResponse(
        state=snapshot.state.name,
        game_in_progress=snapshot.game_in_progress,
        current_player_index=snapshot.current_player_index,
        current_player=(
            _player_response(snapshot.current_player, passcodes)
            if snapshot.current_player is not None
            else None
        ),
        players=[_player_response(p, passcodes) for p in snapshot.players],
        remaining_count=snapshot.remaining_count,
        discard_count=snapshot.discard_count,
        top_discard_card=_card_response(top) if top is not None else None,
        freedom_mode=snapshot.freedom_mode,
        require_authentication=snapshot.require_authentication,
        hand_revealed=snapshot.hand_revealed,
    )


def _deck_config(request: NewGameRequest) -> DeckConfig:
    if request.preset is not None:
        return request.preset.config
    if request.number_of_decks is not None or request.include_jokers:
        return DeckConfig(
            number_of_decks=request.number_of_decks or 1,
            include_jokers=request.include_jokers,
        )
    return DeckPreset(config.table.deck_preset).config


@router.post("/new")
async def new_game(request: NewGameRequest) -> NewGameResponse:
    """Open a new table and return its signed session token."""
    if len(request.players) < config.table.min_players:
        raise HTTPException(
            status_code=400,
            detail=f"At least {config.table.min_players} players per table",
        )
    if len(request.players) > config.table.max_players:
        raise HTTPException(
            status_code=400,
            detail=f"At most {config.table.max_players} players per table",
        )

    require_auth = request.require_authentication
    if require_auth is None:
        require_auth = get_preferences_manager().preferences.require_authentication
    freedom_mode = request.freedom_mode
    if freedom_mode is None:
        freedom_mode = config.table.freedom_mode

    table = PassAndPlayCoordinator(
        deck=_deck_config(request),
        freedom_mode=freedom_mode,
        require_authentication=require_auth,
    )
    passcodes: dict[str, str] = {}
    for seat in request.players:
        view = table.add_player(seat.name, avatar=seat.avatar, color=seat.color)
        if seat.passcode:
            passcodes[str(view.id)] = hash_passcode(seat.passcode)
    if request.shuffle:
        table.shuffle_deck()

    session_id, token = new_session_token()
    _tables[session_id] = table
    _passcodes[session_id] = passcodes
    await _save_table(session_id, table)

    logger.info("Opened table %s with %d players", session_id[:8], table.player_count)
    return NewGameResponse(session_id=token)


@router.get("/state")
async def get_state(session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id, save=False) as table:
        return _state_response(session_id, table)


@router.delete("")
async def end_game(session_id: SessionId) -> dict[str, str]:
    """Close a table and forget it."""
    store = await get_session_store()
    await store.delete(session_id)
    _tables.pop(session_id, None)
    _passcodes.pop(session_id, None)
    _locks.pop(session_id, None)
    return {"status": "closed"}


@router.post("/deal")
async def deal(request: DealRequest, session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        if request.cards_per_player == "all":
            table.deal_all_cards()
        else:
            table.deal_cards(request.cards_per_player)
        return _state_response(session_id, table)


@router.post("/turn/next")
async def next_turn(session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        table.next_turn()
        return _state_response(session_id, table)


@router.post("/turn/previous")
async def previous_turn(session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        table.previous_turn()
        return _state_response(session_id, table)


@router.post("/reset")
async def reset(session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        table.reset_game()
        return _state_response(session_id, table)


@router.post("/shuffle")
async def shuffle(session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        table.shuffle_deck()
        return _state_response(session_id, table)


@router.post("/reclaim")
async def reclaim(request: ReclaimRequest, session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        table.reclaim_discard_pile(shuffle=request.shuffle)
        return _state_response(session_id, table)


@router.post("/authenticate")
async def authenticate(
    session_id: SessionId,
    passcode: Annotated[str | None, Header(alias="X-Player-Passcode")] = None,
) -> AuthenticateResponse:
    """Check the current player's passcode and reveal their hand on success."""
    async with _table_session(session_id) as table:
        stored = _passcodes.get(session_id, {}).get(str(table.current_player.id))
        granted = await table.authenticate_player(PasscodeAuthenticator(stored, passcode))
        return AuthenticateResponse(granted=granted, hand_revealed=table.hand_revealed)


@router.get("/hand")
async def get_hand(session_id: SessionId) -> HandResponse:
    """The current player's hand, only after authentication."""
    async with _table_session(session_id, save=False) as table:
        cards = table.visible_hand()
        if cards is None:
            raise HTTPException(status_code=403, detail="Hand is hidden; authenticate first")
        return HandResponse(
            player_id=table.current_player.id,
            cards=[_card_response(c) for c in cards],
        )


@router.post("/hide")
async def hide_hand(session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        table.hide_hand()
        return _state_response(session_id, table)


@router.post("/visibility")
async def visibility(request: VisibilityRequest, session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        table.update_visibility(request.still_visible)
        return _state_response(session_id, table)


@router.post("/players/{player_id}/draw")
async def draw(player_id: UUID, request: DrawRequest, session_id: SessionId) -> DrawResponse:
    async with _table_session(session_id) as table:
        cards = table.draw_for_player(player_id, request.count)
        if cards is None:
            raise _rejected(table)
        return DrawResponse(drawn=len(cards), remaining_count=table.remaining_count)


@router.post("/players/{player_id}/take-discard")
async def take_discard(player_id: UUID, session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        if table.take_from_discard(player_id) is None:
            raise _rejected(table)
        return _state_response(session_id, table)


@router.post("/players/{player_id}/discard")
async def discard(player_id: UUID, request: DiscardRequest, session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        if table.discard_from_player(player_id, request.card_id) is None:
            raise _rejected(table)
        return _state_response(session_id, table)


@router.post("/players/{player_id}/pass")
async def pass_card(player_id: UUID, request: PassCardRequest, session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        if table.pass_card(player_id, request.to_player_id, request.card_id) is None:
            raise _rejected(table)
        return _state_response(session_id, table)


@router.post("/players/{player_id}/sort")
async def sort_hand(player_id: UUID, request: SortRequest, session_id: SessionId) -> TableStateResponse:
    async with _table_session(session_id) as table:
        table.sort_hand(player_id, request.sort_type)
        return _state_response(session_id, table)
