"""Pass-and-play session coordination."""

from core.game.events import EventEmitter, EventType, GameEvent
from core.game.state import SessionState
from core.game.coordinator import PassAndPlayCoordinator, PlayerView, TableSnapshot

__all__ = [
    "EventEmitter",
    "GameEvent",
    "EventType",
    "SessionState",
    "PassAndPlayCoordinator",
    "PlayerView",
    "TableSnapshot",
]
