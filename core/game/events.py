"""Table events for the presentation layer."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of table events."""

    # Setup
    PLAYER_ADDED = auto()
    PLAYER_REMOVED = auto()

    # Session flow
    CARDS_DEALT = auto()
    GAME_RESET = auto()
    TURN_CHANGED = auto()

    # Deck
    DECK_SHUFFLED = auto()
    CARD_DRAWN = auto()
    CARD_DISCARDED = auto()
    DISCARD_RECLAIMED = auto()

    # Hands
    CARD_GIVEN = auto()
    CARD_TAKEN = auto()
    SCORE_CHANGED = auto()

    # Privacy gate
    AUTHENTICATION_REQUESTED = auto()
    AUTHENTICATION_SUCCEEDED = auto()
    AUTHENTICATION_FAILED = auto()
    HAND_REVEALED = auto()
    HAND_HIDDEN = auto()

    # Rejected requests
    INVALID_ACTION = auto()


@dataclass(frozen=True)
class GameEvent:
    """
    Immutable table event.

    Payloads name players and public cards only; a private hand never
    travels in an event.
    """

    event_type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"{self.event_type.name}: {self.data}"


EventHandler = Callable[[GameEvent], None]


class EventEmitter:
    """Event emitter with per-type and catch-all subscriptions."""

    def __init__(self) -> None:
        self._handlers: dict[EventType | None, list[EventHandler]] = {}
        self._event_history: list[GameEvent] = []

    def subscribe(
        self,
        handler: EventHandler,
        event_type: EventType | None = None,
    ) -> None:
        """
        Subscribe to events.

        Args:
            handler: Function to call when event occurs
            event_type: Specific event type to subscribe to, or None for all events
        """
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(
        self,
        handler: EventHandler,
        event_type: EventType | None = None,
    ) -> bool:
        """
        Unsubscribe from events.

        Returns:
            True if the handler was subscribed
        """
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def emit(self, event: GameEvent) -> None:
        """Record an event and deliver it to type-specific, then catch-all, handlers."""
        self._event_history.append(event)
        logger.debug("event %s", event)

        for handler in self._handlers.get(event.event_type, []):
            handler(event)
        for handler in self._handlers.get(None, []):
            handler(event)

    def emit_new(
        self,
        event_type: EventType,
        **data: Any,
    ) -> GameEvent:
        """Create and emit a new event."""
        event = GameEvent(event_type=event_type, data=data)
        self.emit(event)
        return event

    @property
    def history(self) -> list[GameEvent]:
        """Return a copy of the event history."""
        return self._event_history.copy()

    def clear_history(self) -> None:
        self._event_history.clear()
