"""Session state enumeration."""

from enum import Enum, auto


class SessionState(Enum):
    """
    Pass-and-play session states.

    Flow: IDLE → IN_PROGRESS (deal) → IDLE (reset). There is no finished
    state; deciding a winner belongs to the rules of a specific game.
    """

    # Constructed or reset, no hands dealt
    IDLE = auto()

    # Hands dealt, turns being taken
    IN_PROGRESS = auto()

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()

