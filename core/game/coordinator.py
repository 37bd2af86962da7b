"""Pass-and-play turn coordinator with a privacy gate."""

import logging
from dataclasses import dataclass
from math import ceil
from random import Random
from typing import TYPE_CHECKING, Callable, Iterable
from uuid import UUID

from transitions import Machine

from core.auth import AuthOutcome, Authenticator
from core.cards import Card, Deck, DeckConfig
from core.errors import InvalidStateError, UnknownPlayerError
from core.game.events import EventEmitter, EventType, GameEvent
from core.game.state import SessionState
from core.player import AVATAR_OPTIONS, HandSortType, Player, PlayerColor

if TYPE_CHECKING:
    from core.catalog import DealPattern, GameDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerView:
    """Public, read-only view of a player. Carries no cards."""

    id: UUID
    name: str
    avatar: str
    color: PlayerColor
    score: int
    hand_count: int

    @classmethod
    def of(cls, player: Player) -> "PlayerView":
        return cls(
            id=player.id,
            name=player.name,
            avatar=player.avatar,
            color=player.color,
            score=player.score,
            hand_count=player.hand_count,
        )


@dataclass(frozen=True)
class TableSnapshot:
    """Everything the presentation layer may show to whoever holds the device."""

    state: SessionState
    game_in_progress: bool
    current_player_index: int
    current_player: PlayerView | None
    players: tuple[PlayerView, ...]
    remaining_count: int
    discard_count: int
    top_discard_card: Card | None
    freedom_mode: bool
    require_authentication: bool
    hand_revealed: bool


class PassAndPlayCoordinator:
    """
    Runs one pass-and-play session: a ring of players sharing one deck.

    The coordinator owns the deck and every player's hand. Callers read
    state through views and snapshots and change it only through the
    methods below. Requests that break turn order are rejected with an
    INVALID_ACTION event and a falsy return value, unless freedom mode
    switches that enforcement off.
    """

    STATES = [s.name.lower() for s in SessionState]

    TRANSITIONS = [
        {"trigger": "hands_dealt", "source": ["idle", "in_progress"], "dest": "in_progress"},
        {"trigger": "table_reset", "source": "*", "dest": "idle"},
    ]

    def __init__(
        self,
        players: Iterable[Player | str] = (),
        deck: Deck | DeckConfig | None = None,
        freedom_mode: bool = False,
        require_authentication: bool = True,
        authenticator: Authenticator | None = None,
        rng: Random | None = None,
    ) -> None:
        """
        Initialize a session.

        Args:
            players: Players (or names) in seating order
            deck: Deck to own, or a configuration to build one from
            freedom_mode: Disable turn-order enforcement
            require_authentication: Gate hand visibility behind authentication
            authenticator: Default authentication method
            rng: Random number generator for decks built here
        """
        if isinstance(deck, Deck):
            self._deck = deck
        else:
            self._deck = Deck(deck, rng=rng)

        self._players: list[Player] = [
            p if isinstance(p, Player) else self._new_player(p, i) for i, p in enumerate(players)
        ]
        self._current_index = 0
        self._turn_counter = 0
        self._revealed_player_id: UUID | None = None
        self._auth_pending = False

        self.freedom_mode = freedom_mode
        self.require_authentication = require_authentication
        self.authenticator = authenticator
        self.events = EventEmitter()

        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="idle",
            auto_transitions=False,
            model_attribute="_machine_state",
        )

    @classmethod
    def for_game(
        cls,
        definition: "GameDefinition",
        players: Iterable[Player | str],
        **kwargs,
    ) -> "PassAndPlayCoordinator":
        """Build a session whose deck matches a game definition's requirements."""
        players = list(players)
        if not definition.player_count.accepts(len(players)):
            raise ValueError(
                f"{definition.name} needs {definition.player_count.display_string}, "
                f"got {len(players)}"
            )
        return cls(players, deck=definition.deck_requirements.to_deck_config(), **kwargs)

    @staticmethod
    def _new_player(name: str, seat: int) -> Player:
        colors = list(PlayerColor)
        return Player(
            name=name,
            avatar=AVATAR_OPTIONS[seat % len(AVATAR_OPTIONS)],
            color=colors[seat % len(colors)],
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """Get current session state as enum."""
        return SessionState[self._machine_state.upper()]  # type: ignore

    @property
    def game_in_progress(self) -> bool:
        return self.state == SessionState.IN_PROGRESS

    @property
    def players(self) -> tuple[PlayerView, ...]:
        return tuple(PlayerView.of(p) for p in self._players)

    @property
    def player_count(self) -> int:
        return len(self._players)

    @property
    def current_player_index(self) -> int:
        return self._current_index

    @property
    def current_player(self) -> PlayerView:
        return PlayerView.of(self._require_current())

    @property
    def remaining_count(self) -> int:
        return self._deck.remaining_count

    @property
    def discard_count(self) -> int:
        return self._deck.discard_count

    @property
    def top_discard_card(self) -> Card | None:
        return self._deck.top_discard_card

    @property
    def draw_pile(self) -> tuple[Card, ...]:
        return self._deck.cards

    @property
    def discard_pile(self) -> tuple[Card, ...]:
        return self._deck.discard_pile

    @property
    def deck_config(self) -> DeckConfig | None:
        return self._deck.config

    @property
    def turn_counter(self) -> int:
        """Increments whenever the device may have changed hands."""
        return self._turn_counter

    @property
    def authentication_pending(self) -> bool:
        return self._auth_pending

    def _hand_of(self, player_id: UUID) -> tuple[Card, ...]:
        """Any player's hand, bypassing the privacy gate. For persistence and tests only."""
        return tuple(self._player(player_id).hand)

    def snapshot(self) -> TableSnapshot:
        current = self._players[self._current_index] if self._players else None
        return TableSnapshot(
            state=self.state,
            game_in_progress=self.game_in_progress,
            current_player_index=self._current_index,
            current_player=PlayerView.of(current) if current is not None else None,
            players=self.players,
            remaining_count=self._deck.remaining_count,
            discard_count=self._deck.discard_count,
            top_discard_card=self._deck.top_discard_card,
            freedom_mode=self.freedom_mode,
            require_authentication=self.require_authentication,
            hand_revealed=self.hand_revealed,
        )

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to table events."""
        self.events.subscribe(handler, event_type)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def add_player(
        self,
        player: Player | str,
        avatar: str | None = None,
        color: PlayerColor | None = None,
    ) -> PlayerView | None:
        """Seat a new player at the end of the ring (idle sessions only)."""
        if self.game_in_progress:
            self._reject("add_player", "Cannot add players during a game")
            return None

        if isinstance(player, str):
            player = self._new_player(player, len(self._players))
        if avatar is not None:
            player.avatar = avatar
        if color is not None:
            player.color = color

        self._players.append(player)
        self.events.emit_new(EventType.PLAYER_ADDED, player_id=str(player.id), name=player.name)
        return PlayerView.of(player)

    def remove_player(self, player_id: UUID) -> bool:
        """
        Remove a player (idle sessions only).

        Any cards the player still holds go to the discard pile.
        """
        player = self._player(player_id)
        if self.game_in_progress:
            self._reject("remove_player", "Cannot remove players during a game")
            return False

        index = self._players.index(player)
        for card in player.hand:
            self._deck.discard(card)
        player.clear_hand()
        del self._players[index]

        if index < self._current_index:
            self._current_index -= 1
        if self._current_index >= len(self._players):
            self._current_index = 0
        self._start_new_turn()

        self.events.emit_new(EventType.PLAYER_REMOVED, player_id=str(player_id), name=player.name)
        return True

    # ------------------------------------------------------------------
    # Session flow
    # ------------------------------------------------------------------

    def deal_cards(self, cards_per_player: int) -> None:
        """
        Clear every hand and deal round-robin from the shared deck.

        Cards still held from a previous deal go to the discard pile. Each
        new hand is sorted by suit. Hands stay short if the deck runs out.
        """
        if not self._players:
            raise InvalidStateError("Cannot deal: no players")

        for player in self._players:
            for card in player.hand:
                self._deck.discard(card)
            player.clear_hand()

        hands = self._deck.deal(len(self._players), cards_per_player)
        for player, cards in zip(self._players, hands):
            player.add_cards(cards)
            player.sort_hand(HandSortType.SUIT)

        self._start_new_turn()
        self.hands_dealt()

        logger.info(
            "Dealt %d cards to %d players, %d left in deck",
            cards_per_player,
            len(self._players),
            self._deck.remaining_count,
        )
        self.events.emit_new(
            EventType.CARDS_DEALT,
            cards_per_player=cards_per_player,
            hand_counts=[p.hand_count for p in self._players],
            remaining=self._deck.remaining_count,
        )

    def deal_all_cards(self) -> None:
        """Deal the whole draw sequence round-robin; early seats may get one extra."""
        if not self._players:
            raise InvalidStateError("Cannot deal: no players")
        # Cards cleared from hands go to the discard pile, not the draw sequence.
        self.deal_cards(ceil(self._deck.remaining_count / len(self._players)))

    def deal_by_pattern(self, pattern: "DealPattern") -> None:
        """Deal as a catalog game prescribes: a fixed count or the whole deck."""
        if pattern.deals_whole_deck:
            self.deal_all_cards()
        else:
            self.deal_cards(pattern.cards_per_player)  # type: ignore[arg-type]

    def next_turn(self) -> int:
        """Pass the device to the next player. Returns the new index."""
        if not self._players:
            raise InvalidStateError("Cannot change turn: no players")
        return self._set_current((self._current_index + 1) % len(self._players))

    def previous_turn(self) -> int:
        """Pass the device back to the previous player. Returns the new index."""
        if not self._players:
            raise InvalidStateError("Cannot change turn: no players")
        return self._set_current((self._current_index - 1) % len(self._players))

    def reset_game(self) -> None:
        """Rebuild and shuffle the deck, clear every hand and return to idle."""
        self._deck.reset()
        self._deck.shuffle()
        for player in self._players:
            player.clear_hand()
        self._current_index = 0
        self._start_new_turn()
        self.table_reset()

        logger.info("Game reset, %d cards in deck", self._deck.remaining_count)
        self.events.emit_new(EventType.GAME_RESET, remaining=self._deck.remaining_count)

    def _set_current(self, index: int) -> int:
        previous = self._current_index
        self._current_index = index
        self._start_new_turn()
        logger.debug("Turn %d -> %d", previous, index)
        self.events.emit_new(
            EventType.TURN_CHANGED,
            previous_index=previous,
            current_index=index,
            player_id=str(self._players[index].id),
        )
        return index

    def _start_new_turn(self) -> None:
        """Hide any revealed hand; pending authentication results become stale."""
        self._turn_counter += 1
        self.hide_hand()

    # ------------------------------------------------------------------
    # Deck and hands
    # ------------------------------------------------------------------

    def shuffle_deck(self) -> None:
        self._deck.shuffle()
        self.events.emit_new(EventType.DECK_SHUFFLED, remaining=self._deck.remaining_count)

    def reclaim_discard_pile(self, shuffle: bool = False) -> int:
        """
        Return the discard pile to the bottom of the deck.

        Args:
            shuffle: Shuffle the deck afterwards

        Returns:
            Number of cards reclaimed
        """
        reclaimed = self._deck.discard_count
        self._deck.reclaim_discard_pile()
        self.events.emit_new(EventType.DISCARD_RECLAIMED, count=reclaimed)
        if shuffle:
            self.shuffle_deck()
        return reclaimed

    def draw_for_player(self, player_id: UUID, count: int = 1) -> list[Card] | None:
        """
        Draw cards from the deck into a player's hand.

        Returns:
            The cards drawn (possibly fewer than asked), or None if rejected
        """
        player = self._player(player_id)
        if not self._check_turn(player, "draw"):
            return None

        cards = self._deck.draw_many(count)
        player.add_cards(cards)
        self.events.emit_new(
            EventType.CARD_DRAWN,
            player_id=str(player.id),
            count=len(cards),
            remaining=self._deck.remaining_count,
        )
        return cards

    def take_from_discard(self, player_id: UUID) -> Card | None:
        """Move the top discard into a player's hand."""
        player = self._player(player_id)
        if not self._check_turn(player, "take_from_discard"):
            return None
        if self._deck.discard_count == 0:
            self._reject("take_from_discard", "Discard pile is empty")
            return None

        card = self._deck.pop_discard()
        player.add_card(card)
        self.events.emit_new(
            EventType.CARD_TAKEN,
            player_id=str(player.id),
            card=card.display_name,
            source="discard",
        )
        return card

    def discard_from_player(self, player_id: UUID, card_id: UUID) -> Card | None:
        """Move a card from a player's hand onto the discard pile."""
        player = self._player(player_id)
        if not self._check_turn(player, "discard"):
            return None

        card = player.remove_card_by_id(card_id)
        if card is None:
            self._reject("discard", "Card is not in this hand", player_id=str(player_id))
            return None

        self._deck.discard(card)
        self.events.emit_new(
            EventType.CARD_DISCARDED,
            player_id=str(player.id),
            card=card.display_name,
            discard_count=self._deck.discard_count,
        )
        return card

    def pass_card(self, from_player_id: UUID, to_player_id: UUID, card_id: UUID) -> Card | None:
        """Move a card from one hand to another."""
        giver = self._player(from_player_id)
        receiver = self._player(to_player_id)
        if not self._check_turn(giver, "pass_card"):
            return None

        card = giver.remove_card_by_id(card_id)
        if card is None:
            self._reject("pass_card", "Card is not in this hand", player_id=str(from_player_id))
            return None

        receiver.add_card(card)
        self.events.emit_new(
            EventType.CARD_GIVEN,
            from_player_id=str(giver.id),
            to_player_id=str(receiver.id),
        )
        return card

    def sort_hand(self, player_id: UUID, by: HandSortType = HandSortType.SUIT) -> None:
        self._player(player_id).sort_hand(by)

    def adjust_score(self, player_id: UUID, delta: int) -> int:
        """Add `delta` to a player's score and return the new score."""
        player = self._player(player_id)
        player.score += delta
        self.events.emit_new(EventType.SCORE_CHANGED, player_id=str(player.id), score=player.score)
        return player.score

    # ------------------------------------------------------------------
    # Privacy gate
    # ------------------------------------------------------------------

    @property
    def hand_revealed(self) -> bool:
        """Whether the current player's hand may be shown right now."""
        if not self._players:
            return False
        return self._revealed_player_id == self._players[self._current_index].id

    def visible_hand(self) -> tuple[Card, ...] | None:
        """The current player's hand if it has been revealed, otherwise None."""
        if not self.hand_revealed:
            return None
        return tuple(self._players[self._current_index].hand)

    def hide_hand(self) -> None:
        if self._revealed_player_id is None:
            return
        player_id = self._revealed_player_id
        self._revealed_player_id = None
        self.events.emit_new(EventType.HAND_HIDDEN, player_id=str(player_id))

    def update_visibility(self, still_visible: bool) -> bool:
        """
        Forward a presentation-side privacy signal (blur, inactivity).

        Returns:
            Whether the hand is still revealed
        """
        if not still_visible:
            self.hide_hand()
        return self.hand_revealed

    async def authenticate_player(self, authenticator: Authenticator | None = None) -> bool:
        """
        Authenticate whoever holds the device before showing the current hand.

        With authentication switched off this succeeds at once. An
        unavailable method counts as success so that devices without
        biometrics or a passcode are not locked out. A failure is not
        fatal; the player may try again.

        Args:
            authenticator: Method for this attempt (defaults to self.authenticator)

        Returns:
            True if access was granted
        """
        player = self._require_current()
        if self._auth_pending:
            raise InvalidStateError("Authentication already in progress")

        if not self.require_authentication:
            self._reveal(player)
            return True

        method = authenticator or self.authenticator
        turn = self._turn_counter
        self._auth_pending = True
        self.events.emit_new(EventType.AUTHENTICATION_REQUESTED, player_id=str(player.id))
        try:
            if method is None:
                outcome = AuthOutcome.UNAVAILABLE
            else:
                outcome = await method.attempt_authentication()
        finally:
            self._auth_pending = False

        if not outcome.grants_access:
            logger.info("Authentication failed for %s", player.name)
            self.events.emit_new(
                EventType.AUTHENTICATION_FAILED,
                player_id=str(player.id),
                outcome=outcome.value,
            )
            return False

        self.events.emit_new(
            EventType.AUTHENTICATION_SUCCEEDED,
            player_id=str(player.id),
            outcome=outcome.value,
        )
        if turn != self._turn_counter:
            logger.info("Ignoring late authentication for %s: turn changed", player.name)
            return True

        self._reveal(player)
        return True

    def _reveal(self, player: Player) -> None:
        self._revealed_player_id = player.id
        self.events.emit_new(EventType.HAND_REVEALED, player_id=str(player.id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _player(self, player_id: UUID) -> Player:
        for player in self._players:
            if player.id == player_id:
                return player
        raise UnknownPlayerError(player_id)

    def _require_current(self) -> Player:
        if not self._players:
            raise InvalidStateError("No players at the table")
        return self._players[self._current_index]

    def _check_turn(self, player: Player, action: str) -> bool:
        """Enforce turn order unless freedom mode is on."""
        if self.freedom_mode:
            return True
        if not self.game_in_progress:
            self._reject(action, "No game in progress")
            return False
        if player is not self._players[self._current_index]:
            self._reject(action, "Not this player's turn", player_id=str(player.id))
            return False
        return True

    def _reject(self, action: str, message: str, **data) -> None:
        logger.debug("Rejected %s: %s", action, message)
        self.events.emit_new(EventType.INVALID_ACTION, action=action, message=message, **data)
