"""Tests for the table event emitter."""

from core.game import EventEmitter, EventType


def test_type_handlers_run_before_catch_all():
    emitter = EventEmitter()
    calls = []
    emitter.subscribe(lambda e: calls.append("all"))
    emitter.subscribe(lambda e: calls.append("dealt"), EventType.CARDS_DEALT)

    emitter.emit_new(EventType.CARDS_DEALT, cards_per_player=7)
    emitter.emit_new(EventType.GAME_RESET)

    assert calls == ["dealt", "all", "all"]


def test_unsubscribe():
    emitter = EventEmitter()
    seen = []
    emitter.subscribe(seen.append, EventType.TURN_CHANGED)

    assert emitter.unsubscribe(seen.append, EventType.TURN_CHANGED)
    assert not emitter.unsubscribe(seen.append, EventType.TURN_CHANGED)
    emitter.emit_new(EventType.TURN_CHANGED)
    assert seen == []


def test_history_is_a_copy():
    emitter = EventEmitter()
    event = emitter.emit_new(EventType.DECK_SHUFFLED, remaining=52)
    history = emitter.history
    history.clear()

    assert emitter.history == [event]
    assert str(event) == "DECK_SHUFFLED: {'remaining': 52}"

    emitter.clear_history()
    assert emitter.history == []


def test_coordinator_subscription(table):
    seen = []
    table.subscribe(seen.append, EventType.TURN_CHANGED)
    table.next_turn()
    table.deal_cards(1)
    assert [e.data["current_index"] for e in seen] == [1]
