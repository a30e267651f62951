"""
Tests for the game loop.

Tests:
- Dispatch routing and rejection
- Bot replies to moves and tie-breaks
- Event publication order
- Exit and disconnect cleanup
"""

import logging

import pytest

from ..bots import FirstLegalPolicy
from ..engine_core.action import Action, EventType
from ..engine_core.board import Position, TIE_MARKER
from ..engine_core.combat import Item
from ..engine_core.state import MatchPhase, WinReason, BotParticipant
from ..session import GameLoop, DispatchStatus
from .conftest import place_soldiers, start_playing


@pytest.fixture
def published():
    """Publisher that records (event type, recipients, turn at publish time)."""
    records = []

    def publish(match, event):
        records.append((event.event_type, event.recipients, match.turn))

    publish.records = records
    return publish


@pytest.fixture
def loop(registry, published) -> GameLoop:
    return GameLoop(registry, publish=published)


@pytest.fixture
def human_match_id(loop, alice, bob) -> str:
    return loop.start_match([alice, bob], seed=3).match_id


@pytest.fixture
def bot_match_id(loop, alice) -> str:
    return loop.start_match(
        [alice, BotParticipant(policy=FirstLegalPolicy(tie_item=Item.ROCK))],
        is_bot_match=True,
        seed=3,
    ).match_id


class TestDispatch:
    """Tests for routing commands."""

    def test_start_match_publishes(self, loop, alice, bob, published):
        result = loop.start_match([alice, bob])
        assert result.success
        assert result.event_types == [EventType.MATCH_STARTED]
        assert published.records[0][0] == EventType.MATCH_STARTED

    def test_applied(self, loop, human_match_id):
        result = loop.dispatch(human_match_id, Action.ready(0))
        assert result.status == DispatchStatus.APPLIED
        assert result.event_types == [EventType.STATE_CHANGED]
        assert result.changes

    def test_rejected_publishes_nothing(self, loop, human_match_id, published):
        count = len(published.records)
        result = loop.dispatch(human_match_id, Action.move(0, (1, 0), (2, 0)))

        assert result.status == DispatchStatus.REJECTED
        assert result.error_code == "WRONG_PHASE"
        assert len(published.records) == count

    def test_unknown_match(self, loop):
        result = loop.dispatch("missing", Action.ready(0))
        assert result.status == DispatchStatus.MATCH_NOT_FOUND
        assert not result.success

    def test_dispatch_for_resolves_side(self, loop, registry, human_match_id):
        result = loop.dispatch_for(human_match_id, "conn-bob", Action.ready)
        assert result.success
        assert registry.get(human_match_id).sides[1].ready

    def test_dispatch_for_stranger(self, loop, human_match_id):
        result = loop.dispatch_for(human_match_id, "conn-carol", Action.ready)
        assert result.status == DispatchStatus.NOT_IN_MATCH

    def test_dispatch_for_unknown_match(self, loop):
        result = loop.dispatch_for("missing", "conn-alice", Action.ready)
        assert result.status == DispatchStatus.MATCH_NOT_FOUND

    def test_exit_removes_match(self, loop, registry, human_match_id):
        result = loop.dispatch(human_match_id, Action.exit(0))

        assert result.success
        assert result.match_removed
        assert human_match_id not in registry
        assert result.event_types == [EventType.STATE_CHANGED, EventType.RETURNED_TO_LOBBY]

    def test_replay_keeps_match(self, loop, registry, human_match_id):
        match = registry.get(human_match_id)
        place_soldiers(match, {(2, 2): (0, Item.PAPER), (3, 3): (1, Item.ROCK)})
        start_playing(match)
        loop.dispatch(human_match_id, Action.move(0, (2, 2), (3, 3)))

        result = loop.dispatch(human_match_id, Action.replay())

        assert result.success
        assert human_match_id in registry
        assert match.phase == MatchPhase.SETUP


class TestBotTurns:
    """Tests for bot replies."""

    def test_bot_is_ready_from_the_start(self, loop, registry, bot_match_id):
        result = loop.dispatch(bot_match_id, Action.ready(0))
        assert registry.get(bot_match_id).phase == MatchPhase.PLAYING
        assert result.bot_actions == []

    def test_bot_answers_a_move(self, loop, registry, bot_match_id, published):
        loop.dispatch(bot_match_id, Action.ready(0))
        published.records.clear()

        result = loop.dispatch(bot_match_id, Action.move(0, (1, 3), (2, 3)))

        match = registry.get(bot_match_id)
        assert result.bot_actions == ["move"]
        assert match.turn == 0
        # First legal move of the first bot soldier scanned: (4, 0) -> (3, 0)
        assert match.board.soldier_at(Position(3, 0)).owner == 1
        assert match.board.occupant_at(Position(4, 0)) is None

    def test_bot_explanation_logged(self, loop, bot_match_id, caplog):
        caplog.set_level(logging.DEBUG, logger="boardrps.session.game_loop")
        loop.dispatch(bot_match_id, Action.ready(0))

        loop.dispatch(bot_match_id, Action.move(0, (1, 3), (2, 3)))

        assert "Selected first legal action" in caplog.text

    def test_human_state_published_before_bot_move(self, loop, bot_match_id, published):
        loop.dispatch(bot_match_id, Action.ready(0))
        published.records.clear()

        loop.dispatch(bot_match_id, Action.move(0, (1, 3), (2, 3)))

        assert [(t, turn) for t, _, turn in published.records] == [
            (EventType.STATE_CHANGED, 1),
            (EventType.STATE_CHANGED, 0),
        ]

    @pytest.fixture
    def tied_bot_match(self, loop, registry, bot_match_id):
        """Human rock meets bot rock at (3, 3)."""
        match = registry.get(bot_match_id)
        place_soldiers(match, {
            (2, 2): (0, Item.ROCK),
            (0, 0): (0, Item.PAPER),
            (3, 3): (1, Item.ROCK),
            (5, 6): (1, Item.PAPER),
        })
        start_playing(match)
        result = loop.dispatch(bot_match_id, Action.move(0, (2, 2), (3, 3)))
        return match, result

    def test_bot_picks_on_tie(self, tied_bot_match):
        match, result = tied_bot_match
        assert match.phase == MatchPhase.TIE_BREAK
        assert result.bot_actions == ["tie_choice"]
        assert match.tie[1].chosen_item == Item.ROCK
        assert not match.tie[0].has_chosen

    def test_bot_picks_again_after_repeat(self, loop, tied_bot_match):
        match, _ = tied_bot_match

        result = loop.dispatch(match.match_id, Action.tie_choice(0, Item.ROCK))

        assert result.event_types == [EventType.TIE_ROUND_REPEATED, EventType.STATE_CHANGED]
        assert result.bot_actions == ["tie_choice"]
        assert match.phase == MatchPhase.TIE_BREAK
        assert match.tie[1].has_chosen
        assert not match.tie[0].has_chosen

    def test_bot_moves_after_losing_tie_break(self, loop, tied_bot_match):
        match, _ = tied_bot_match

        result = loop.dispatch(match.match_id, Action.tie_choice(0, Item.PAPER))

        assert match.phase == MatchPhase.PLAYING
        assert match.board.soldier_at(Position(3, 3)).owner == 0
        assert result.bot_actions == ["move"]
        assert match.turn == 0
        # The bot's remaining soldier stepped (5, 6) -> (4, 5)
        assert match.board.soldier_at(Position(4, 5)).owner == 1

    def test_bot_without_moves_stalemates(self, loop, registry, bot_match_id):
        match = registry.get(bot_match_id)
        place_soldiers(match, {(0, 6): (0, Item.ROCK), (5, 0): (1, Item.ROCK)})
        for pos in [(4, 0), (4, 1), (5, 1)]:
            match.board.place(Position(*pos), TIE_MARKER)
        start_playing(match)

        result = loop.dispatch(bot_match_id, Action.move(0, (0, 6), (0, 5)))

        assert result.bot_actions == []
        assert match.phase == MatchPhase.FINISHED
        assert match.winner.reason == WinReason.STALEMATE


class TestDisconnect:
    """Tests for disconnect handling."""

    def test_disconnect_forfeits(self, loop, registry, human_match_id, published):
        match = registry.get(human_match_id)
        published.records.clear()

        result = loop.handle_disconnect("conn-alice")

        assert result.success
        assert result.match_removed
        assert human_match_id not in registry
        assert match.winner.side == 1
        assert match.winner.reason == WinReason.FORFEIT
        assert published.records == [(EventType.STATE_CHANGED, [1], match.turn)]

    def test_disconnect_from_finished_match(self, loop, registry, human_match_id, published):
        match = registry.get(human_match_id)
        place_soldiers(match, {(2, 2): (0, Item.PAPER), (3, 3): (1, Item.ROCK)})
        start_playing(match)
        loop.dispatch(human_match_id, Action.move(0, (2, 2), (3, 3)))
        published.records.clear()

        result = loop.handle_disconnect("conn-bob")

        assert result.match_removed
        assert human_match_id not in registry
        assert published.records == [(EventType.RETURNED_TO_LOBBY, [0], match.turn)]
        assert match.winner.reason == WinReason.ELIMINATION

    def test_disconnect_from_bot_match(self, loop, registry, bot_match_id):
        match = registry.get(bot_match_id)
        loop.handle_disconnect("conn-alice")
        assert bot_match_id not in registry
        assert match.winner.reason == WinReason.ABANDONED

    def test_disconnect_without_match(self, loop):
        result = loop.handle_disconnect("conn-nobody")
        assert result.status == DispatchStatus.NOT_IN_MATCH
