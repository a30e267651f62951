"""
Pytest fixtures for Board RPS tests.
"""

import pytest

from ..bots import FirstLegalPolicy
from ..engine_core.board import Board, Position, Soldier
from ..engine_core.combat import Item
from ..engine_core.state import (
    MatchState,
    MatchPhase,
    HumanParticipant,
    BotParticipant,
)
from ..session import MatchRegistry


def place_soldiers(match: MatchState, soldiers: dict[tuple[int, int], tuple[int, Item]]):
    """
    Replace the board with exactly the given soldiers.

    Keys are (row, col); values are (owner, item). Ids are assigned per
    side in the order given.
    """
    match.board.cells = Board(rows=match.board.rows, cols=match.board.cols).cells
    counters = {0: 0, 1: 0}
    for (row, col), (owner, item) in soldiers.items():
        match.board.place(
            Position(row, col),
            Soldier(soldier_id=f"p{owner}_{counters[owner]:02d}", owner=owner, item=item),
        )
        counters[owner] += 1


def start_playing(match: MatchState, turn: int = 0):
    """Skip setup: both sides ready, match PLAYING."""
    for side in match.sides:
        side.ready = True
    match.phase = MatchPhase.PLAYING
    match.turn = turn


@pytest.fixture
def registry() -> MatchRegistry:
    """Create a fresh match registry."""
    return MatchRegistry()


@pytest.fixture
def alice() -> HumanParticipant:
    return HumanParticipant(connection_id="conn-alice", username="Alice")


@pytest.fixture
def bob() -> HumanParticipant:
    return HumanParticipant(connection_id="conn-bob", username="Bob")


@pytest.fixture
def match(alice, bob) -> MatchState:
    """A seeded two-human match in SETUP."""
    return MatchState.create("test_match", [alice, bob], seed=42)


@pytest.fixture
def bot_match(alice) -> MatchState:
    """A seeded match against a deterministic bot, in SETUP."""
    return MatchState.create(
        "test_bot_match",
        [alice, BotParticipant(policy=FirstLegalPolicy())],
        is_bot_match=True,
        seed=7,
    )


@pytest.fixture
def duel(match) -> MatchState:
    """
    A small PLAYING position, side 0 to move.

    Side 0: rock at (2, 2), paper at (0, 0)
    Side 1: scissors at (3, 3), rock at (5, 6)
    """
    place_soldiers(match, {
        (2, 2): (0, Item.ROCK),
        (0, 0): (0, Item.PAPER),
        (3, 3): (1, Item.SCISSORS),
        (5, 6): (1, Item.ROCK),
    })
    start_playing(match)
    return match
