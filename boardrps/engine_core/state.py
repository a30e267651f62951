"""
Match State - The aggregate root for one match.

Design principles:
- Mutable in place: the registry owns the aggregate, handlers mutate it
- Validated before mutation: the reducer never leaves it half-applied
- Serializable: api/schemas.py turns it into a snapshot for renderers
- Two sides, indexed 0 and 1, everywhere (no per-side duplicated fields)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING
from copy import deepcopy
from enum import Enum
import random

from .board import Board, Position
from .combat import Item

if TYPE_CHECKING:
    from ..bots.policy import BotPolicy


STARTING_RESHUFFLES = 3
BOT_USERNAME = "Bot"


class MatchPhase(Enum):
    """Lifecycle phases of a match."""
    SETUP = "setup"
    PLAYING = "playing"
    TIE_BREAK = "tie_break"
    FINISHED = "finished"


class WinReason(Enum):
    """Why a match finished."""
    ELIMINATION = "elimination"
    FORFEIT = "forfeit"
    ABANDONED = "abandoned"
    STALEMATE = "stalemate"


@dataclass
class Winner:
    """
    Result of a finished match.

    side is None for abandoned and stalemated matches.
    """
    side: int | None
    reason: WinReason

    @classmethod
    def abandoned(cls) -> Winner:
        return cls(side=None, reason=WinReason.ABANDONED)


@dataclass
class HumanParticipant:
    """A remote player, addressed through its transport connection."""
    connection_id: str
    username: str

    is_bot = False


@dataclass
class BotParticipant:
    """A side played by a local policy."""
    policy: BotPolicy
    username: str = BOT_USERNAME

    is_bot = True


Participant = HumanParticipant | BotParticipant


@dataclass
class SideState:
    """Per-side match bookkeeping."""
    participant: Participant
    reshuffles_remaining: int = STARTING_RESHUFFLES
    ready: bool = False

    @property
    def username(self) -> str:
        return self.participant.username

    @property
    def is_bot(self) -> bool:
        return self.participant.is_bot

    def reset(self):
        """Back to setup defaults. Bots never have to confirm readiness."""
        self.reshuffles_remaining = STARTING_RESHUFFLES
        self.ready = self.is_bot


@dataclass
class TieRecord:
    """One side's soldier in a contested cell, and the item it re-picked."""
    position: Position
    soldier_id: str
    chosen_item: Item | None = None

    @property
    def has_chosen(self) -> bool:
        return self.chosen_item is not None


@dataclass
class MatchState:
    """
    Complete state of one match.

    All state changes go through the reducer; the registry owns the
    instance for its whole life.
    """
    match_id: str
    sides: list[SideState]
    board: Board = field(default_factory=Board)

    phase: MatchPhase = MatchPhase.SETUP
    turn: int = 0

    # Two records indexed by side, present only during TIE_BREAK
    tie: list[TieRecord] | None = None
    winner: Winner | None = None

    is_bot_match: bool = False

    # Per-match randomness (board deals, reshuffles)
    rng: random.Random = field(default_factory=random.Random)

    # Applied actions, cleared on replay
    history: list[Any] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        match_id: str,
        participants: list[Participant],
        is_bot_match: bool = False,
        seed: int | None = None,
        board: Board | None = None,
    ) -> MatchState:
        """Factory: fresh match in SETUP with a newly dealt board."""
        state = cls(
            match_id=match_id,
            sides=[SideState(participant=p) for p in participants],
            board=board or Board(),
            is_bot_match=is_bot_match,
            rng=random.Random(seed),
        )
        state.reset()
        return state

    def reset(self):
        """Deal a new board and return every counter to its starting value."""
        self.board.initialize(self.rng)
        for side in self.sides:
            side.reset()
        self.phase = MatchPhase.SETUP
        self.turn = 0
        self.tie = None
        self.winner = None
        self.history.clear()

    @staticmethod
    def other(side: int) -> int:
        return 1 - side

    @property
    def is_finished(self) -> bool:
        return self.phase == MatchPhase.FINISHED

    def participant(self, side: int) -> Participant:
        return self.sides[side].participant

    def side_of(self, connection_id: str) -> int | None:
        """Side index bound to a human connection, if any."""
        for index, side in enumerate(self.sides):
            participant = side.participant
            if isinstance(participant, HumanParticipant) and participant.connection_id == connection_id:
                return index
        return None

    def bot_side(self) -> int | None:
        for index, side in enumerate(self.sides):
            if side.is_bot:
                return index
        return None

    def human_connections(self) -> list[str]:
        return [
            side.participant.connection_id
            for side in self.sides
            if isinstance(side.participant, HumanParticipant)
        ]

    def clone(self) -> MatchState:
        """Deep copy the state."""
        return deepcopy(self)
