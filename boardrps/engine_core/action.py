"""
Action System - Commands, events, and results.

Actions represent:
1. Player commands (reshuffle, ready, move, tie choice, replay)
2. Lifecycle signals (forfeit on disconnect, exit to lobby)

All state changes flow through actions. Applying one yields an
ActionResult carrying the events the transport should deliver.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .board import Position
from .combat import Item


class ActionType(Enum):
    """Types of commands a match accepts."""
    # Setup
    RESHUFFLE = "reshuffle"
    READY = "ready"

    # Play
    MOVE = "move"
    TIE_CHOICE = "tie_choice"

    # Finished
    REPLAY = "replay"

    # Lifecycle (any phase)
    FORFEIT = "forfeit"
    EXIT = "exit"


class EventType(Enum):
    """Outbound notifications produced by the engine."""
    MATCH_STARTED = "match_started"
    STATE_CHANGED = "state_changed"
    TIE_ROUND_REPEATED = "tie_round_repeated"
    RETURNED_TO_LOBBY = "returned_to_lobby"


class ErrorCode:
    """Rejection codes for commands that do not apply."""
    WRONG_PHASE = "WRONG_PHASE"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    NOT_YOUR_SOLDIER = "NOT_YOUR_SOLDIER"
    ILLEGAL_MOVE = "ILLEGAL_MOVE"
    NO_RESHUFFLES = "NO_RESHUFFLES"
    ALREADY_READY = "ALREADY_READY"
    INVALID_SIDE = "INVALID_SIDE"
    NO_HANDLER = "NO_HANDLER"


@dataclass
class ActionPayload:
    """
    Payload for an action.

    Different action types use different fields; the reducer
    validates that the ones it needs are present.
    """
    side: int | None = None
    source: Position | None = None
    target: Position | None = None
    item: Item | None = None


@dataclass
class Action:
    """
    A command to be applied to a match.

    Actions are validated before application and recorded in the
    match history once applied.
    """
    action_type: ActionType
    payload: ActionPayload = field(default_factory=ActionPayload)

    @classmethod
    def reshuffle(cls, side: int) -> Action:
        return cls(ActionType.RESHUFFLE, ActionPayload(side=side))

    @classmethod
    def ready(cls, side: int) -> Action:
        return cls(ActionType.READY, ActionPayload(side=side))

    @classmethod
    def move(cls, side: int, source: tuple[int, int], target: tuple[int, int]) -> Action:
        """Factory for a move; coordinates are (row, col)."""
        return cls(
            ActionType.MOVE,
            ActionPayload(side=side, source=Position(*source), target=Position(*target)),
        )

    @classmethod
    def tie_choice(cls, side: int, item: Item) -> Action:
        return cls(ActionType.TIE_CHOICE, ActionPayload(side=side, item=item))

    @classmethod
    def replay(cls, side: int | None = None) -> Action:
        return cls(ActionType.REPLAY, ActionPayload(side=side))

    @classmethod
    def forfeit(cls, side: int) -> Action:
        return cls(ActionType.FORFEIT, ActionPayload(side=side))

    @classmethod
    def exit(cls, side: int) -> Action:
        return cls(ActionType.EXIT, ActionPayload(side=side))


@dataclass
class MatchEvent:
    """
    A notification for match participants.

    recipients lists side indexes; None means every side.
    """
    event_type: EventType
    recipients: list[int] | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether the action applied
    - Rejection reason (if not)
    - Events to deliver
    - Human-readable changes (for logs and the terminal client)
    """
    success: bool
    error: str | None = None
    error_code: str | None = None

    events: list[MatchEvent] = field(default_factory=list)
    changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def applied(
        cls,
        events: list[MatchEvent] | None = None,
        changes: list[str] | None = None,
    ) -> ActionResult:
        """Create a success result."""
        return cls(success=True, events=events or [], changes=changes or [])

    @property
    def event_types(self) -> list[EventType]:
        return [e.event_type for e in self.events]
