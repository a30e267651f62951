"""
Engine Core - Authoritative match state management.

The engine is the runtime that:
1. Deals a Board
2. Manages MatchState through its phases
3. Generates legal moves
4. Applies commands via the reducer
5. Resolves combats and tie-breaks
"""

from .combat import Item, Outcome, compare
from .board import Board, Soldier, TieMarker, TIE_MARKER, Position, ROWS, COLS, START_ROWS
from .state import (
    MatchState,
    MatchPhase,
    SideState,
    TieRecord,
    Winner,
    WinReason,
    HumanParticipant,
    BotParticipant,
    STARTING_RESHUFFLES,
)
from .action import Action, ActionType, ActionPayload, ActionResult, EventType, MatchEvent, ErrorCode
from .reducer import Reducer, apply_action
from .action_generator import legal_moves, legal_actions, has_legal_move

__all__ = [
    "Item",
    "Outcome",
    "compare",
    "Board",
    "Soldier",
    "TieMarker",
    "TIE_MARKER",
    "Position",
    "ROWS",
    "COLS",
    "START_ROWS",
    "MatchState",
    "MatchPhase",
    "SideState",
    "TieRecord",
    "Winner",
    "WinReason",
    "HumanParticipant",
    "BotParticipant",
    "STARTING_RESHUFFLES",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "EventType",
    "MatchEvent",
    "ErrorCode",
    "Reducer",
    "apply_action",
    "legal_moves",
    "legal_actions",
    "has_legal_move",
]
