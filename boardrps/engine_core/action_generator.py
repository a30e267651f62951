"""
Action Generator - Enumerates legal moves.

Used by:
1. Bots to pick a move
2. The reducer to detect a side that cannot move (stalemate)
3. Clients that want to highlight reachable cells

Every owned soldier is tried in all eight directions and filtered
through Board.is_legal_destination.
"""

from __future__ import annotations

from .action import Action
from .board import Board, Position, DIRECTIONS
from .state import MatchState, MatchPhase


def legal_moves(board: Board, side: int) -> list[tuple[Position, Position]]:
    """All (source, target) pairs a side could play on this board."""
    moves = []
    for source, _ in board.soldiers(side):
        for dr, dc in DIRECTIONS:
            target = Position(source.row + dr, source.col + dc)
            if board.is_legal_destination(source, target, side):
                moves.append((source, target))
    return moves


def has_legal_move(board: Board, side: int) -> bool:
    for source, _ in board.soldiers(side):
        for dr, dc in DIRECTIONS:
            if board.is_legal_destination(source, Position(source.row + dr, source.col + dc), side):
                return True
    return False


def legal_actions(state: MatchState, side: int) -> list[Action]:
    """
    Move actions available to `side` right now.

    Empty unless the match is PLAYING and it is that side's turn.
    """
    if state.phase != MatchPhase.PLAYING or state.turn != side:
        return []
    return [Action.move(side, source, target) for source, target in legal_moves(state.board, side)]
