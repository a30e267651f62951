"""
Session Module - Owns live matches and drives them.

A match lives in the registry:
- Created when a challenge is accepted or a bot match is requested
- Mutated in place by each command
- Dropped on exit or disconnect

Matches are EPHEMERAL:
- No persistence to database
- A process restart ends every match
"""

from .manager import MatchRegistry
from .game_loop import GameLoop, TurnResult, DispatchStatus, MAX_BOT_ACTIONS

__all__ = [
    "MatchRegistry",
    "GameLoop",
    "TurnResult",
    "DispatchStatus",
    "MAX_BOT_ACTIONS",
]
