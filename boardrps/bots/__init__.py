"""
Bots module - Computer opponents.

Provides:
- BotPolicy: Interface for bot decision-making
- RandomPolicy: The server's opponent, uniform over legal moves
- FirstLegalPolicy: Deterministic policy for tests
"""

from .policy import BotPolicy, BotDecision, ChoiceDecision, RandomPolicy, FirstLegalPolicy

__all__ = [
    "BotPolicy",
    "BotDecision",
    "ChoiceDecision",
    "RandomPolicy",
    "FirstLegalPolicy",
]
