"""
Bot Policy - Interface for bot decision-making.

A BotPolicy is consulted in two situations:
- It is the bot side's turn while the match is PLAYING: pick a move
- The bot side owes a pick in a TIE_BREAK: pick an item

Fairness: a policy must not look at unrevealed enemy items. It gets the
legal moves and its own side; the state is passed for revealed
information only.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING
import random

from ..engine_core.combat import Item

if TYPE_CHECKING:
    from ..engine_core.state import MatchState
    from ..engine_core.action import Action


@dataclass
class BotDecision:
    """
    A move chosen by a bot.

    Contains:
    - The action to take
    - Explanation (for logs)
    """
    action: Action
    explanation: str = ""


@dataclass
class ChoiceDecision:
    """An item picked for a tie-break round."""
    item: Item
    explanation: str = ""


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.

    Implementations must be synchronous and must not do I/O; they run
    inside the command that handed the bot its turn.
    """

    @abstractmethod
    def select_action(
        self,
        state: MatchState,
        side: int,
        legal_actions: list[Action],
    ) -> BotDecision:
        """
        Select a move from the legal actions.

        Args:
            state: Current match state
            side: The side the bot plays
            legal_actions: Move actions available to that side

        Returns:
            BotDecision with the selected action
        """
        pass

    @abstractmethod
    def select_tie_choice(self, state: MatchState, side: int) -> ChoiceDecision:
        """Pick an item for the current tie-break round."""
        pass

    def get_name(self) -> str:
        """Get the bot's name/identifier."""
        return self.__class__.__name__


class RandomPolicy(BotPolicy):
    """
    Random policy - uniform over legal moves and over items.

    This is the bot the server plays with.
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_action(
        self,
        state: MatchState,
        side: int,
        legal_actions: list[Action],
    ) -> BotDecision:
        if not legal_actions:
            raise ValueError("No legal actions available")

        action = self.rng.choice(legal_actions)
        return BotDecision(
            action=action,
            explanation=f"Selected randomly from {len(legal_actions)} moves",
        )

    def select_tie_choice(self, state: MatchState, side: int) -> ChoiceDecision:
        return ChoiceDecision(item=self.rng.choice(list(Item)), explanation="Selected randomly")


class FirstLegalPolicy(BotPolicy):
    """
    First-legal policy - always the first legal move and a fixed item.

    Used for deterministic testing.
    """

    def __init__(self, tie_item: Item = Item.ROCK):
        self.tie_item = tie_item

    def select_action(
        self,
        state: MatchState,
        side: int,
        legal_actions: list[Action],
    ) -> BotDecision:
        if not legal_actions:
            raise ValueError("No legal actions available")

        return BotDecision(
            action=legal_actions[0],
            explanation="Selected first legal action",
        )

    def select_tie_choice(self, state: MatchState, side: int) -> ChoiceDecision:
        return ChoiceDecision(item=self.tie_item, explanation="Fixed item")
