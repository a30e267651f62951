"""
Combat - Rock-Paper-Scissors item comparison.

The resolver is a pure function of two items:
- Equal items tie
- rock beats scissors, scissors beats paper, paper beats rock
- Any other ordering means the second item wins

No state, no side effects.
"""

from __future__ import annotations
from enum import Enum
import random


class Item(Enum):
    """The hidden item a soldier carries."""
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"

    @classmethod
    def random(cls, rng: random.Random) -> Item:
        return rng.choice(list(cls))


class Outcome(Enum):
    """Result of comparing two items."""
    TIE = "tie"
    FIRST_WINS = "first_wins"
    SECOND_WINS = "second_wins"

    def mirrored(self) -> Outcome:
        """The outcome with the arguments swapped."""
        if self == Outcome.FIRST_WINS:
            return Outcome.SECOND_WINS
        if self == Outcome.SECOND_WINS:
            return Outcome.FIRST_WINS
        return Outcome.TIE


BEATS: dict[Item, Item] = {
    Item.ROCK: Item.SCISSORS,
    Item.SCISSORS: Item.PAPER,
    Item.PAPER: Item.ROCK,
}


def compare(first: Item, second: Item) -> Outcome:
    """Compare two items. Total and symmetric under swap."""
    if first == second:
        return Outcome.TIE
    if BEATS[first] == second:
        return Outcome.FIRST_WINS
    return Outcome.SECOND_WINS
