"""
Board Model - Grid of soldiers.

The board is a fixed ROWS x COLS grid. Each cell holds at most one occupant:
- a Soldier (owned by side 0 or 1)
- the TieMarker while a combat is being re-picked
- nothing

Side 0 starts on the first START_ROWS rows, side 1 on the last START_ROWS
rows. Everything in between starts empty.

The board knows geometry and occupancy. Turn order, reshuffle allowances
and tie bookkeeping belong to the match (see reducer.py).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, NamedTuple
import random

from .combat import Item


ROWS = 6
COLS = 7
START_ROWS = 2

# Chebyshev neighbourhood, zero vector excluded
DIRECTIONS: list[tuple[int, int]] = [
    (dr, dc)
    for dr in (-1, 0, 1)
    for dc in (-1, 0, 1)
    if (dr, dc) != (0, 0)
]


class Position(NamedTuple):
    row: int
    col: int


@dataclass
class Soldier:
    """
    A unit on the board.

    soldier_id is stable for the soldier's whole life: moves, combats
    and reshuffles never change it.
    """
    soldier_id: str
    owner: int
    item: Item
    revealed: bool = False


@dataclass(frozen=True)
class TieMarker:
    """Occupant of a contested cell while a tie-break is in progress."""
    kind: str = "tie"


TIE_MARKER = TieMarker()

Occupant = Soldier | TieMarker


@dataclass
class Board:
    """
    The playing grid.

    Cells are addressed by Position(row, col). A soldier's position is
    always the coordinate of the cell holding it; soldiers do not
    store their own position.
    """
    rows: int = ROWS
    cols: int = COLS
    start_rows: int = START_ROWS
    cells: list[list[Occupant | None]] = field(default_factory=list)

    def __post_init__(self):
        if self.start_rows * 2 > self.rows:
            raise ValueError(
                f"{self.rows} rows cannot hold two starting blocks of {self.start_rows}"
            )
        if not self.cells:
            self.cells = self._empty_grid()

    def _empty_grid(self) -> list[list[Occupant | None]]:
        return [[None for _ in range(self.cols)] for _ in range(self.rows)]

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def starting_rows(self, side: int) -> range:
        """Rows a side owns at the start of a match."""
        if side == 0:
            return range(0, self.start_rows)
        return range(self.rows - self.start_rows, self.rows)

    def initialize(self, rng: random.Random):
        """Clear the grid and deal a fresh, unrevealed army to both sides."""
        self.cells = self._empty_grid()
        for side in (0, 1):
            index = 0
            for row in self.starting_rows(side):
                for col in range(self.cols):
                    self.cells[row][col] = Soldier(
                        soldier_id=f"p{side}_{index:02d}",
                        owner=side,
                        item=Item.random(rng),
                    )
                    index += 1

    def reshuffle(self, side: int, rng: random.Random) -> int:
        """
        Draw a new item for every soldier of `side` and hide it again.

        Positions and ids are untouched. Returns the number of soldiers
        reshuffled.
        """
        count = 0
        for _, soldier in self.soldiers(side):
            soldier.item = Item.random(rng)
            soldier.revealed = False
            count += 1
        return count

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def in_bounds(self, pos: Position) -> bool:
        return 0 <= pos.row < self.rows and 0 <= pos.col < self.cols

    def occupant_at(self, pos: Position) -> Occupant | None:
        if not self.in_bounds(pos):
            return None
        return self.cells[pos.row][pos.col]

    def soldier_at(self, pos: Position) -> Soldier | None:
        """The soldier on a cell, or None for empty / tie / off-board."""
        occupant = self.occupant_at(pos)
        if isinstance(occupant, Soldier):
            return occupant
        return None

    def soldiers(self, side: int | None = None) -> Iterator[tuple[Position, Soldier]]:
        """Iterate (position, soldier) pairs, optionally for one side only."""
        for row in range(self.rows):
            for col in range(self.cols):
                occupant = self.cells[row][col]
                if isinstance(occupant, Soldier):
                    if side is None or occupant.owner == side:
                        yield Position(row, col), occupant

    def find_soldier(self, soldier_id: str) -> Position | None:
        for pos, soldier in self.soldiers():
            if soldier.soldier_id == soldier_id:
                return pos
        return None

    def is_legal_destination(self, source: Position, target: Position, side: int) -> bool:
        """
        Check whether a soldier of `side` on `source` may step onto `target`.

        The target must be on the board, one king-step away, and either
        empty or held by an enemy soldier.
        """
        if not self.in_bounds(source) or not self.in_bounds(target):
            return False
        dr = abs(target.row - source.row)
        dc = abs(target.col - source.col)
        if max(dr, dc) != 1:
            return False
        occupant = self.cells[target.row][target.col]
        if occupant is None:
            return True
        return isinstance(occupant, Soldier) and occupant.owner != side

    def count_by_side(self) -> dict[int, int]:
        """Full-board scan of soldier counts per side."""
        counts = {0: 0, 1: 0}
        for _, soldier in self.soldiers():
            counts[soldier.owner] += 1
        return counts

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def vacate(self, pos: Position) -> Occupant | None:
        """Empty a cell, returning what was on it."""
        occupant = self.cells[pos.row][pos.col]
        self.cells[pos.row][pos.col] = None
        return occupant

    def place(self, pos: Position, occupant: Occupant):
        self.cells[pos.row][pos.col] = occupant
