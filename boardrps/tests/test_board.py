"""
Tests for the board model.

Tests:
- Initial deal
- Reshuffle keeps ids and positions
- Movement legality
- Occupancy queries and counts
"""

import random

import pytest

from ..engine_core.board import (
    Board,
    Position,
    Soldier,
    TIE_MARKER,
    ROWS,
    COLS,
    START_ROWS,
    DIRECTIONS,
)
from ..engine_core.combat import Item


@pytest.fixture
def board() -> Board:
    board = Board()
    board.initialize(random.Random(1))
    return board


@pytest.fixture
def empty_board() -> Board:
    return Board()


class TestInitialize:
    """Tests for the initial deal."""

    def test_default_size(self, board):
        assert (board.rows, board.cols) == (ROWS, COLS) == (6, 7)
        assert len(board.cells) == ROWS
        assert all(len(row) == COLS for row in board.cells)

    def test_fourteen_soldiers_per_side(self, board):
        assert board.count_by_side() == {0: 14, 1: 14}

    def test_sides_own_opposite_edges(self, board):
        for pos, soldier in board.soldiers():
            if soldier.owner == 0:
                assert pos.row < START_ROWS
            else:
                assert pos.row >= ROWS - START_ROWS

    def test_middle_rows_empty(self, board):
        for row in range(START_ROWS, ROWS - START_ROWS):
            assert all(cell is None for cell in board.cells[row])

    def test_all_unrevealed(self, board):
        assert not any(s.revealed for _, s in board.soldiers())

    def test_ids_unique(self, board):
        ids = [s.soldier_id for _, s in board.soldiers()]
        assert len(ids) == len(set(ids)) == 28

    def test_initialize_clears_previous_board(self, board):
        board.place(Position(3, 3), Soldier("extra", 0, Item.ROCK))
        board.initialize(random.Random(2))
        assert board.occupant_at(Position(3, 3)) is None
        assert board.count_by_side() == {0: 14, 1: 14}

    def test_start_rows_must_fit(self):
        with pytest.raises(ValueError):
            Board(rows=3, start_rows=2)


class TestReshuffle:
    """Tests for Board.reshuffle()."""

    def test_keeps_ids_and_positions(self, board):
        before = {pos: s.soldier_id for pos, s in board.soldiers(0)}
        count = board.reshuffle(0, random.Random(99))
        after = {pos: s.soldier_id for pos, s in board.soldiers(0)}
        assert count == 14
        assert before == after

    def test_hides_items_again(self, board):
        for _, soldier in board.soldiers(0):
            soldier.revealed = True
        board.reshuffle(0, random.Random(5))
        assert not any(s.revealed for _, s in board.soldiers(0))

    def test_other_side_untouched(self, board):
        before = [(pos, s.item) for pos, s in board.soldiers(1)]
        board.reshuffle(0, random.Random(5))
        assert [(pos, s.item) for pos, s in board.soldiers(1)] == before


class TestLegalDestination:
    """Tests for Board.is_legal_destination()."""

    def test_all_eight_directions(self, empty_board):
        source = Position(2, 3)
        empty_board.place(source, Soldier("a", 0, Item.ROCK))
        assert len(DIRECTIONS) == 8
        for dr, dc in DIRECTIONS:
            assert empty_board.is_legal_destination(source, Position(2 + dr, 3 + dc), 0)

    def test_same_cell_illegal(self, empty_board):
        assert not empty_board.is_legal_destination(Position(2, 3), Position(2, 3), 0)

    @pytest.mark.parametrize("target", [(4, 3), (2, 5), (0, 1), (4, 5)])
    def test_two_steps_illegal(self, empty_board, target):
        assert not empty_board.is_legal_destination(Position(2, 3), Position(*target), 0)

    @pytest.mark.parametrize("target", [(-1, 0), (0, -1), (6, 0), (5, 7)])
    def test_out_of_bounds_illegal(self, empty_board, target):
        source = Position(min(max(target[0], 0), 5), min(max(target[1], 0), 6))
        assert not empty_board.is_legal_destination(source, Position(*target), 0)

    def test_own_soldier_blocks(self, empty_board):
        empty_board.place(Position(2, 3), Soldier("a", 0, Item.ROCK))
        empty_board.place(Position(3, 3), Soldier("b", 0, Item.PAPER))
        assert not empty_board.is_legal_destination(Position(2, 3), Position(3, 3), 0)

    def test_enemy_soldier_is_target(self, empty_board):
        empty_board.place(Position(2, 3), Soldier("a", 0, Item.ROCK))
        empty_board.place(Position(3, 4), Soldier("b", 1, Item.PAPER))
        assert empty_board.is_legal_destination(Position(2, 3), Position(3, 4), 0)

    def test_tie_cell_is_not_a_target(self, empty_board):
        empty_board.place(Position(3, 3), TIE_MARKER)
        assert not empty_board.is_legal_destination(Position(2, 3), Position(3, 3), 0)
        assert not empty_board.is_legal_destination(Position(2, 3), Position(3, 3), 1)


class TestQueries:
    """Tests for occupancy queries and mutations."""

    def test_soldier_at(self, board):
        soldier = board.soldier_at(Position(0, 0))
        assert soldier is not None
        assert soldier.owner == 0
        assert board.soldier_at(Position(3, 3)) is None
        assert board.soldier_at(Position(10, 10)) is None

    def test_soldier_at_ignores_tie_marker(self, empty_board):
        empty_board.place(Position(1, 1), TIE_MARKER)
        assert empty_board.soldier_at(Position(1, 1)) is None
        assert empty_board.occupant_at(Position(1, 1)) is TIE_MARKER

    def test_find_soldier(self, board):
        soldier = board.soldier_at(Position(5, 6))
        assert board.find_soldier(soldier.soldier_id) == Position(5, 6)
        assert board.find_soldier("missing") is None

    def test_vacate_and_place(self, board):
        soldier = board.vacate(Position(0, 0))
        assert board.occupant_at(Position(0, 0)) is None
        board.place(Position(2, 0), soldier)
        assert board.soldier_at(Position(2, 0)) is soldier
        assert board.count_by_side() == {0: 14, 1: 14}

    def test_count_matches_cells(self, board):
        board.vacate(Position(5, 0))
        board.vacate(Position(5, 1))
        counts = board.count_by_side()
        for side in (0, 1):
            owned = sum(
                1
                for row in board.cells
                for cell in row
                if isinstance(cell, Soldier) and cell.owner == side
            )
            assert counts[side] == owned
        assert counts == {0: 14, 1: 12}
