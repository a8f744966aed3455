"""
Tests for the dense grid container and its neighbour topology.
"""

import pytest

from flowpath.core.grid import Grid, octile_distance


class TestAccess:
    """Tests for get/set and bounds handling."""

    def test_set_then_get_every_cell(self) -> None:
        """Every in-bounds cell returns the value written to it."""
        grid = Grid.new(0, 7, 4)
        for i, c in enumerate(grid.positions()):
            grid.set(c, i + 1)
        for i, c in enumerate(grid.positions()):
            assert grid.get(c) == i + 1

    def test_length_matches_dimensions(self) -> None:
        grid = Grid.new("x", 5, 3)
        assert len(grid.cells) == 15
        assert grid.width == 5
        assert grid.height == 3

    def test_row_major_layout(self) -> None:
        """(row, col) maps to row * width + col."""
        grid = Grid.new(0, 4, 3)
        grid.set((2, 1), 9)
        assert grid.cells[2 * 4 + 1] == 9

    @pytest.mark.parametrize("cell", [(-1, 0), (0, -1), (3, 0), (0, 4), (10, 10)])
    def test_out_of_bounds_fails_fast(self, cell) -> None:
        """Out-of-bounds cells raise instead of wrapping around."""
        grid = Grid.new(0, 4, 3)
        with pytest.raises(IndexError):
            grid.get(cell)
        with pytest.raises(IndexError):
            grid.set(cell, 1)

    def test_mismatched_storage_rejected(self) -> None:
        with pytest.raises(ValueError):
            Grid(3, 3, [0] * 8)

    def test_from_rows(self) -> None:
        grid = Grid.from_rows([[1, 2, 3], [4, 5, 6]])
        assert (grid.width, grid.height) == (3, 2)
        assert grid.get((1, 0)) == 4
        assert grid.rows() == [[1, 2, 3], [4, 5, 6]]

    def test_copy_is_independent(self) -> None:
        grid = Grid.new(1, 3, 3)
        snapshot = grid.copy()
        grid.set((1, 1), 255)
        assert snapshot.get((1, 1)) == 1

    def test_window_pads_outside_cells(self) -> None:
        """Cells of the window that fall past the edge read the `outside` value."""
        grid = Grid.from_rows([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        win = grid.window((1, 1), 3, 3, 255)
        assert win.rows() == [[5, 6, 255], [8, 9, 255], [255, 255, 255]]


class TestTopology:
    """Tests for neighbour enumeration and the brush block."""

    def test_center_has_eight_neighbors(self) -> None:
        grid = Grid.new(0, 3, 3)
        neighbors = dict(grid.neighbors_with_distance((1, 1)))
        assert len(neighbors) == 8
        assert neighbors[(0, 1)] == 10
        assert neighbors[(1, 0)] == 10
        assert neighbors[(0, 0)] == 14
        assert neighbors[(2, 2)] == 14

    def test_corner_is_clipped(self) -> None:
        """No wraparound: a corner has exactly 3 neighbours."""
        grid = Grid.new(0, 5, 5)
        neighbors = dict(grid.neighbors_with_distance((0, 0)))
        assert neighbors == {(0, 1): 10, (1, 0): 10, (1, 1): 14}

    def test_edge_has_five_neighbors(self) -> None:
        grid = Grid.new(0, 5, 5)
        assert len(grid.neighbors_with_distance((0, 2))) == 5
        assert len(grid.neighbors_with_distance((4, 2))) == 5

    def test_single_cell_grid(self) -> None:
        grid = Grid.new(0, 1, 1)
        assert grid.neighbors_with_distance((0, 0)) == []
        assert grid.grow((0, 0)) == [(0, 0)]

    def test_grow_is_clamped_block(self) -> None:
        grid = Grid.new(0, 4, 4)
        assert len(grid.grow((2, 2))) == 9
        assert sorted(grid.grow((0, 0))) == [(0, 0), (0, 1), (1, 0), (1, 1)]
        assert len(grid.grow((3, 1))) == 6


class TestOctileDistance:

    def test_diagonal(self) -> None:
        assert octile_distance((0, 0), (4, 4)) == 56

    def test_mixed(self) -> None:
        assert octile_distance((0, 0), (2, 5)) == 3 * 10 + 2 * 14
        assert octile_distance((2, 5), (0, 0)) == 58

    def test_same_cell(self) -> None:
        assert octile_distance((3, 3), (3, 3)) == 0
