"""
Tests for the per-tile integration and flow field.
"""

import heapq

import pytest

from flowpath.core.grid import Grid
from flowpath.core.tile_field import TileField, UNREACHED
from flowpath.core.types import FieldState, NO_MOVE, direction_offset


def reference_integration(cost: Grid, objective) -> Grid:
    """Plain Dijkstra with the same cost model: entering a cell costs cost * edge."""
    dist = Grid.new(UNREACHED, cost.width, cost.height)
    dist.set(objective, 0)
    heap = [(0, objective)]
    while heap:
        d, c = heapq.heappop(heap)
        if d > dist.get(c):
            continue
        for n, edge in cost.neighbors_with_distance(c):
            if cost.get(n) == 255:
                continue
            nd = d + cost.get(n) * edge
            if nd < dist.get(n):
                dist.set(n, nd)
                heapq.heappush(heap, (nd, n))
    return dist


def bumpy_cost(size: int) -> Grid:
    cost = Grid.new(1, size, size)
    for c in cost.positions():
        cost.set(c, (c[0] * 7 + c[1] * 3) % 9 + 1)
    for row in range(1, size - 2):
        cost.set((row, size // 2), 255)
    return cost


class TestExample:
    """The 3x3 worked example."""

    def test_integration_values(self) -> None:
        tile = TileField(Grid.new(1, 3, 3), objective=(1, 1))
        tile.run()
        assert tile.integration.rows() == [[14, 10, 14], [10, 0, 10], [14, 10, 14]]

    def test_border_cells_point_to_center(self) -> None:
        tile = TileField(Grid.new(1, 3, 3), objective=(1, 1))
        tile.run()
        assert tile.flow.rows() == [[8, 7, 6], [5, NO_MOVE, 3], [2, 1, 0]]
        for c in tile.flow.positions():
            if c == (1, 1):
                continue
            dr, dc = direction_offset(tile.direction_at(c))
            assert (c[0] + dr, c[1] + dc) == (1, 1)

    def test_state_sequence(self) -> None:
        tile = TileField(Grid.new(1, 3, 3), objective=(1, 1))
        assert tile.state is FieldState.CREATED
        states = [tile.step() for _ in range(4)]
        assert states == [FieldState.INTEGRATING, FieldState.INTEGRATING,
                          FieldState.FLOWING, FieldState.READY]
        assert tile.step() is FieldState.READY
        assert tile.integration_range() == (0, 14)

    def test_skip_flow_stops_after_integration(self) -> None:
        tile = TileField(Grid.new(1, 3, 3), objective=(1, 1), skip_flow=True)
        states = [tile.step() for _ in range(3)]
        assert states[-1] is FieldState.READY
        assert set(tile.flow.cells) == {NO_MOVE}


class TestIntegration:
    """Wavefront relaxation on non-uniform cost grids."""

    def test_matches_dijkstra(self) -> None:
        cost = bumpy_cost(12)
        tile = TileField(cost, objective=(0, 0))
        tile.run()
        assert tile.integration.cells == reference_integration(cost, (0, 0)).cells

    def test_objective_is_zero(self) -> None:
        cost = bumpy_cost(9)
        tile = TileField(cost, objective=(4, 7))
        tile.run()
        assert tile.integration.get((4, 7)) == 0
        assert min(tile.integration.cells) == 0
        assert tile.integration.cells.count(0) == 1

    def test_values_consistent_with_a_neighbour(self) -> None:
        """Every reached cell equals its best neighbour plus the cost of entering it."""
        cost = bumpy_cost(10)
        tile = TileField(cost, objective=(9, 0))
        tile.run()
        for c in cost.positions():
            v = tile.integration.get(c)
            if c == (9, 0) or v == UNREACHED:
                continue
            best = min(tile.integration.get(n) + cost.get(c) * edge
                       for n, edge in cost.neighbors_with_distance(c)
                       if tile.integration.get(n) < UNREACHED)
            assert v == best
            assert v > 0

    def test_walls_never_reached(self) -> None:
        cost = bumpy_cost(10)
        tile = TileField(cost, objective=(0, 0))
        tile.run()
        for c in cost.positions():
            if cost.get(c) == 255:
                assert tile.integration.get(c) == UNREACHED
                assert tile.direction_at(c) == NO_MOVE

    def test_enclosed_cells_keep_sentinel(self) -> None:
        cost = Grid.new(1, 5, 5)
        for row in range(5):
            cost.set((row, 2), 255)
        tile = TileField(cost, objective=(2, 0))
        tile.run()
        for row in range(5):
            for col in (3, 4):
                assert tile.integration.get((row, col)) == UNREACHED
                assert tile.direction_at((row, col)) == NO_MOVE

    def test_sentinel_caps_values(self) -> None:
        """Candidates at or above the sentinel are dropped rather than stored."""
        tile = TileField(Grid.new(1, 5, 1), objective=(0, 0), sentinel=25)
        tile.run()
        assert tile.integration.cells == [0, 10, 20, 25, 25]


class TestFlow:
    """Direction field derived from the integration field."""

    def test_directions_point_downhill(self) -> None:
        cost = bumpy_cost(12)
        tile = TileField(cost, objective=(5, 3))
        tile.run()
        for c in cost.positions():
            v = tile.integration.get(c)
            if c == (5, 3) or v == UNREACHED:
                continue
            code = tile.direction_at(c)
            assert code != NO_MOVE
            dr, dc = direction_offset(code)
            assert tile.integration.get((c[0] + dr, c[1] + dc)) < v

    def test_context_reaches_across_the_border(self) -> None:
        """With the right-hand tile as context, the last column looks into it."""
        left = TileField(Grid.new(1, 3, 3))
        right = TileField(Grid.new(1, 3, 3), objective=(1, 1))
        right.run()
        left.step()
        # the shared column of left is column 0 of right
        for row in range(3):
            left.seed((row, 2), right.integration.get((row, 0)))
        left.run()
        left.compute_flow({(0, 1): right})
        # (1, 2) is shared with right's (1, 0), whose best move is into right's centre
        assert left.direction_at((1, 2)) == 5
        assert left.direction_at((1, 1)) == 5


class TestObjective:
    """Retargeting and seeding."""

    def test_set_objective_resets_and_steps(self) -> None:
        tile = TileField(Grid.new(1, 3, 3), objective=(1, 1))
        tile.run()
        state = tile.set_objective((0, 0))
        assert state is FieldState.INTEGRATING
        assert tile.integration.get((0, 0)) == 0
        assert tile.integration.get((1, 1)) == UNREACHED
        assert tile.frontier == [(0, 0)]
        tile.run()
        assert tile.integration.get((2, 2)) == 28

    def test_set_objective_keeps_cost(self) -> None:
        cost = Grid.new(1, 3, 3)
        cost.set((0, 1), 5)
        tile = TileField(cost, objective=(1, 1))
        tile.run()
        tile.set_objective((2, 2))
        tile.run()
        assert tile.cost.get((0, 1)) == 5

    def test_seed_reopens_ready_tile(self) -> None:
        tile = TileField(Grid.new(1, 4, 1))
        tile.run()
        assert tile.integration.cells == [UNREACHED] * 4
        assert tile.seed((0, 0), 7)
        assert tile.state is FieldState.INTEGRATING
        tile.run()
        assert tile.integration.cells == [7, 17, 27, 37]

    def test_seed_ignores_worse_value(self) -> None:
        tile = TileField(Grid.new(1, 3, 3), objective=(1, 1))
        tile.run()
        assert not tile.seed((0, 0), 50)
        assert tile.state is FieldState.READY

    def test_objective_outside_tile_rejected(self) -> None:
        with pytest.raises(ValueError):
            TileField(Grid.new(1, 3, 3), objective=(3, 0))
