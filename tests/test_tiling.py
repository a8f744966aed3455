"""
Tests for the tile decomposition geometry.
"""

import pytest

from flowpath.core.grid import Grid
from flowpath.core.tiling import Tiling, Zone


class TestZones:

    def test_zone_counts(self) -> None:
        tiling = Tiling(256, 256, 32)
        assert tiling.stride == 31
        assert (tiling.rows, tiling.cols) == (9, 9)
        assert tiling.zone_of((255, 255)) == Zone(8, 8)
        assert tiling.origin(Zone(8, 8)) == (248, 248)

    def test_last_cell_stays_in_last_zone(self) -> None:
        """A map edge on a seam does not open a zone of its own."""
        tiling = Tiling(5, 5, 3)
        assert (tiling.rows, tiling.cols) == (2, 2)
        assert tiling.zone_of((4, 4)) == Zone(1, 1)

    def test_single_zone_map(self) -> None:
        tiling = Tiling(1, 1, 8)
        assert (tiling.rows, tiling.cols) == (1, 1)
        assert list(tiling.zones()) == [Zone(0, 0)]

    def test_local_global_round_trip(self) -> None:
        tiling = Tiling(20, 20, 6)
        z = Zone(2, 1)
        assert tiling.to_local(z, (12, 7)) == (2, 2)
        assert tiling.to_global(z, (2, 2)) == (12, 7)

    def test_seam_cells_belong_to_both_tiles(self) -> None:
        tiling = Tiling(5, 5, 3)
        for z in tiling.zones():
            assert tiling.contains(z, (2, 2))
        assert tiling.zones_containing((2, 2))[0] == tiling.zone_of((2, 2))
        assert sorted(tiling.zones_containing((2, 2)), key=lambda z: (z.row, z.col)) == [
            Zone(0, 0), Zone(0, 1), Zone(1, 0), Zone(1, 1)]
        assert tiling.zones_containing((2, 3)) == [Zone(1, 1), Zone(0, 1)]
        assert tiling.zones_containing((1, 1)) == [Zone(0, 0)]

    def test_neighbors_clipped(self) -> None:
        tiling = Tiling(20, 20, 6)
        assert len(tiling.neighbors(Zone(0, 0))) == 3
        assert len(tiling.neighbors(Zone(1, 1))) == 8
        assert len(tiling.neighbors(Zone(0, 2))) == 5

    def test_tile_size_validated(self) -> None:
        with pytest.raises(ValueError):
            Tiling(10, 10, 1)


class TestSharedCells:

    def test_edge_neighbors_share_a_line(self) -> None:
        tiling = Tiling(5, 5, 3)
        assert tiling.shared_cells(Zone(0, 0), Zone(0, 1)) == [(0, 2), (1, 2), (2, 2)]
        assert tiling.shared_cells(Zone(0, 0), Zone(1, 0)) == [(2, 0), (2, 1), (2, 2)]

    def test_corner_neighbors_share_one_cell(self) -> None:
        tiling = Tiling(5, 5, 3)
        assert tiling.shared_cells(Zone(0, 0), Zone(1, 1)) == [(2, 2)]
        assert tiling.shared_cells(Zone(0, 1), Zone(1, 0)) == [(2, 2)]

    def test_shared_cells_clipped_to_map(self) -> None:
        tiling = Tiling(6, 6, 3)
        # zone row 2 starts at row 4 and hangs past the map by one row
        assert tiling.shared_cells(Zone(2, 0), Zone(2, 1)) == [(4, 2), (5, 2)]

    def test_cost_window_pads_with_walls(self) -> None:
        tiling = Tiling(6, 6, 3)
        cost = Grid.new(1, 6, 6)
        win = tiling.cost_window(Zone(2, 2), cost)
        assert win.rows() == [[1, 1, 255], [1, 1, 255], [255, 255, 255]]
