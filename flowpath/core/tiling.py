#!/usr/bin/env python3
"""
Decomposition of a map into square tiles.

A tile is `tile_size` cells on a side and shares its last row and column
with the next tile, so tile origins advance by `stride = tile_size - 1`.
A cell on a seam therefore belongs to two (or, at a corner, four) tiles;
`zone_of` picks the one with the lowest index that is not past the map.
"""

from dataclasses import dataclass
from typing import Iterator, List

from flowpath.core.grid import Grid, NEIGHBOR_OFFSETS
from flowpath.core.types import Cell, WALL


@dataclass(frozen=True)
class Zone:
    row: int
    col: int

    def offset_to(self, other: "Zone") -> Cell:
        return other.row - self.row, other.col - self.col


class Tiling:
    def __init__(self, height: int, width: int, tile_size: int):
        if tile_size < 2:
            raise ValueError(f"tile_size must be at least 2, got {tile_size}")
        if height < 1 or width < 1:
            raise ValueError(f"empty map {width}x{height}")
        self.height = height
        self.width = width
        self.tile_size = tile_size
        self.stride = tile_size - 1
        self.rows = max(1, -(-(height - 1) // self.stride))
        self.cols = max(1, -(-(width - 1) // self.stride))

    def __repr__(self) -> str:
        return f"Tiling({self.height}x{self.width}, tile={self.tile_size}, zones={self.rows}x{self.cols})"

    # -------------------- geometry --------------------

    def zone_of(self, c: Cell) -> Zone:
        row, col = c
        return Zone(min(row // self.stride, self.rows - 1),
                    min(col // self.stride, self.cols - 1))

    def zones_containing(self, c: Cell) -> List[Zone]:
        """Every zone whose tile covers c, zone_of(c) first. Seam cells have 2 or 4."""
        home = self.zone_of(c)
        rows = [home.row]
        cols = [home.col]
        if home.row > 0 and c[0] == home.row * self.stride:
            rows.append(home.row - 1)
        if home.col > 0 and c[1] == home.col * self.stride:
            cols.append(home.col - 1)
        return [Zone(r, k) for r in rows for k in cols]

    def origin(self, z: Zone) -> Cell:
        return z.row * self.stride, z.col * self.stride

    def contains(self, z: Zone, c: Cell) -> bool:
        r0, c0 = self.origin(z)
        return r0 <= c[0] < r0 + self.tile_size and c0 <= c[1] < c0 + self.tile_size

    def to_local(self, z: Zone, c: Cell) -> Cell:
        r0, c0 = self.origin(z)
        return c[0] - r0, c[1] - c0

    def to_global(self, z: Zone, local: Cell) -> Cell:
        r0, c0 = self.origin(z)
        return local[0] + r0, local[1] + c0

    def in_range(self, z: Zone) -> bool:
        return 0 <= z.row < self.rows and 0 <= z.col < self.cols

    def zones(self) -> Iterator[Zone]:
        for r in range(self.rows):
            for c in range(self.cols):
                yield Zone(r, c)

    def neighbors(self, z: Zone) -> List[Zone]:
        """The up to 8 zones sharing an edge or a corner with z."""
        out: List[Zone] = []
        for dr, dc in NEIGHBOR_OFFSETS:
            n = Zone(z.row + dr, z.col + dc)
            if self.in_range(n):
                out.append(n)
        return out

    def shared_cells(self, a: Zone, b: Zone) -> List[Cell]:
        """Global cells inside the map that both tiles cover (an edge line or a corner)."""
        ar, ac = self.origin(a)
        br, bc = self.origin(b)
        r_lo = max(ar, br)
        r_hi = min(ar, br) + self.tile_size
        c_lo = max(ac, bc)
        c_hi = min(ac, bc) + self.tile_size
        return [(r, c)
                for r in range(r_lo, min(r_hi, self.height))
                for c in range(c_lo, min(c_hi, self.width))]

    def cost_window(self, z: Zone, cost: Grid[int], outside: int = WALL) -> Grid[int]:
        """Snapshot of the tile's cells in local coordinates; cells past the map are walls."""
        return cost.window(self.origin(z), self.tile_size, self.tile_size, outside)
