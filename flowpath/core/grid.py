#!/usr/bin/env python3
"""
Dense 2D storage addressed by (row, col) cells.

Cells are stored row-major in one flat list. Every coordinate handed to a
Grid is expected to be in bounds already; an out-of-bounds access raises
IndexError instead of wrapping around like a negative list index would.

Neighbour enumeration uses the fixed-point octile metric: 10 for an
orthogonal step, 14 for a diagonal one.
"""

from dataclasses import dataclass
from typing import Generic, Iterator, List, Tuple, TypeVar

from flowpath.core.types import Cell, ORTHOGONAL, DIAGONAL

T = TypeVar("T")

# row-major order; search and flow tie-breaking depend on it
NEIGHBOR_OFFSETS: Tuple[Cell, ...] = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1),           (0, 1),
    (1, -1),  (1, 0),  (1, 1),
)


def octile_distance(a: Cell, b: Cell) -> int:
    dr = abs(a[0] - b[0])
    dc = abs(a[1] - b[1])
    if dr > dc:
        return ORTHOGONAL * (dr - dc) + DIAGONAL * dc
    return ORTHOGONAL * (dc - dr) + DIAGONAL * dr


@dataclass
class Grid(Generic[T]):
    width: int
    height: int
    cells: List[T]             # [row * width + col]

    def __post_init__(self) -> None:
        if len(self.cells) != self.width * self.height:
            raise ValueError(
                f"grid of {self.width}x{self.height} needs {self.width * self.height} cells, "
                f"got {len(self.cells)}"
            )

    @classmethod
    def new(cls, initial: T, width: int, height: int) -> "Grid[T]":
        return cls(width, height, [initial] * (width * height))

    @classmethod
    def from_rows(cls, rows: List[List[T]]) -> "Grid[T]":
        height = len(rows)
        width = len(rows[0]) if rows else 0
        flat: List[T] = []
        for r in rows:
            if len(r) != width:
                raise ValueError("rows have different lengths")
            flat.extend(r)
        return cls(width, height, flat)

    # -------------------- access --------------------

    def in_bounds(self, c: Cell) -> bool:
        row, col = c
        return 0 <= row < self.height and 0 <= col < self.width

    def _index(self, c: Cell) -> int:
        row, col = c
        if not (0 <= row < self.height and 0 <= col < self.width):
            raise IndexError(f"cell {c} outside {self.width}x{self.height} grid")
        return row * self.width + col

    def get(self, c: Cell) -> T:
        return self.cells[self._index(c)]

    def set(self, c: Cell, v: T) -> None:
        self.cells[self._index(c)] = v

    def fill(self, v: T) -> None:
        self.cells[:] = [v] * len(self.cells)

    def copy(self) -> "Grid[T]":
        return Grid(self.width, self.height, list(self.cells))

    def positions(self) -> Iterator[Cell]:
        for row in range(self.height):
            for col in range(self.width):
                yield (row, col)

    def rows(self) -> List[List[T]]:
        w = self.width
        return [self.cells[r * w:(r + 1) * w] for r in range(self.height)]

    def window(self, origin: Cell, height: int, width: int, outside: T) -> "Grid[T]":
        """Copy a height x width block starting at origin; cells past the edge read `outside`."""
        out = Grid.new(outside, width, height)
        r0, c0 = origin
        for r in range(max(0, r0), min(self.height, r0 + height)):
            src = r * self.width
            dst = (r - r0) * width
            for c in range(max(0, c0), min(self.width, c0 + width)):
                out.cells[dst + c - c0] = self.cells[src + c]
        return out

    # -------------------- topology --------------------

    def neighbors_with_distance(self, c: Cell) -> List[Tuple[Cell, int]]:
        """Up to 8 (neighbour, edge cost) pairs, clipped at the grid edges."""
        row, col = c
        out: List[Tuple[Cell, int]] = []
        for dr, dc in NEIGHBOR_OFFSETS:
            r, k = row + dr, col + dc
            if 0 <= r < self.height and 0 <= k < self.width:
                out.append(((r, k), DIAGONAL if dr and dc else ORTHOGONAL))
        return out

    def grow(self, c: Cell) -> List[Cell]:
        """The 3x3 block around c (c included), clamped to the grid."""
        row, col = c
        out: List[Cell] = []
        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                r, k = row + dr, col + dc
                if 0 <= r < self.height and 0 <= k < self.width:
                    out.append((r, k))
        return out
