#!/usr/bin/env python3
"""
Integration and flow field of one tile.

States: CREATED -> INTEGRATING -> FLOWING -> READY.

- CREATED: step() resets integration to the sentinel, puts 0 on the
  objective and makes it the whole frontier.
- INTEGRATING: step() relaxes the entire frontier once (wavefront
  relaxation). When nothing improved, go to FLOWING, or straight to READY
  when `skip_flow` is set.
- FLOWING: step() writes the direction grid in one pass and goes READY.

A tile without an objective starts with an empty frontier; its values come
from `seed()`, which is how neighbouring tiles hand over their border.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from flowpath.core.grid import Grid, NEIGHBOR_OFFSETS
from flowpath.core.types import Cell, FieldState, NO_MOVE, WALL, direction_code

logger = logging.getLogger(__name__)

UNREACHED = 2 ** 31 - 1

# adjacent tile fields keyed by zone offset (dr, dc)
FlowContext = Dict[Tuple[int, int], "TileField"]


def _outside_value(context: FlowContext, r: int, k: int,
                   stride_r: int, stride_c: int) -> Optional[int]:
    """Integration of local cell (r, k), which lies outside the tile, read from a neighbour."""
    zr = -1 if r < 0 else (1 if r >= stride_r + 1 else 0)
    zc = -1 if k < 0 else (1 if k >= stride_c + 1 else 0)
    # the tile straight across first; seam cells may also sit in another neighbour
    order = [(zr, zc)] + [off for off in context if off != (zr, zc)]
    for off in order:
        other = context.get(off)
        if other is None:
            continue
        local = (r - off[0] * stride_r, k - off[1] * stride_c)
        if other.integration.in_bounds(local):
            return other.integration.get(local)
    return None


@dataclass
class TileField:
    cost: Grid[int]
    objective: Optional[Cell] = None
    sentinel: int = UNREACHED
    wall_cost: int = WALL
    skip_flow: bool = False

    state: FieldState = FieldState.CREATED
    integration: Optional[Grid[int]] = None
    flow: Optional[Grid[int]] = None
    frontier: List[Cell] = field(default_factory=list)
    passes: int = 0

    def __post_init__(self) -> None:
        w, h = self.cost.width, self.cost.height
        if self.integration is None:
            self.integration = Grid.new(self.sentinel, w, h)
        if self.flow is None:
            self.flow = Grid.new(NO_MOVE, w, h)
        if self.objective is not None and not self.cost.in_bounds(self.objective):
            raise ValueError(f"objective {self.objective} outside the {w}x{h} tile")

    # -------------------- lifecycle --------------------

    def set_objective(self, objective: Optional[Cell]) -> FieldState:
        """Retarget the field; integration and flow are recomputed, the cost grid is kept."""
        self.objective = objective
        self.state = FieldState.CREATED
        return self.step()

    def seed(self, c: Cell, value: int) -> bool:
        """Lower the integration at c to value and queue c for relaxation."""
        if value >= self.sentinel or value >= self.integration.get(c):
            return False
        self.integration.set(c, value)
        self.frontier.append(c)
        if self.state in (FieldState.FLOWING, FieldState.READY):
            self.state = FieldState.INTEGRATING
        return True

    def step(self, context: Optional[FlowContext] = None) -> FieldState:
        if self.state is FieldState.CREATED:
            self.integration.fill(self.sentinel)
            self.flow.fill(NO_MOVE)
            self.frontier = []
            self.passes = 0
            if self.objective is not None:
                self.integration.set(self.objective, 0)
                self.frontier.append(self.objective)
            self.state = FieldState.INTEGRATING

        elif self.state is FieldState.INTEGRATING:
            self._relax_frontier()
            if not self.frontier:
                self.state = FieldState.READY if self.skip_flow else FieldState.FLOWING

        elif self.state is FieldState.FLOWING:
            self.compute_flow(context)
            self.state = FieldState.READY

        return self.state

    def run(self, context: Optional[FlowContext] = None) -> FieldState:
        while self.state is not FieldState.READY:
            self.step(context)
        return self.state

    @property
    def ready(self) -> bool:
        return self.state is FieldState.READY

    # -------------------- integration --------------------

    def _relax_frontier(self) -> None:
        frontier, self.frontier = self.frontier, []
        queued = set()
        for visit in frontier:
            current = self.integration.get(visit)
            for n, dist in self.cost.neighbors_with_distance(visit):
                n_cost = self.cost.get(n)
                if n_cost >= self.wall_cost:
                    continue
                candidate = current + n_cost * dist
                if candidate < self.integration.get(n) and candidate < self.sentinel:
                    self.integration.set(n, candidate)
                    if n not in queued:
                        queued.add(n)
                        self.frontier.append(n)
        self.passes += 1

    # -------------------- flow --------------------

    def compute_flow(self, context: Optional[FlowContext] = None) -> None:
        """
        Point every cell at its neighbour with the strictly smallest integration.

        With a context, neighbours that fall outside this tile are read from
        the adjacent tile at that offset. Tiles share their border row and
        column, so one step outside this tile is one step inside the next one
        with a stride of (size - 1).
        """
        h, w = self.cost.height, self.cost.width
        stride_r, stride_c = h - 1, w - 1
        values = self.integration.cells
        for row in range(h):
            for col in range(w):
                lowest = values[row * w + col]
                best = NO_MOVE
                if lowest >= self.sentinel:
                    self.flow.cells[row * w + col] = best
                    continue
                for dr, dc in NEIGHBOR_OFFSETS:
                    r, k = row + dr, col + dc
                    if 0 <= r < h and 0 <= k < w:
                        v = values[r * w + k]
                    elif context:
                        v = _outside_value(context, r, k, stride_r, stride_c)
                        if v is None:
                            continue
                    else:
                        continue
                    if v < lowest:
                        lowest = v
                        best = direction_code(dr, dc)
                self.flow.cells[row * w + col] = best

    # -------------------- queries --------------------

    def direction_at(self, c: Cell) -> int:
        return self.flow.get(c)

    def integration_range(self) -> Optional[Tuple[int, int]]:
        """(min, max) over reached cells, None while nothing is reached."""
        reached = [v for v in self.integration.cells if v < self.sentinel]
        if not reached:
            return None
        return min(reached), max(reached)
