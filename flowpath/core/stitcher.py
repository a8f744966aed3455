#!/usr/bin/env python3
"""
Hierarchical stitching of per-tile fields into one field over a large map.

States: SEARCHING -> ROUTE_TO_TILES -> COMPUTING_TILE_FIELDS -> COMPOSED,
or SEARCHING -> UNREACHABLE when the coarse search finds no path.

- SEARCHING: one A* expansion per step().
- ROUTE_TO_TILES: turn the cell path into the tiles it crosses. A diagonal
  tile-to-tile move gets an L-corner tile in between, then every tile
  touching the route is added as a halo. The order starts at the target's
  tile; it is queued forward and then in reverse.
- COMPUTING_TILE_FIELDS: one tile-field step per step(). A tile taken off the
  queue is created if needed, then receives the junction: every neighbour
  that already has values hands over the integration on their shared cells
  as frontier seeds. When a tile finishes, any neighbour that holds a larger
  value on a shared cell goes back on the queue, so seams end up equal on
  both sides.
- When the queue is empty the tiles recompute their flow one per step(),
  with their neighbours as context. After the last one the ComposedField
  is published.
"""

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, List, Optional, Tuple

from flowpath.core.astar import AStarSearch
from flowpath.core.grid import Grid
from flowpath.core.tile_field import TileField, UNREACHED
from flowpath.core.tiling import Tiling, Zone
from flowpath.core.types import Cell, FieldState, NO_MOVE, SearchState, StitchState, WALL

logger = logging.getLogger(__name__)


class ComposedField:
    """Sparse table of tile fields, one slot per zone; empty slots were never computed."""

    def __init__(self, tiling: Tiling, sentinel: int = UNREACHED):
        self.tiling = tiling
        self.sentinel = sentinel
        self.tiles: List[List[Optional[TileField]]] = [
            [None] * tiling.cols for _ in range(tiling.rows)
        ]

    def tile(self, z: Zone) -> Optional[TileField]:
        return self.tiles[z.row][z.col]

    def put(self, z: Zone, tile: TileField) -> None:
        self.tiles[z.row][z.col] = tile

    def __iter__(self) -> Iterator[Tuple[Zone, TileField]]:
        for r, row in enumerate(self.tiles):
            for c, tile in enumerate(row):
                if tile is not None:
                    yield Zone(r, c), tile

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def zone_of(self, c: Cell) -> Zone:
        return self.tiling.zone_of(c)

    def neighbor_context(self, z: Zone) -> Dict[Tuple[int, int], TileField]:
        ctx: Dict[Tuple[int, int], TileField] = {}
        for n in self.tiling.neighbors(z):
            tile = self.tile(n)
            if tile is not None:
                ctx[z.offset_to(n)] = tile
        return ctx

    def locate(self, c: Cell) -> Optional[Tuple[Zone, TileField]]:
        """A computed tile covering c, preferring zone_of(c); None when there is none."""
        for z in self.tiling.zones_containing(c):
            tile = self.tile(z)
            if tile is not None:
                return z, tile
        return None

    def integration_at(self, c: Cell) -> int:
        found = self.locate(c)
        if found is None:
            return self.sentinel
        z, tile = found
        return tile.integration.get(self.tiling.to_local(z, c))

    def direction_at(self, c: Cell) -> int:
        found = self.locate(c)
        if found is None:
            return NO_MOVE
        z, tile = found
        return tile.flow.get(self.tiling.to_local(z, c))

    def integration_range(self) -> Optional[Tuple[int, int]]:
        """(min, max) over every reached cell of every tile; for colour mapping."""
        ranges = [r for r in (tile.integration_range() for _, tile in self) if r is not None]
        if not ranges:
            return None
        return min(lo for lo, _ in ranges), max(hi for _, hi in ranges)

    def frontiers(self) -> Dict[Zone, List[Cell]]:
        """Frontier cells still waiting for relaxation, in global coordinates."""
        return {z: [self.tiling.to_global(z, c) for c in tile.frontier]
                for z, tile in self if tile.frontier}


def route_zones(path: List[Cell], tiling: Tiling) -> List[Zone]:
    """Tiles crossed by path, in path order, with L-corners instead of diagonal moves."""
    route: List[Zone] = []
    seen = set()

    def visit(z: Zone) -> None:
        if z not in seen:
            seen.add(z)
            route.append(z)

    last: Optional[Zone] = None
    for c in path:
        z = tiling.zone_of(c)
        if z == last:
            continue
        if last is not None and z.row != last.row and z.col != last.col:
            visit(Zone(last.row, z.col))
        visit(z)
        last = z
    return route


def with_halo(route: List[Zone], tiling: Tiling) -> List[Zone]:
    """route followed, tile by tile, by the neighbours not yet listed."""
    out: List[Zone] = []
    seen = set()
    for z in route:
        for n in [z] + tiling.neighbors(z):
            if n not in seen:
                seen.add(n)
                out.append(n)
    return out


@dataclass
class HierarchicalStitcher:
    start: Cell
    goal: Cell
    cost: Grid[int]
    tile_size: int = 32
    sentinel: int = UNREACHED
    wall_cost: int = WALL
    wall_weight: Optional[int] = None

    state: StitchState = StitchState.SEARCHING
    search: Optional[AStarSearch] = None
    tiling: Optional[Tiling] = None
    composed: Optional[ComposedField] = None
    visited: List[Zone] = field(default_factory=list)
    queue: Deque[Zone] = field(default_factory=deque)
    queued: Counter = field(default_factory=Counter)  # zone -> entries in queue
    current: Optional[Zone] = None
    tile_steps: int = 0
    flow_queue: Optional[Deque[Zone]] = None  # None until the integration queue drains
    flowed: int = 0

    def __post_init__(self) -> None:
        self.cost = self.cost.copy()
        self.tiling = Tiling(self.cost.height, self.cost.width, self.tile_size)
        self.composed = ComposedField(self.tiling, self.sentinel)
        self.search = AStarSearch(self.start, self.goal, self.cost,
                                  wall_cost=self.wall_cost, wall_weight=self.wall_weight)

    # -------------------- stepping --------------------

    def step(self) -> StitchState:
        if self.state is StitchState.SEARCHING:
            self.search.step()
            if self.search.state is SearchState.DONE:
                self.state = StitchState.ROUTE_TO_TILES
            elif self.search.state is SearchState.UNREACHABLE:
                self.state = StitchState.UNREACHABLE
                logger.info("stitch %s -> %s: no coarse path", self.start, self.goal)

        elif self.state is StitchState.ROUTE_TO_TILES:
            self._plan_tiles()
            self.state = StitchState.COMPUTING_TILE_FIELDS

        elif self.state is StitchState.COMPUTING_TILE_FIELDS:
            if self.current is not None:
                tile = self.composed.tile(self.current)
                tile.step()
                self.tile_steps += 1
                if tile.ready:
                    self._finish_current()
            elif self.queue:
                self._take_next()
            else:
                if self.flow_queue is None:
                    self.flow_queue = deque(z for z, _ in self.composed)
                self._flow_next()
                if not self.flow_queue:
                    self.state = StitchState.COMPOSED
                    logger.info("stitch %s -> %s: composed %d tiles in %d tile steps",
                                self.start, self.goal, len(self.visited), self.tile_steps)

        return self.state

    def run(self, max_steps: Optional[int] = None) -> StitchState:
        taken = 0
        while not self.finished and (max_steps is None or taken < max_steps):
            self.step()
            taken += 1
        return self.state

    @property
    def finished(self) -> bool:
        return self.state in (StitchState.COMPOSED, StitchState.UNREACHABLE)

    @property
    def result(self) -> Optional[ComposedField]:
        return self.composed if self.state is StitchState.COMPOSED else None

    # -------------------- phases --------------------

    def _plan_tiles(self) -> None:
        route = route_zones(self.search.path, self.tiling)
        route.reverse()  # target tile first
        self.visited = with_halo(route, self.tiling)
        self.queue = deque(self.visited + self.visited[::-1])
        self.queued = Counter(self.queue)
        logger.debug("route crosses %d tiles, %d with halo", len(route), len(self.visited))

    def _make_tile(self, z: Zone) -> TileField:
        objective = None
        if self.tiling.contains(z, self.goal):
            objective = self.tiling.to_local(z, self.goal)
        tile = TileField(self.tiling.cost_window(z, self.cost, self.wall_cost),
                         objective=objective, sentinel=self.sentinel,
                         wall_cost=self.wall_cost, skip_flow=True)
        tile.step()  # CREATED -> INTEGRATING, objective in place
        self.composed.put(z, tile)
        return tile

    def _take_next(self) -> None:
        z = self.queue.popleft()
        self.queued[z] -= 1
        tile = self.composed.tile(z)
        if tile is None:
            tile = self._make_tile(z)
        seeded = self.junction(z)
        if tile.ready:
            return
        logger.debug("tile %s: %d junction seeds", z, seeded)
        self.current = z

    def junction(self, z: Zone) -> int:
        """Seed z with the integration of its computed neighbours on their shared cells."""
        tile = self.composed.tile(z)
        seeded = 0
        for n in self.tiling.neighbors(z):
            other = self.composed.tile(n)
            if other is None or other.state is FieldState.CREATED:
                continue
            for g in self.tiling.shared_cells(z, n):
                v = other.integration.get(self.tiling.to_local(n, g))
                if tile.seed(self.tiling.to_local(z, g), v):
                    seeded += 1
        return seeded

    def _finish_current(self) -> None:
        z = self.current
        self.current = None
        tile = self.composed.tile(z)
        for n in self.tiling.neighbors(z):
            other = self.composed.tile(n)
            if other is None or self.queued[n] > 0:
                continue
            for g in self.tiling.shared_cells(z, n):
                if tile.integration.get(self.tiling.to_local(z, g)) < \
                        other.integration.get(self.tiling.to_local(n, g)):
                    self.queue.append(n)
                    self.queued[n] += 1
                    break

    def _flow_next(self) -> None:
        """Direction pass of one tile, reading across its borders into the neighbours."""
        if not self.flow_queue:
            return
        z = self.flow_queue.popleft()
        self.composed.tile(z).compute_flow(self.composed.neighbor_context(z))
        self.flowed += 1
