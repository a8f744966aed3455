#!/usr/bin/env python3
"""
Incremental grid-wide A* — one node expansion per step().

States: INITIAL -> EXPANDING -> DONE | UNREACHABLE. The first step() seeds the
open list with the start cell and expands it; every later call expands
exactly one node. Terminal states are sticky: stepping again returns the
same result.

Costs:
- Edge cost = octile distance (10 / 14) * cost of the destination cell.
- Cells at the wall cost are impassable, unless `wall_weight` is given, in
  which case they are crossed at that (large) weight instead.

Heuristic:
- Octile distance, counted twice in f = g + 2h. Overweighting it makes the
  search greedier: fewer expansions, path not guaranteed optimal.

Per-cell record:
- `nodes` holds the one canonical record of every visited cell (g, h,
  predecessor, status). The heap only orders (f, seq, cell) keys; an entry
  whose f no longer matches its record is stale and skipped.
- An OPEN record is replaced when a strictly better f shows up. A CLOSED
  record is never re-opened, even if a cheaper route reaches it later.
"""

import heapq
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from flowpath.core.grid import Grid, octile_distance
from flowpath.core.types import Cell, SearchState, StepResult, WALL

logger = logging.getLogger(__name__)


class NodeStatus(Enum):
    UNKNOWN = 0
    OPEN = 1
    CLOSED = 2


@dataclass
class SearchNode:
    cell: Cell
    g: int
    h: int
    parent: Optional[Cell]
    status: NodeStatus = NodeStatus.OPEN

    @property
    def f(self) -> int:
        return self.g + 2 * self.h


@dataclass
class AStarSearch:
    start: Cell
    goal: Cell
    cost: Grid[int]
    wall_cost: int = WALL
    wall_weight: Optional[int] = None
    name: str = "A*"

    # Internal state
    state: SearchState = SearchState.INITIAL
    nodes: Optional[Grid[Optional[SearchNode]]] = None
    open_pq: List[Tuple[int, int, Cell]] = field(default_factory=list)  # (f, seq, cell)
    path: Optional[List[Cell]] = None
    popped_count: int = 0
    open_count: int = 0
    seq: int = 0  # monotonic counter, FIFO among equal f

    def __post_init__(self) -> None:
        # snapshot: later edits of the live map don't reach this search
        self.cost = self.cost.copy()
        if not self.cost.in_bounds(self.start) or not self.cost.in_bounds(self.goal):
            raise ValueError(f"start {self.start} or goal {self.goal} outside the cost grid")

    # -------------------- lifecycle --------------------

    def reset(self) -> None:
        """Drop all progress; the next step() starts over from the start cell."""
        self.state = SearchState.INITIAL
        self.nodes = None
        self.open_pq.clear()
        self.path = None
        self.popped_count = 0
        self.open_count = 0
        self.seq = 0

    def _seed(self) -> None:
        self.nodes = Grid.new(None, self.cost.width, self.cost.height)
        h0 = octile_distance(self.start, self.goal)
        node = SearchNode(self.start, 0, h0, None)
        self.nodes.set(self.start, node)
        self._push(node)
        self.open_count = 1
        self.state = SearchState.EXPANDING
        logger.debug("search %s -> %s started", self.start, self.goal)

    # -------------------- helpers --------------------

    def _bump(self) -> int:
        self.seq += 1
        return self.seq

    def _push(self, node: SearchNode) -> None:
        heapq.heappush(self.open_pq, (node.f, self._bump(), node.cell))

    def _step_cost(self, c: Cell) -> Optional[int]:
        v = self.cost.get(c)
        if v >= self.wall_cost:
            return self.wall_weight
        return v

    def _pop_live(self) -> Optional[SearchNode]:
        while self.open_pq:
            f, _, cell = heapq.heappop(self.open_pq)
            node = self.nodes.get(cell)
            if node.status is NodeStatus.OPEN and node.f == f:
                return node
        return None

    def _reconstruct_path(self, end: Cell) -> List[Cell]:
        path: List[Cell] = []
        cur: Optional[Cell] = end
        while cur is not None:
            path.append(cur)
            cur = self.nodes.get(cur).parent
        path.reverse()
        return path

    # -------------------- main stepping logic --------------------

    def step(self) -> StepResult:
        """
        Run ONE expansion:
          - Pop the lowest-f open node and close it.
          - If it is the goal, rebuild the path and finish.
          - Else open or improve every neighbour that is not closed.
        """
        if self.state is SearchState.DONE:
            return StepResult(status=self.state.value, path=self.path,
                              metrics=self._metrics())
        if self.state is SearchState.UNREACHABLE:
            return StepResult(status=self.state.value, metrics=self._metrics())
        if self.state is SearchState.INITIAL:
            self._seed()

        u = self._pop_live()
        if u is None:
            self.state = SearchState.UNREACHABLE
            logger.info("search %s -> %s: no path after %d expansions",
                        self.start, self.goal, self.popped_count)
            return StepResult(status=self.state.value, metrics=self._metrics())

        u.status = NodeStatus.CLOSED
        self.open_count -= 1
        self.popped_count += 1

        if u.cell == self.goal:
            self.state = SearchState.DONE
            self.path = self._reconstruct_path(u.cell)
            logger.info("search %s -> %s: path of %d cells, cost %d",
                        self.start, self.goal, len(self.path), u.g)
            return StepResult(status=self.state.value, closed=[u.cell], current=u.cell,
                              path=self.path, metrics=self._metrics())

        opened_now: List[Cell] = []
        for v, dist in self.cost.neighbors_with_distance(u.cell):
            known = self.nodes.get(v)
            if known is not None and known.status is NodeStatus.CLOSED:
                continue
            step_cost = self._step_cost(v)
            if step_cost is None:
                continue
            g = u.g + dist * step_cost
            if known is None:
                node = SearchNode(v, g, octile_distance(v, self.goal), u.cell)
                self.nodes.set(v, node)
                self._push(node)
                self.open_count += 1
                opened_now.append(v)
            elif g < known.g:
                known.g = g
                known.parent = u.cell
                self._push(known)

        return StepResult(status=self.state.value, opened=opened_now, closed=[u.cell],
                          current=u.cell, metrics=self._metrics())

    def run(self, max_steps: Optional[int] = None) -> StepResult:
        """Step until a terminal state, or until max_steps expansions were made."""
        res = self.step()
        taken = 1
        while not self.finished and (max_steps is None or taken < max_steps):
            res = self.step()
            taken += 1
        return res

    # -------------------- queries --------------------

    @property
    def finished(self) -> bool:
        return self.state in (SearchState.DONE, SearchState.UNREACHABLE)

    @property
    def total_cost(self) -> Optional[int]:
        if self.state is not SearchState.DONE:
            return None
        return self.nodes.get(self.goal).g

    def g_at(self, c: Cell) -> Optional[int]:
        if self.nodes is None:
            return None
        node = self.nodes.get(c)
        return None if node is None else node.g

    def open_cells(self) -> List[Cell]:
        if self.nodes is None:
            return []
        return [n.cell for n in self.nodes.cells if n is not None and n.status is NodeStatus.OPEN]

    def closed_cells(self) -> List[Cell]:
        if self.nodes is None:
            return []
        return [n.cell for n in self.nodes.cells if n is not None and n.status is NodeStatus.CLOSED]

    # -------------------- metrics --------------------

    def _metrics(self) -> Dict[str, object]:
        return {
            "algo": self.name,
            "popped": self.popped_count,
            "open_size": self.open_count,
            "closed_count": self.popped_count,
            "path_len": len(self.path) if self.path else 0,
            "total_cost": self.total_cost,
        }
